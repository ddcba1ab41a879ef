"""
colony_backend/routes_properties.py

Marketing property endpoints.

Properties are brochure records that point at a colony. Media entries are
stored path references; on update, single-file slots are replaced and
moreImages is appended to.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from colony_backend.auth_context import Principal, get_store, require_principal
from colony_backend.config import IS_DEV
from colony_backend.dependencies import authorize
from colony_backend.envelope import success
from colony_backend.errors import NotFound
from colony_backend.rbac import Permission
from colony_backend.sanitizers import sanitize_payload
from colony_backend.schemas_catalog import (
    PropertyCreateRequest,
    PropertyListQuery,
    PropertyUpdateRequest,
)
from colony_backend.store import DocumentStore
from colony_backend.validation import (
    require_object_id,
    to_changes,
    to_document,
    validate_payload,
    validate_query,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/properties",
    tags=["properties"],
)


def merge_media(existing: Optional[Dict[str, Any]], incoming: Dict[str, Any]) -> Dict[str, Any]:
    media = dict(existing or {})
    more = list(media.get("moreImages") or [])
    for key, value in incoming.items():
        if key == "moreImages":
            more.extend(value or [])
        else:
            media[key] = value
    media["moreImages"] = more
    return media


def _require_colony(store: DocumentStore, colony_id: str) -> None:
    if store.colonies.get(colony_id) is None:
        raise NotFound("Colony", status_code=400)


@router.get("")
def list_properties(
    request: Request,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    params = validate_query(PropertyListQuery, request.query_params)
    query: Dict[str, Any] = {}
    if params.colony:
        query["colony"] = params.colony
    if params.status:
        query["status"] = params.status
    return success({"properties": store.properties.find(query)})


@router.get("/{property_id}")
def get_property(
    property_id: str,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    property_id = require_object_id(property_id)
    prop = store.properties.get(property_id)
    if prop is None:
        raise NotFound("Property")
    return success({"property": prop})


@router.post("", status_code=201)
def create_property(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.COLONY_CREATE, Permission.PLOT_CREATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    payload = validate_payload(PropertyCreateRequest, sanitize_payload(body))
    doc = to_document(payload)
    _require_colony(store, doc["colony"])

    doc["media"] = merge_media(None, doc.get("media") or {})
    doc["createdBy"] = principal.user_id

    prop = store.properties.insert(doc)
    if IS_DEV:
        logger.debug("[PROPERTIES] Created property_id=%s colony=%s", prop["id"], prop["colony"])
    return success({"property": prop}, "Property created successfully")


@router.put("/{property_id}")
def update_property(
    property_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.COLONY_UPDATE, Permission.PLOT_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    property_id = require_object_id(property_id)
    payload = validate_payload(PropertyUpdateRequest, sanitize_payload(body))
    changes = to_changes(payload)

    current = store.properties.get(property_id)
    if current is None:
        raise NotFound("Property")

    if changes.get("colony"):
        _require_colony(store, changes["colony"])
    if "media" in changes:
        changes["media"] = merge_media(current.get("media"), changes["media"])

    prop = store.properties.update(property_id, changes)
    if prop is None:
        raise NotFound("Property")
    return success({"property": prop}, "Property updated successfully")


@router.delete("/{property_id}")
def delete_property(
    property_id: str,
    principal: Principal = Depends(authorize(Permission.COLONY_DELETE, Permission.PLOT_DELETE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    property_id = require_object_id(property_id)
    if not store.properties.delete(property_id):
        raise NotFound("Property")
    return success(None, "Property deleted successfully")
