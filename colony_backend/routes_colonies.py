"""
colony_backend/routes_colonies.py

Colony endpoints.

Reads require an authenticated principal; writes require the matching
colony_* permission. The plot counters are never taken from a request body:
create starts them at zero and only the counters module writes them after.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Request

from colony_backend.auth_context import Principal, get_store, require_principal
from colony_backend.config import IS_DEV
from colony_backend.counters import ColonyCounters, empty_counters
from colony_backend.dependencies import authorize, get_counters
from colony_backend.envelope import page_bounds, paginate, paginated, success
from colony_backend.errors import ConflictFailure, NotFound
from colony_backend.rbac import Permission
from colony_backend.sanitizers import URL_FIELDS, is_valid_object_id, sanitize_payload
from colony_backend.schemas_colonies import (
    ColonyCreateRequest,
    ColonyListQuery,
    ColonyUpdateRequest,
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
    prefix="/api/v1/colonies",
    tags=["colonies"],
)

SEARCH_FIELDS = ("name", "description", "address")


def _with_city(store: DocumentStore, colonies: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach a {id, name, state} summary for colonies that reference a City record."""
    cache: Dict[str, Any] = {}
    for colony in colonies:
        city_id = colony.get("city")
        if not is_valid_object_id(city_id):
            continue
        if city_id not in cache:
            city = store.cities.get(city_id)
            cache[city_id] = {"id": city["id"], "name": city.get("name"), "state": city.get("state")} if city else None
        colony["cityInfo"] = cache[city_id]
    return colonies


@router.get("")
def list_colonies(
    request: Request,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    params = validate_query(ColonyListQuery, request.query_params)

    query: Dict[str, Any] = {}
    if params.city:
        query["city"] = params.city
    if params.status:
        query["status"] = params.status
    search = (SEARCH_FIELDS, params.search) if params.search else None

    offset, limit = page_bounds(params.page, params.limit)
    colonies = store.colonies.find(query, search=search, limit=limit, offset=offset)
    total = store.colonies.count(query, search=search)

    return paginated(
        {"colonies": _with_city(store, colonies)},
        paginate(params.page, params.limit, total),
    )


@router.get("/{colony_id}")
def get_colony(
    colony_id: str,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    colony_id = require_object_id(colony_id)
    colony = store.colonies.get(colony_id)
    if colony is None:
        raise NotFound("Colony")
    return success({"colony": _with_city(store, [colony])[0]})


@router.post("", status_code=201)
def create_colony(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.COLONY_CREATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Create a colony with zeroed plot counters.

    A city given as an id must reference an existing City record.
    """
    payload = validate_payload(ColonyCreateRequest, sanitize_payload(body, exclude=URL_FIELDS))
    doc = to_document(payload)

    city = doc.get("city")
    if is_valid_object_id(city) and store.cities.get(city) is None:
        raise NotFound("City", status_code=400)

    doc.update(empty_counters())
    doc["createdBy"] = principal.user_id

    colony = store.colonies.insert(doc)
    if IS_DEV:
        logger.debug("[COLONIES] Created colony_id=%s name=%s", colony["id"], colony["name"])
    return success({"colony": colony}, "Colony created successfully")


@router.put("/{colony_id}")
def update_colony(
    colony_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.COLONY_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """Partial update. Counter fields in the body are dropped by the schema."""
    colony_id = require_object_id(colony_id)
    payload = validate_payload(ColonyUpdateRequest, sanitize_payload(body, exclude=URL_FIELDS))
    changes = to_changes(payload, keep_null=("coordinates", "layoutUrl"))

    city = changes.get("city")
    if is_valid_object_id(city) and store.cities.get(city) is None:
        raise NotFound("City", status_code=400)

    colony = store.colonies.update(colony_id, changes)
    if colony is None:
        raise NotFound("Colony")

    if IS_DEV:
        logger.debug("[COLONIES] Updated colony_id=%s fields=%s", colony_id, sorted(changes))
    return success({"colony": colony}, "Colony updated successfully")


@router.delete("/{colony_id}")
def delete_colony(
    colony_id: str,
    principal: Principal = Depends(authorize(Permission.COLONY_DELETE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    colony_id = require_object_id(colony_id)
    if store.colonies.get(colony_id) is None:
        raise NotFound("Colony")

    if store.plots.count({"colony": colony_id}):
        raise ConflictFailure("Cannot delete colony with existing plots")

    store.colonies.delete(colony_id)
    if IS_DEV:
        logger.debug("[COLONIES] Deleted colony_id=%s", colony_id)
    return success(None, "Colony deleted successfully")


@router.post("/{colony_id}/recompute")
def recompute_colony_counters(
    colony_id: str,
    principal: Principal = Depends(authorize(Permission.COLONY_UPDATE)),
    counters: ColonyCounters = Depends(get_counters),
) -> Dict[str, Any]:
    """
    Rebuild the colony's counters from its current plots.

    Unlike the follow-up after plot writes, failures here surface to the caller.
    """
    colony_id = require_object_id(colony_id)
    counts = counters.recompute(colony_id)
    if counts is None:
        raise NotFound("Colony")
    logger.info("[COUNTERS] Manual recompute colony=%s by=%s", colony_id, principal.user_id)
    return success({"counters": counts}, "Colony counters recomputed")
