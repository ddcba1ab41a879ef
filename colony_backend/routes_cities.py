"""
colony_backend/routes_cities.py

City endpoints. Reads are public (the buyer app lists cities before login).
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from colony_backend.auth_context import Principal, get_store
from colony_backend.config import IS_DEV
from colony_backend.dependencies import authorize
from colony_backend.envelope import success
from colony_backend.errors import NotFound
from colony_backend.rbac import Permission
from colony_backend.sanitizers import sanitize_payload
from colony_backend.schemas_colonies import CityCreateRequest, CityListQuery, CityUpdateRequest
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
    prefix="/api/v1/cities",
    tags=["cities"],
)


@router.get("")
def list_cities(request: Request, store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    params = validate_query(CityListQuery, request.query_params)

    query: Dict[str, Any] = {}
    if params.state:
        query["state"] = params.state
    if params.is_active is not None:
        query["isActive"] = params.is_active
    search = (("name", "state"), params.search) if params.search else None

    cities = store.cities.find(query, search=search, sort=[("name", 1)])
    return success({"cities": cities})


@router.get("/{city_id}")
def get_city(city_id: str, store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    city_id = require_object_id(city_id)
    city = store.cities.get(city_id)
    if city is None:
        raise NotFound("City")
    return success({"city": city})


@router.post("", status_code=201)
def create_city(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.CITY_CREATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    payload = validate_payload(CityCreateRequest, sanitize_payload(body))
    city = store.cities.insert(to_document(payload))
    if IS_DEV:
        logger.debug("[CITIES] Created city_id=%s name=%s", city["id"], city["name"])
    return success({"city": city}, "City created successfully")


@router.put("/{city_id}")
def update_city(
    city_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.CITY_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    city_id = require_object_id(city_id)
    payload = validate_payload(CityUpdateRequest, sanitize_payload(body))
    city = store.cities.update(city_id, to_changes(payload, keep_null=("pincode", "coordinates")))
    if city is None:
        raise NotFound("City")
    return success({"city": city}, "City updated successfully")
