"""
colony_backend/routes_plots.py

Plot endpoints.

Write sequence for every mutating endpoint:
1. permission check (authorize dependency)
2. sanitize + validate the whole payload (all violations reported together)
3. business-rule checks (colony exists, plot number unique per colony, not sold)
4. price derivation, then the plot persist
5. create/delete only: colony counter recompute as a separate best-effort step;
   its failure is logged and never fails the request

Ordinary updates (status changes included) do not recompute the counters.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from colony_backend.auth_context import Principal, get_store, require_principal
from colony_backend.config import IS_DEV
from colony_backend.counters import ColonyCounters
from colony_backend.dependencies import authorize, get_counters
from colony_backend.envelope import page_bounds, paginate, paginated, success
from colony_backend.errors import ConflictFailure, NotFound
from colony_backend.pricing import apply_total_price
from colony_backend.rbac import Permission
from colony_backend.sanitizers import URL_FIELDS, sanitize_payload
from colony_backend.schemas_plots import (
    PlotCreateRequest,
    PlotFilterQuery,
    PlotListQuery,
    PlotUpdateRequest,
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
    prefix="/api/v1/plots",
    tags=["plots"],
)

# Optional sub-documents an update may clear with an explicit null
CLEARABLE_FIELDS = ("currentOwner", "soldDate", "registryDetails", "dimensions", "coordinates")


def _range(minimum, maximum) -> Dict[str, float]:
    bounds = {}
    if minimum is not None:
        bounds["$gte"] = minimum
    if maximum is not None:
        bounds["$lte"] = maximum
    return bounds


# ---------------------------------------------------------
# Public reads
# ---------------------------------------------------------
@router.get("/colony/{colony_id}")
def list_colony_plots(
    colony_id: str,
    request: Request,
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Plots of one colony, sorted by plot number (public, used by the buyer app).

    Filters: status, facing, minPrice/maxPrice (on totalPrice), minArea/maxArea.
    """
    colony_id = require_object_id(colony_id, field="colonyId")
    params = validate_query(PlotFilterQuery, request.query_params)

    query: Dict[str, Any] = {"colony": colony_id}
    if params.status:
        query["status"] = params.status
    if params.facing:
        query["facing"] = params.facing
    price = _range(params.min_price, params.max_price)
    if price:
        query["totalPrice"] = price
    area = _range(params.min_area, params.max_area)
    if area:
        query["area"] = area

    plots = store.plots.find(query, sort=[("plotNumber", 1)])
    return success({"plots": plots}, "Plots fetched")


@router.get("/{plot_id}")
def get_plot(plot_id: str, store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    plot_id = require_object_id(plot_id)
    plot = store.plots.get(plot_id)
    if plot is None:
        raise NotFound("Plot")
    return success({"plot": plot}, "Plot fetched")


# ---------------------------------------------------------
# Authenticated
# ---------------------------------------------------------
@router.get("")
def list_plots(
    request: Request,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """Paginated plot list with colony/status filters and plot-number search."""
    params = validate_query(PlotListQuery, request.query_params)

    query: Dict[str, Any] = {}
    if params.colony:
        query["colony"] = params.colony
    if params.status:
        query["status"] = params.status
    search = (("plotNumber",), params.search) if params.search else None

    offset, limit = page_bounds(params.page, params.limit)
    plots = store.plots.find(query, search=search, limit=limit, offset=offset)
    total = store.plots.count(query, search=search)

    return paginated({"plots": plots}, paginate(params.page, params.limit, total), "Plots fetched")


@router.post("", status_code=201)
def create_plot(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.PLOT_CREATE)),
    store: DocumentStore = Depends(get_store),
    counters: ColonyCounters = Depends(get_counters),
) -> Dict[str, Any]:
    """
    Create a plot inside an existing colony.

    Raises:
        ValidationFailure(400): Field rules violated (all reported)
        NotFound(400): Colony does not exist
        ConflictFailure(400): Plot number already used in this colony
    """
    payload = validate_payload(PlotCreateRequest, sanitize_payload(body, exclude=URL_FIELDS))
    doc = to_document(payload)

    if store.colonies.get(doc["colony"]) is None:
        raise NotFound("Colony", status_code=400)

    existing = store.plots.find_one({"colony": doc["colony"], "plotNumber": doc["plotNumber"]})
    if existing:
        raise ConflictFailure("Plot number already exists in this colony")

    doc["bookingHistory"] = []
    doc["createdBy"] = principal.user_id
    apply_total_price(doc)

    plot = store.plots.insert(doc)
    if IS_DEV:
        logger.debug("[PLOTS] Created plot_id=%s colony=%s by=%s", plot["id"], plot["colony"], principal.user_id)

    # Follow-up step: the plot is already committed whatever happens here
    counters.recompute_quietly(plot["colony"])

    return success({"plot": plot}, "Plot created successfully")


@router.put("/{plot_id}")
def update_plot(
    plot_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.PLOT_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Partial plot update. totalPrice is re-derived from the merged area and rate.

    Colony counters are not recomputed here.
    """
    plot_id = require_object_id(plot_id)
    payload = validate_payload(PlotUpdateRequest, sanitize_payload(body, exclude=URL_FIELDS))
    changes = to_changes(payload, keep_null=CLEARABLE_FIELDS)

    current = store.plots.get(plot_id)
    if current is None:
        raise NotFound("Plot")

    new_number = changes.get("plotNumber")
    if new_number and new_number != current.get("plotNumber"):
        clash = store.plots.find_one({"colony": current["colony"], "plotNumber": new_number})
        if clash and clash["id"] != plot_id:
            raise ConflictFailure("Plot number already exists in this colony")

    merged = apply_total_price({**current, **changes})
    plot = store.plots.replace(plot_id, merged)
    if plot is None:
        raise NotFound("Plot")

    if IS_DEV:
        logger.debug("[PLOTS] Updated plot_id=%s fields=%s", plot_id, sorted(changes))
    return success({"plot": plot}, "Plot updated successfully")


@router.delete("/{plot_id}")
def delete_plot(
    plot_id: str,
    principal: Principal = Depends(authorize(Permission.PLOT_DELETE)),
    store: DocumentStore = Depends(get_store),
    counters: ColonyCounters = Depends(get_counters),
) -> Dict[str, Any]:
    """
    Delete a plot, then recompute its colony's counters.

    Raises:
        NotFound(404): Plot does not exist
        ConflictFailure(400): Plot is sold
    """
    plot_id = require_object_id(plot_id)
    plot = store.plots.get(plot_id)
    if plot is None:
        raise NotFound("Plot")

    if plot.get("status") == "sold":
        raise ConflictFailure("Cannot delete sold plot")

    if not store.plots.delete(plot_id):
        raise NotFound("Plot")
    if IS_DEV:
        logger.debug("[PLOTS] Deleted plot_id=%s colony=%s", plot_id, plot["colony"])

    counters.recompute_quietly(plot["colony"])

    return success(None, "Plot deleted successfully")
