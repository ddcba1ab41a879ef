"""
colony_backend/routes_bookings.py

Plot booking endpoints.

A booking is its own record; the plot additionally keeps an append-only
bookingHistory of {user, action, date, notes} entries. Bookings never change
plot status and never trigger a counter recompute.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from colony_backend.auth_context import Principal, get_store
from colony_backend.config import IS_DEV
from colony_backend.dependencies import authorize
from colony_backend.envelope import success
from colony_backend.errors import ConflictFailure, NotFound
from colony_backend.rbac import Permission
from colony_backend.sanitizers import sanitize_payload
from colony_backend.schemas_catalog import (
    BookingCreateRequest,
    BookingListQuery,
    BookingUpdateRequest,
)
from colony_backend.store import DocumentStore, now_iso
from colony_backend.validation import (
    require_object_id,
    to_changes,
    to_document,
    validate_payload,
    validate_query,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/bookings",
    tags=["bookings"],
)


def append_history(
    store: DocumentStore,
    plot: Dict[str, Any],
    user_id: str,
    action: str,
    notes: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    entry = {"user": user_id, "action": action, "date": now_iso()}
    if notes:
        entry["notes"] = notes
    history = list(plot.get("bookingHistory") or []) + [entry]
    return store.plots.update(plot["id"], {"bookingHistory": history})


@router.get("")
def list_bookings(
    request: Request,
    principal: Principal = Depends(authorize(Permission.BOOKING_READ)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    params = validate_query(BookingListQuery, request.query_params)
    query: Dict[str, Any] = {}
    if params.plot:
        query["plot"] = params.plot
    if params.status:
        query["status"] = params.status
    return success({"bookings": store.bookings.find(query)})


@router.get("/{booking_id}")
def get_booking(
    booking_id: str,
    principal: Principal = Depends(authorize(Permission.BOOKING_READ)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    booking_id = require_object_id(booking_id)
    booking = store.bookings.get(booking_id)
    if booking is None:
        raise NotFound("Booking")
    return success({"booking": booking})


@router.post("", status_code=201)
def create_booking(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.BOOKING_CREATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Book a plot for a customer.

    Raises:
        NotFound(400): Plot or customer does not exist
        ConflictFailure(400): Plot is sold
    """
    payload = validate_payload(BookingCreateRequest, sanitize_payload(body))
    doc = to_document(payload)

    plot = store.plots.get(doc["plot"])
    if plot is None:
        raise NotFound("Plot", status_code=400)
    if plot.get("status") == "sold":
        raise ConflictFailure("Plot is already sold")
    if store.users.get(doc["customer"]) is None:
        raise NotFound("Customer", status_code=400)

    doc["colony"] = plot.get("colony")
    doc.setdefault("bookingDate", now_iso())
    doc["createdBy"] = principal.user_id

    booking = store.bookings.insert(doc)
    append_history(store, plot, doc["customer"], "booked", doc.get("notes"))

    if IS_DEV:
        logger.debug("[BOOKINGS] Created booking_id=%s plot=%s", booking["id"], booking["plot"])
    return success({"booking": booking}, "Booking created successfully")


@router.put("/{booking_id}")
def update_booking(
    booking_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.BOOKING_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """Update status/amount/notes. Moving into "cancelled" records a history entry on the plot."""
    booking_id = require_object_id(booking_id)
    payload = validate_payload(BookingUpdateRequest, sanitize_payload(body))
    changes = to_changes(payload)

    current = store.bookings.get(booking_id)
    if current is None:
        raise NotFound("Booking")

    booking = store.bookings.update(booking_id, changes)
    if booking is None:
        raise NotFound("Booking")

    cancelled = changes.get("status") == "cancelled" and current.get("status") != "cancelled"
    if cancelled:
        plot = store.plots.get(current["plot"])
        if plot is not None:
            append_history(store, plot, principal.user_id, "cancelled", changes.get("notes"))
        logger.info("[BOOKINGS] Cancelled booking_id=%s by=%s", booking_id, principal.user_id)

    return success({"booking": booking}, "Booking updated successfully")
