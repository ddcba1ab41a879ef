"""
colony_backend/schemas_catalog.py

Pydantic schemas for marketing properties and plot bookings.

Property media entries are stored path references (e.g. "/uploads/properties/x.jpg");
the upload itself happens elsewhere.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from colony_backend.validation import RequestModel, check_length, check_object_id, check_range

PROPERTY_CATEGORIES = ("Residential", "Commercial", "Farmhouse")
PROPERTY_STATUSES = ("draft", "active", "inactive")
BOOKING_STATUSES = ("pending", "confirmed", "cancelled")


class PropertyMedia(RequestModel):
    main_picture: Optional[str] = None
    video_upload: Optional[str] = None
    map_image: Optional[str] = None
    noc: Optional[str] = None
    registry: Optional[str] = None
    legal_doc: Optional[str] = None
    more_images: List[str] = []


class PropertyUpdateRequest(RequestModel):
    name: Optional[str] = None
    category: Optional[str] = None
    colony: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    address: Optional[str] = None
    tagline: Optional[str] = None
    description: Optional[str] = None
    facilities: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    media: Optional[PropertyMedia] = None
    status: Optional[str] = None

    @field_validator("name")
    def name_not_empty(cls, v):
        if v is None:
            return v
        return check_length(v, 1, 200, "Property name is required")

    @field_validator("category")
    def category_known(cls, v):
        if v is not None and v not in PROPERTY_CATEGORIES:
            raise ValueError("Category must be Residential, Commercial or Farmhouse")
        return v

    @field_validator("status")
    def status_known(cls, v):
        if v is not None and v not in PROPERTY_STATUSES:
            raise ValueError("Invalid property status")
        return v

    @field_validator("colony")
    def colony_is_object_id(cls, v):
        return check_object_id(v, "Invalid colony ID format")

    @field_validator("city")
    def city_is_object_id(cls, v):
        return check_object_id(v, "Invalid city ID format")


class PropertyCreateRequest(PropertyUpdateRequest):
    name: str
    colony: str
    category: str = "Residential"
    status: str = "active"
    facilities: List[str] = []
    amenities: List[str] = []
    media: PropertyMedia = PropertyMedia()


class PropertyListQuery(RequestModel):
    colony: Optional[str] = None
    status: Optional[str] = None

    @field_validator("colony")
    def colony_filter(cls, v):
        return check_object_id(v, "Invalid colony ID format")


# ========================================================================
# Bookings
# ========================================================================

class BookingCreateRequest(RequestModel):
    plot: str
    customer: str
    amount: float = 0
    booking_date: Optional[datetime] = None
    status: str = "pending"
    notes: Optional[str] = None

    @field_validator("plot")
    def plot_is_object_id(cls, v):
        return check_object_id(v, "Invalid plot ID format")

    @field_validator("customer")
    def customer_is_object_id(cls, v):
        return check_object_id(v, "Invalid customer ID format")

    @field_validator("amount")
    def amount_non_negative(cls, v):
        return check_range(v, 0, None, "Booking amount cannot be negative")

    @field_validator("status")
    def status_known(cls, v):
        if v not in BOOKING_STATUSES:
            raise ValueError("Invalid booking status")
        return v

    @field_validator("notes")
    def notes_length(cls, v):
        if v is None:
            return v
        return check_length(v, 0, 1000, "Notes cannot exceed 1000 characters")


class BookingUpdateRequest(RequestModel):
    status: Optional[str] = None
    amount: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("status")
    def status_known(cls, v):
        if v is not None and v not in BOOKING_STATUSES:
            raise ValueError("Invalid booking status")
        return v

    @field_validator("amount")
    def amount_non_negative(cls, v):
        return check_range(v, 0, None, "Booking amount cannot be negative")


class BookingListQuery(RequestModel):
    plot: Optional[str] = None
    status: Optional[str] = None

    @field_validator("plot")
    def plot_filter(cls, v):
        return check_object_id(v, "Invalid plot ID format")
