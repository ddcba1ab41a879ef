"""
colony_backend/schemas_colonies.py

Pydantic schemas for colonies and cities.

The colony plot counters (totalPlots, availablePlots, soldPlots,
blockedPlots) are deliberately absent: unknown fields are dropped, so a
caller can never set them.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, field_validator

from colony_backend.config import DEFAULT_COUNTRY
from colony_backend.sanitizers import is_valid_object_id, sanitize_phone, sanitize_url
from colony_backend.schemas_common import GeoPoint, PaginationQuery
from colony_backend.validation import (
    RequestModel,
    check_length,
    check_object_id,
    check_pattern,
    check_range,
)

COLONY_STATUSES = (
    "planning",
    "ready_to_sell",
    "on_hold",
    "active",
    "inactive",
    "sold_out",
    "under_development",
)

COLONY_NAME_PATTERN = r"[A-Za-z0-9\s\-,.]+"
CITY_NAME_PATTERN = r"[A-Za-z\s\-.]+"


def check_city_name(value: str) -> str:
    check_length(value, 2, 50, "City name must be between 2 and 50 characters")
    return check_pattern(
        value, CITY_NAME_PATTERN,
        "City name can only contain letters, spaces, hyphens, and periods",
    )


# ========================================================================
# Colony sub-documents
# ========================================================================

class Amenity(RequestModel):
    name: str
    description: Optional[str] = None
    image: Optional[str] = None


class Approval(RequestModel):
    name: str
    number: Optional[str] = None
    date: Optional[datetime] = None
    authority: Optional[str] = None


class Seller(RequestModel):
    name: str
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    share_percent: Optional[float] = None

    @field_validator("name")
    def name_required(cls, v):
        if not v:
            raise ValueError("Seller name is required")
        return v

    @field_validator("mobile")
    def mobile_normalized(cls, v):
        if v is None or v == "":
            return None
        phone = sanitize_phone(v)
        if phone is None:
            raise ValueError("Please provide a valid phone number")
        return phone

    @field_validator("share_percent")
    def share_in_range(cls, v):
        return check_range(v, 0, 100, "Share percent must be between 0 and 100")


class NearbyPlace(RequestModel):
    name: str
    distance: Optional[str] = None
    type: Optional[str] = None


# ========================================================================
# Colony write schemas
# ========================================================================

class ColonyUpdateRequest(RequestModel):
    name: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    total_area: Optional[float] = None
    price_per_sq_ft: Optional[float] = None
    status: Optional[str] = None
    amenities: Optional[List[Amenity]] = None
    images: Optional[List[str]] = None
    layout_url: Optional[str] = None
    coordinates: Optional[GeoPoint] = None
    approvals: Optional[List[Approval]] = None
    features: Optional[List[str]] = None
    sellers: Optional[List[Seller]] = None
    nearby_places: Optional[List[NearbyPlace]] = None

    @field_validator("name")
    def name_rules(cls, v):
        if v is None:
            return v
        check_length(v, 2, 100, "Colony name must be between 2 and 100 characters")
        return check_pattern(
            v, COLONY_NAME_PATTERN,
            "Colony name can only contain letters, numbers, spaces, hyphens, commas, and periods",
        )

    @field_validator("city")
    def city_reference_or_name(cls, v):
        # A 24-hex value references a City record; anything else is a free-text city name
        if v is None or is_valid_object_id(v):
            return check_object_id(v)
        return check_city_name(v)

    @field_validator("address")
    def address_length(cls, v):
        if v is None:
            return v
        return check_length(v, 1, 500, "Address cannot exceed 500 characters")

    @field_validator("total_area")
    def total_area_positive(cls, v):
        return check_range(v, 0, None, "Total area must be a positive number")

    @field_validator("price_per_sq_ft")
    def price_positive(cls, v):
        return check_range(v, 0, None, "Price per sq ft must be a positive number")

    @field_validator("status")
    def status_known(cls, v):
        if v is not None and v not in COLONY_STATUSES:
            raise ValueError("Invalid colony status")
        return v

    @field_validator("images")
    def images_are_urls(cls, v):
        if v is None:
            return v
        cleaned = [sanitize_url(url) for url in v]
        if any(url is None for url in cleaned):
            raise ValueError("Each image must be a valid URL")
        return cleaned

    @field_validator("layout_url")
    def layout_is_url(cls, v):
        if v is None:
            return v
        cleaned = sanitize_url(v)
        if cleaned is None:
            raise ValueError("Layout must be a valid URL")
        return cleaned


class ColonyCreateRequest(ColonyUpdateRequest):
    name: str
    address: str
    status: str = "planning"
    amenities: List[Amenity] = []
    images: List[str] = []
    approvals: List[Approval] = []
    features: List[str] = []
    sellers: List[Seller] = []
    nearby_places: List[NearbyPlace] = []


class ColonyListQuery(PaginationQuery):
    city: Optional[str] = None
    status: Optional[str] = None

    @field_validator("status")
    def status_filter(cls, v):
        if v is not None and v not in COLONY_STATUSES:
            raise ValueError("Invalid status filter")
        return v


# ========================================================================
# City schemas
# ========================================================================

class CityUpdateRequest(RequestModel):
    name: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    is_active: Optional[bool] = None
    coordinates: Optional[GeoPoint] = None

    @field_validator("name")
    def name_rules(cls, v):
        return v if v is None else check_city_name(v)

    @field_validator("state", "country")
    def region_length(cls, v):
        if v is None:
            return v
        return check_length(v, 2, 50, "State and country must be between 2 and 50 characters")

    @field_validator("pincode")
    def pincode_digits(cls, v):
        if v is None:
            return v
        return check_pattern(v, r"\d{6}", "Postal code must be 6 digits")


class CityCreateRequest(CityUpdateRequest):
    name: str
    state: str
    country: str = DEFAULT_COUNTRY
    is_active: bool = True


class CityListQuery(RequestModel):
    search: Optional[str] = None
    state: Optional[str] = None
    is_active: Optional[bool] = None
