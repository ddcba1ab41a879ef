"""
colony_backend/schemas_plots.py

Pydantic schemas for plot create/update and plot list filters.

PlotUpdateRequest carries every field as optional together with all field
rules; PlotCreateRequest narrows the required ones. Both paths therefore run
the same validators.

totalPrice and bookingHistory are not accepted from callers: the price is
derived on every write and history is appended by bookings.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from colony_backend.sanitizers import sanitize_url
from colony_backend.schemas_common import PaginationQuery
from colony_backend.validation import (
    RequestModel,
    check_length,
    check_object_id,
    check_pattern,
    check_range,
)

PLOT_STATUSES = ("available", "blocked", "sold", "reserved")
FACINGS = ("north", "south", "east", "west", "northeast", "northwest", "southeast", "southwest")

PLOT_NUMBER_PATTERN = r"[A-Za-z0-9\-/\s]+"
FEATURE_PATTERN = r"[A-Za-z0-9\s\-,.]+"


# ========================================================================
# Sub-documents
# ========================================================================

class Dimensions(RequestModel):
    length: Optional[float] = None
    width: Optional[float] = None
    frontage: Optional[float] = None

    @field_validator("length", "width", "frontage")
    def non_negative(cls, v):
        return check_range(v, 0, None, "Dimensions cannot be negative")


class PlotCoordinates(RequestModel):
    x: Optional[float] = None
    y: Optional[float] = None


class NearbyAmenity(RequestModel):
    name: str
    distance: Optional[float] = None

    @field_validator("distance")
    def distance_non_negative(cls, v):
        return check_range(v, 0, None, "Distance cannot be negative")


class PlotDocument(RequestModel):
    name: str
    url: str
    type: Optional[str] = None


class RegistryDetails(RequestModel):
    registry_number: Optional[str] = None
    registry_date: Optional[datetime] = None
    stamp_duty: Optional[float] = None
    registration_fee: Optional[float] = None

    @field_validator("stamp_duty", "registration_fee")
    def fee_non_negative(cls, v):
        return check_range(v, 0, None, "Fees cannot be negative")


# ========================================================================
# Plot write schemas
# ========================================================================

class PlotUpdateRequest(RequestModel):
    """Partial update: every field optional, same rules as create."""
    plot_number: Optional[str] = None
    area: Optional[float] = None
    price_per_sq_ft: Optional[float] = None
    status: Optional[str] = None
    facing: Optional[str] = None
    corner: Optional[bool] = None
    road_width: Optional[float] = None
    dimensions: Optional[Dimensions] = None
    coordinates: Optional[PlotCoordinates] = None
    features: Optional[List[str]] = None
    nearby_amenities: Optional[List[NearbyAmenity]] = None
    images: Optional[List[str]] = None
    documents: Optional[List[PlotDocument]] = None
    current_owner: Optional[str] = None
    sold_date: Optional[datetime] = None
    registry_details: Optional[RegistryDetails] = None

    @field_validator("plot_number")
    def plot_number_rules(cls, v):
        if v is None:
            return v
        check_length(v, 1, 50, "Plot number must be between 1 and 50 characters")
        return check_pattern(
            v, PLOT_NUMBER_PATTERN,
            "Plot number can only contain letters, numbers, hyphens, slashes, and spaces",
        )

    @field_validator("area")
    def area_in_range(cls, v):
        return check_range(v, 50, 100000, "Area must be between 50 and 100,000 square feet")

    @field_validator("price_per_sq_ft")
    def price_in_range(cls, v):
        return check_range(v, 100, 50000, "Price per sq ft must be between ₹100 and ₹50,000")

    @field_validator("road_width")
    def road_width_in_range(cls, v):
        return check_range(v, 0, 200, "Road width must be between 0 and 200 feet")

    @field_validator("status")
    def status_known(cls, v):
        if v is not None and v not in PLOT_STATUSES:
            raise ValueError("Invalid plot status")
        return v

    @field_validator("facing")
    def facing_known(cls, v):
        if v is not None and v not in FACINGS:
            raise ValueError("Invalid facing direction")
        return v

    @field_validator("features")
    def features_rules(cls, v):
        if v is None:
            return v
        for feature in v:
            if len(feature) > 100 or not re.fullmatch(FEATURE_PATTERN, feature):
                raise ValueError("Each feature must be a valid string (max 100 characters)")
        return v

    @field_validator("images")
    def images_are_urls(cls, v):
        if v is None:
            return v
        cleaned = [sanitize_url(url) for url in v]
        if any(url is None for url in cleaned):
            raise ValueError("Each image must be a valid URL")
        return cleaned

    @field_validator("current_owner")
    def owner_is_object_id(cls, v):
        return check_object_id(v, "Invalid owner ID format")


class PlotCreateRequest(PlotUpdateRequest):
    plot_number: str
    colony: str
    area: float
    price_per_sq_ft: float
    facing: str
    status: str = "available"
    corner: bool = False
    road_width: float = 0
    features: List[str] = []
    images: List[str] = []
    nearby_amenities: List[NearbyAmenity] = []
    documents: List[PlotDocument] = []

    @field_validator("colony")
    def colony_is_object_id(cls, v):
        return check_object_id(v, "Invalid colony ID format")


# ========================================================================
# Query schemas
# ========================================================================

class PlotFilterQuery(RequestModel):
    """Filters for the public per-colony plot listing."""
    status: Optional[str] = None
    facing: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None

    @field_validator("status")
    def status_filter(cls, v):
        if v is not None and v not in PLOT_STATUSES:
            raise ValueError("Invalid status filter")
        return v

    @field_validator("facing")
    def facing_filter(cls, v):
        if v is not None and v not in FACINGS:
            raise ValueError("Invalid facing filter")
        return v

    @field_validator("min_price", "max_price", "min_area", "max_area")
    def bounds_non_negative(cls, v, info):
        label = info.field_name.replace("_", " ").capitalize()
        return check_range(v, 0, None, f"{label} must be a positive number")


class PlotListQuery(PaginationQuery):
    colony: Optional[str] = None
    status: Optional[str] = None

    @field_validator("colony")
    def colony_filter(cls, v):
        return check_object_id(v, "Invalid colony ID format")

    @field_validator("status")
    def status_filter(cls, v):
        if v is not None and v not in PLOT_STATUSES:
            raise ValueError("Invalid status filter")
        return v

