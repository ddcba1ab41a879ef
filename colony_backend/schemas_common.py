"""
colony_backend/schemas_common.py

Schemas shared across resources: pagination and coordinate pairs.
"""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator

from colony_backend.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from colony_backend.validation import RequestModel


class PaginationQuery(RequestModel):
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT
    search: Optional[str] = None

    @field_validator("page")
    def page_positive(cls, v):
        if v < 1:
            raise ValueError("Page must be a positive integer")
        return v

    @field_validator("limit")
    def limit_in_range(cls, v):
        if not (1 <= v <= MAX_PAGE_LIMIT):
            raise ValueError(f"Limit must be between 1 and {MAX_PAGE_LIMIT}")
        return v


class GeoPoint(RequestModel):
    """Latitude/longitude pair used by cities and colonies."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("latitude")
    def latitude_in_range(cls, v):
        if v is not None and not (-90 <= v <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    def longitude_in_range(cls, v):
        if v is not None and not (-180 <= v <= 180):
            raise ValueError("Longitude must be between -180 and 180")
        return v
