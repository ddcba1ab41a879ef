"""
colony_backend/schemas_users.py

Pydantic schemas for users and roles.

Security notes:
- email is syntax-checked then normalized (case and provider alias folding)
- password must mix lower, upper and digit; it is hashed before storage
- phone is reduced to digits and prefixed (+91 for 10-digit numbers)
"""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import EmailStr, field_validator

from colony_backend.sanitizers import sanitize_email, sanitize_phone
from colony_backend.schemas_common import PaginationQuery
from colony_backend.validation import (
    RequestModel,
    check_length,
    check_object_id,
    check_pattern,
    check_range,
)

PERSON_NAME_PATTERN = r"[A-Za-z\s\-.]+"


class Address(RequestModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


def _normalize_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    phone = sanitize_phone(v)
    if phone is None:
        raise ValueError("Please provide a valid phone number")
    return phone


class UserUpdateRequest(RequestModel):
    """Fields an administrator may change after creation."""
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    address: Optional[Address] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    def name_rules(cls, v):
        if v is None:
            return v
        check_length(v, 2, 100, "Name must be between 2 and 100 characters")
        return check_pattern(v, PERSON_NAME_PATTERN, "Name can only contain letters, spaces, hyphens, and periods")

    @field_validator("phone")
    def phone_normalized(cls, v):
        return _normalize_phone(v)

    @field_validator("role")
    def role_is_object_id(cls, v):
        return check_object_id(v, "Invalid role ID format")


class UserCreateRequest(UserUpdateRequest):
    name: str
    email: EmailStr
    password: str
    role: str
    is_active: bool = True

    @field_validator("email")
    def email_normalized(cls, v):
        email = sanitize_email(str(v))
        if email is None:
            raise ValueError("Please provide a valid email address")
        return check_length(email, 3, 100, "Email cannot exceed 100 characters")

    @field_validator("password")
    def password_strength(cls, v):
        check_length(v, 6, 100, "Password must be between 6 and 100 characters")
        if not (re.search(r"[a-z]", v) and re.search(r"[A-Z]", v) and re.search(r"\d", v)):
            raise ValueError(
                "Password must contain at least one lowercase letter, one uppercase letter, and one number"
            )
        return v


class UserListQuery(PaginationQuery):
    role: Optional[str] = None
    status: Optional[str] = None

    @field_validator("status")
    def status_filter(cls, v):
        if v is not None and v not in ("active", "inactive"):
            raise ValueError("Status must be active or inactive")
        return v


# ========================================================================
# Roles
# ========================================================================

class RoleUpdateRequest(RequestModel):
    name: Optional[str] = None
    description: Optional[str] = None
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None
    level: Optional[int] = None

    @field_validator("name")
    def name_not_empty(cls, v):
        if v is None:
            return v
        return check_length(v, 1, 50, "Role name must be between 1 and 50 characters")

    @field_validator("permissions")
    def permissions_not_empty(cls, v):
        if v is None:
            return v
        tokens = [p for p in v if p]
        if not tokens:
            raise ValueError("At least one permission is required")
        return sorted(set(tokens), key=tokens.index)

    @field_validator("level")
    def level_positive(cls, v):
        return check_range(v, 1, 100, "Level must be between 1 and 100")


class RoleCreateRequest(RoleUpdateRequest):
    name: str
    permissions: List[str]
    is_active: bool = True
    level: int = 1
