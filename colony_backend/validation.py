"""
colony_backend/validation.py

Single validation entry point for every create/update path.

Request schemas are pydantic models (see schemas_*.py). This module runs them
and converts pydantic's error list into the aggregate ValidationFailure
record list:

    {"field": "area", "message": "...", "rejectedValue": 12, "location": "body"}

All violations are reported together; validation never stops at the first one.
It also hosts the small rule helpers the schema validators share.
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from colony_backend.errors import ValidationFailure
from colony_backend.sanitizers import is_valid_object_id

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestModel(BaseModel):
    """Base for request schemas: camelCase on the wire, unknown fields dropped."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
        extra="ignore",
    )


# ---------------------------------------------------------
# Rule helpers (raise ValueError with the caller-facing message)
# ---------------------------------------------------------
def check_length(value: str, min_len: int, max_len: int, message: str) -> str:
    if not (min_len <= len(value) <= max_len):
        raise ValueError(message)
    return value


def check_pattern(value: str, pattern: str, message: str) -> str:
    if not re.fullmatch(pattern, value):
        raise ValueError(message)
    return value


def check_range(
    value: Optional[float],
    min_value: Optional[float],
    max_value: Optional[float],
    message: str,
) -> Optional[float]:
    if value is None:
        return value
    if not math.isfinite(value):
        raise ValueError(message)
    if min_value is not None and value < min_value:
        raise ValueError(message)
    if max_value is not None and value > max_value:
        raise ValueError(message)
    return value


def check_object_id(value: Optional[str], message: str = "Invalid ID format") -> Optional[str]:
    if value is None:
        return value
    if not is_valid_object_id(value):
        raise ValueError(message)
    return value.lower()


# ---------------------------------------------------------
# Error conversion
# ---------------------------------------------------------
def _message(err: Dict[str, Any]) -> str:
    ctx = err.get("ctx") or {}
    if err.get("type") in ("value_error", "assertion_error") and "error" in ctx:
        return str(ctx["error"])
    return err.get("msg", "Invalid value")


def format_errors(exc: ValidationError, location: str = "body") -> List[Dict[str, Any]]:
    """Flatten a pydantic ValidationError into field error records."""
    records = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        missing = err.get("type") == "missing"
        records.append({
            "field": ".".join(loc) if loc else None,
            "message": _message(err),
            "rejectedValue": None if missing else err.get("input"),
            "location": location,
        })
    return records


def validate_payload(model: Type[ModelT], data: Any, location: str = "body") -> ModelT:
    """Validate a payload against a schema or raise ValidationFailure with every violation."""
    if not isinstance(data, dict):
        raise ValidationFailure([{
            "field": None,
            "message": "Request body must be a JSON object",
            "rejectedValue": data,
            "location": location,
        }])
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure(format_errors(exc, location)) from exc


def validate_query(model: Type[ModelT], params: Dict[str, Any]) -> ModelT:
    return validate_payload(model, dict(params), location="query")


def to_document(model: BaseModel) -> Dict[str, Any]:
    """Create path: camelCase JSON-ready dict with defaults, without nulls."""
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)


def to_changes(model: BaseModel, keep_null: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Update path: only the fields the caller sent.

    Explicit nulls are dropped except for the fields in keep_null, which may
    be cleared.
    """
    changes = model.model_dump(by_alias=True, mode="json", exclude_unset=True)
    allowed = set(keep_null)
    return {k: v for k, v in changes.items() if v is not None or k in allowed}


def require_object_id(value: str, field: str = "id", location: str = "params") -> str:
    """Path identifiers must be 24-hex ids; malformed ones are a 400, not a store lookup."""
    if not is_valid_object_id(value):
        raise ValidationFailure([{
            "field": field,
            "message": "Invalid ID format",
            "rejectedValue": value,
            "location": location,
        }])
    return value.lower()
