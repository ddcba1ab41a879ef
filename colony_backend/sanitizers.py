"""
colony_backend/sanitizers.py

Value normalizers applied to inbound payloads.

Sanitizers never raise: they return the normalized value, or None / the
configured default when the input cannot be normalized. Rejection is the job
of the validation layer, which calls into these helpers.
"""

from __future__ import annotations

import html
import math
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")

# URL-validated fields pass through unescaped so query strings survive
URL_FIELDS = ("images", "layoutUrl")

_url_adapter = TypeAdapter(HttpUrl)

_GMAIL_DOMAINS = {"gmail.com", "googlemail.com"}
_PLUS_TAG_DOMAINS = {
    "outlook.com", "hotmail.com", "live.com",
    "icloud.com", "me.com",
}
_HYPHEN_TAG_DOMAINS = {"yahoo.com", "ymail.com", "rocketmail.com"}


def sanitize_string(value: Any) -> Any:
    """Trim and HTML-escape strings; anything else passes through."""
    if not isinstance(value, str):
        return value
    return html.escape(value.strip())


def sanitize_number(
    value: Any,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    default: Optional[float] = None,
) -> Optional[float]:
    """Parse a number and clamp it into [min_value, max_value]."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(parsed):
        return default
    if min_value is not None:
        parsed = max(min_value, parsed)
    if max_value is not None:
        parsed = min(max_value, parsed)
    return parsed


def sanitize_email(value: Any) -> Optional[str]:
    """
    Trim and normalize an email address.

    Lowercases the whole address and folds provider aliases:
    gmail drops dots and +tags (googlemail folds to gmail.com),
    outlook/hotmail/live/icloud drop +tags, yahoo drops -tags.
    """
    if not isinstance(value, str):
        return None
    email = value.strip()
    if email.count("@") < 1:
        return None
    local, _, domain = email.rpartition("@")
    if not local or not domain:
        return None
    local = local.lower()
    domain = domain.lower()

    if domain in _GMAIL_DOMAINS:
        local = local.split("+", 1)[0].replace(".", "")
        domain = "gmail.com"
    elif domain in _PLUS_TAG_DOMAINS:
        local = local.split("+", 1)[0]
    elif domain in _HYPHEN_TAG_DOMAINS:
        local = local.split("-", 1)[0]

    if not local:
        return None
    return f"{local}@{domain}"


def sanitize_phone(value: Any) -> Optional[str]:
    """
    Extract digits and format as E.164-ish.

    10 digits        -> "+91" + digits (Indian mobile)
    10 to 15 digits  -> "+" + digits
    anything else    -> None
    """
    if not isinstance(value, str):
        return None
    digits = re.sub(r"\D", "", value)
    if len(digits) == 10:
        return f"+91{digits}"
    if 10 <= len(digits) <= 15:
        return f"+{digits}"
    return None


def sanitize_url(value: Any) -> Optional[str]:
    """Return the trimmed URL if it is a well-formed http(s) URL, else None."""
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        _url_adapter.validate_python(candidate)
    except ValidationError:
        return None
    return candidate


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_RE.match(value))


def sanitize_date(value: Any) -> Optional[str]:
    """Normalize a date/datetime (or ISO string) to an ISO-8601 string."""
    if not value:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).isoformat()
    except ValueError:
        return None


def sanitize_payload(payload: Any, exclude: Iterable[str] = ()) -> Any:
    """
    Walk a request payload, sanitizing every string leaf and keeping its shape.

    Top-level keys listed in exclude (e.g. "password") are passed through untouched.
    """
    if isinstance(payload, list):
        return [sanitize_payload(item) for item in payload]
    if isinstance(payload, dict):
        skip = set(exclude)
        return {
            key: value if key in skip else sanitize_payload(value)
            for key, value in payload.items()
        }
    return sanitize_string(payload)


def sanitize_numbers(payload: Dict[str, Any], rules: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Apply sanitize_number to the named top-level fields.

    rules: {"area": {"min": 50, "max": 100000, "default": None}, ...}
    Fields absent from the payload are filled only when the rule has a default.
    """
    result = dict(payload)
    for field, rule in rules.items():
        if field not in result and rule.get("default") is None:
            continue
        result[field] = sanitize_number(
            result.get(field),
            min_value=rule.get("min"),
            max_value=rule.get("max"),
            default=rule.get("default"),
        )
    return result
