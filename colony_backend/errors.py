"""
colony_backend/errors.py

Error taxonomy shared by the store, the validation pipeline and the routes.

Every ApiError carries the HTTP status and the caller-facing message; the
envelope handlers turn them into {success: false, message, errors?}.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ApiError(Exception):
    """Base for failures that are reported to the caller."""
    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def errors(self) -> Optional[List[Dict[str, Any]]]:
        return None


class ValidationFailure(ApiError):
    """One or more field rules violated; carries every violation, not just the first."""
    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: List[Dict[str, Any]], message: Optional[str] = None):
        super().__init__(message)
        self.field_errors = errors

    def errors(self) -> Optional[List[Dict[str, Any]]]:
        return self.field_errors


class NotFound(ApiError):
    status_code = 404

    def __init__(self, entity: str, status_code: int = 404):
        super().__init__(f"{entity} not found")
        self.status_code = status_code


class ConflictFailure(ApiError):
    """Business-rule conflict, detected before any mutation is attempted."""
    status_code = 400


class StoreFailure(ApiError):
    """Storage error. Detail is logged, never returned to the caller."""
    status_code = 500
    message = "Server error"

    def __init__(self, detail: str = ""):
        super().__init__()
        self.detail = detail


class AuthError(ApiError):
    status_code = 401
    message = "Not authorized"


class PermissionDenied(ApiError):
    status_code = 403
    message = "Insufficient permissions"


class RecomputeFailure(Exception):
    """Counter recompute failed. Logged only; never surfaces as a request failure."""

    def __init__(self, colony_id: str, cause: Exception):
        super().__init__(f"Counter recompute failed for colony {colony_id}: {cause}")
        self.colony_id = colony_id
        self.cause = cause
