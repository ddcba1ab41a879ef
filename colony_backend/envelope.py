"""
colony_backend/envelope.py

Uniform response shape for every endpoint.

    success: {"success": true, "message"?: str, "data": ...}
    list:    {"success": true, "message"?: str, "data": ..., "pagination": {current, pages, total}}
    failure: {"success": false, "message": str, "errors"?: [...]}

install_exception_handlers() makes every failure path (taxonomy errors,
framework HTTP errors, request parsing errors, unexpected exceptions) use the
failure shape.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from colony_backend.errors import ApiError, StoreFailure

logger = logging.getLogger(__name__)


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = data
    return body


def paginate(page: int, limit: int, total: int) -> Dict[str, int]:
    """Pagination block: pages = ceil(total / limit)."""
    return {
        "current": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "total": total,
    }


def page_bounds(page: int, limit: int) -> Tuple[int, int]:
    """Return (offset, limit) for a 1-based page."""
    return (max(page, 1) - 1) * limit, limit


def paginated(
    data: Any,
    pagination: Dict[str, int],
    message: Optional[str] = None,
) -> Dict[str, Any]:
    body = success(data, message)
    body["pagination"] = pagination
    return body


def failure(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _json_safe(value: Any) -> Any:
    # JSONResponse refuses NaN/Infinity; echo them back as text
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, list):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    return value


def _respond(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=_json_safe(jsonable_encoder(body)))


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        if isinstance(exc, StoreFailure):
            logger.error("[STORE] %s %s: %s", request.method, request.url.path, exc.detail)
        return _respond(exc.status_code, failure(exc.message, exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        return _respond(exc.status_code, failure(message))

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        errors = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ())]
            location = loc[0] if loc else "body"
            errors.append({
                "field": ".".join(loc[1:]) or None,
                "message": err.get("msg", "Invalid value"),
                "rejectedValue": err.get("input"),
                "location": location,
            })
        return _respond(400, failure("Validation failed", errors))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("[API] Unhandled error on %s %s", request.method, request.url.path)
        return _respond(500, failure("Server error"))
