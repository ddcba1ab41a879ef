# ---------------------------------------------------------
# colony_backend/main.py
# Colony inventory backend
#
# Run: uvicorn colony_backend.main:app --reload (from repo root)
#
# - FastAPI + SQLite document store
# - /api/v1/cities      : city catalog
# - /api/v1/colonies    : colonies with derived plot counters
# - /api/v1/plots       : plot inventory (public colony listing)
# - /api/v1/properties  : marketing properties
# - /api/v1/users       : users and roles
# - /api/v1/bookings    : plot bookings
# - /api/v1/settings    : company settings
# ---------------------------------------------------------

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from colony_backend import (
    routes_bookings,
    routes_cities,
    routes_colonies,
    routes_plots,
    routes_properties,
    routes_users,
)
from colony_backend.auth_context import Principal, get_store, require_principal
from colony_backend.config import COMPANY_SETTINGS, CORS_ORIGINS, ENV, IS_PROD, LOG_LEVEL
from colony_backend.db import init_db
from colony_backend.dependencies import authorize
from colony_backend.envelope import install_exception_handlers, success
from colony_backend.errors import StoreFailure
from colony_backend.rbac import Permission
from colony_backend.sanitizers import sanitize_payload
from colony_backend.store import DocumentStore, now_iso

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------
app = FastAPI(title="Colony Inventory Backend", version="0.1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if IS_PROD else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

init_db()

# Roles first so /users/roles/* never reaches the /users/{id} handlers
app.include_router(routes_users.roles_router)
app.include_router(routes_users.router)
app.include_router(routes_cities.router)
app.include_router(routes_colonies.router)
app.include_router(routes_plots.router)
app.include_router(routes_properties.router)
app.include_router(routes_bookings.router)


# ---------------------------------------------------------
# Routes
# ---------------------------------------------------------
@app.get("/api/v1/health")
def health(store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        store.roles.count()
        database = "Connected"
    except StoreFailure as e:
        logger.error("[DB] Health check failed: %s", e.detail)
        database = "Disconnected"
    return success({
        "status": "OK",
        "timestamp": now_iso(),
        "environment": ENV,
        "database": database,
    }, "Colony inventory API is running")


@app.get("/api/v1/settings")
def get_settings(principal: Principal = Depends(require_principal)) -> Dict[str, Any]:
    return success(COMPANY_SETTINGS)


@app.put("/api/v1/settings")
def update_settings(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.SETTINGS_UPDATE)),
) -> Dict[str, Any]:
    """Echo the submitted settings; they are not persisted."""
    logger.info("[SETTINGS] Update submitted by=%s keys=%s", principal.user_id, sorted(body))
    return success(sanitize_payload(body), "Settings updated successfully")
