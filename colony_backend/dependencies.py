"""
colony_backend/dependencies.py

Reusable FastAPI dependencies for permission enforcement and service wiring.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends

from colony_backend.auth_context import Principal, get_store, require_principal
from colony_backend.config import IS_DEV
from colony_backend.counters import ColonyCounters
from colony_backend.errors import PermissionDenied
from colony_backend.rbac import check
from colony_backend.store import DocumentStore

logger = logging.getLogger(__name__)


def get_counters(store: DocumentStore = Depends(get_store)) -> ColonyCounters:
    """Counter recompute wired to the plot collection as its query interface."""
    return ColonyCounters(plots=store.plots, colonies=store.colonies)


def authorize(*tokens: str) -> Callable:
    """
    FastAPI dependency factory for permission checks.

    The principal passes if its role holds any of the given tokens or "all".

    Usage in routes:
        @router.post("", dependencies=[Depends(authorize("plot_create", "all"))])
        def create_plot(principal: Principal = Depends(require_principal)):
            ...

    Raises:
        PermissionDenied(403): If the role holds none of the tokens
    """
    def _check_permission(principal: Principal = Depends(require_principal)) -> Principal:
        if not check(principal.permissions, tokens):
            if IS_DEV:
                logger.info(
                    "[AUTHZ] Permission denied: required=%s, role=%s",
                    ",".join(tokens), principal.role_name,
                )
            raise PermissionDenied(f"User role {principal.role_name or 'none'} is not authorized to access this route")

        if IS_DEV:
            logger.debug("[AUTHZ] Permission granted: required=%s, role=%s", ",".join(tokens), principal.role_name)
        return principal

    return _check_permission
