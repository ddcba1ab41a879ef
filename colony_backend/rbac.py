"""
colony_backend/rbac.py

Role-Based Access Control predicate.

A role holds a set of permission tokens ("plot_create", "colony_read", ...).
The literal token "all" grants everything. Routes name the tokens they
accept; the principal passes if its role holds any of them.

Pure Python logic - no FastAPI imports, no database access.
"""

from typing import Iterable, List, Set


ALL_PERMISSION = "all"


class Permission:
    """Permission token constants used by the routes."""
    USER_READ = "user_read"
    USER_CREATE = "user_create"
    USER_UPDATE = "user_update"
    USER_DELETE = "user_delete"

    COLONY_READ = "colony_read"
    COLONY_CREATE = "colony_create"
    COLONY_UPDATE = "colony_update"
    COLONY_DELETE = "colony_delete"

    PLOT_READ = "plot_read"
    PLOT_CREATE = "plot_create"
    PLOT_UPDATE = "plot_update"
    PLOT_DELETE = "plot_delete"

    BOOKING_READ = "booking_read"
    BOOKING_CREATE = "booking_create"
    BOOKING_UPDATE = "booking_update"

    CITY_READ = "city_read"
    CITY_CREATE = "city_create"
    CITY_UPDATE = "city_update"

    REGISTRY_READ = "registry_read"
    REGISTRY_CREATE = "registry_create"
    REGISTRY_UPDATE = "registry_update"

    SETTINGS_UPDATE = "settings_update"


# ============================================================================
# Default roles (provisioned by colony_backend.seed)
# ============================================================================

DEFAULT_ROLES: List[dict] = [
    {
        "name": "Admin",
        "description": "Full system access",
        "permissions": [ALL_PERMISSION],
        "level": 10,
    },
    {
        "name": "Manager",
        "description": "Management level access",
        "permissions": [
            Permission.USER_READ, Permission.USER_CREATE, Permission.USER_UPDATE,
            Permission.COLONY_READ, Permission.COLONY_CREATE, Permission.COLONY_UPDATE,
            Permission.PLOT_READ, Permission.PLOT_CREATE, Permission.PLOT_UPDATE,
            Permission.BOOKING_READ, Permission.BOOKING_CREATE, Permission.BOOKING_UPDATE,
            Permission.CITY_READ, Permission.CITY_CREATE, Permission.CITY_UPDATE,
        ],
        "level": 8,
    },
    {
        "name": "Agent",
        "description": "Sales agent access",
        "permissions": [
            Permission.COLONY_READ, Permission.PLOT_READ,
            Permission.BOOKING_READ, Permission.BOOKING_CREATE, Permission.BOOKING_UPDATE,
        ],
        "level": 5,
    },
    {
        "name": "Buyer",
        "description": "Customer access",
        "permissions": [Permission.COLONY_READ, Permission.PLOT_READ, Permission.BOOKING_READ],
        "level": 1,
    },
    {
        "name": "Lawyer",
        "description": "Legal documentation access",
        "permissions": [
            Permission.COLONY_READ, Permission.PLOT_READ, Permission.BOOKING_READ,
            Permission.REGISTRY_READ, Permission.REGISTRY_CREATE, Permission.REGISTRY_UPDATE,
        ],
        "level": 6,
    },
]


# ============================================================================
# Access check
# ============================================================================

def check(permissions: Iterable[str], required_tokens: Iterable[str]) -> bool:
    """
    Allow if the held permissions include "all" or any of the required tokens.

    Args:
        permissions: Tokens held by the principal's role
        required_tokens: Tokens any one of which is sufficient

    Returns:
        True to allow, False to deny. An empty requirement allows.
    """
    held: Set[str] = set(permissions or ())
    if ALL_PERMISSION in held:
        return True
    required = set(required_tokens or ())
    if not required:
        return True
    return bool(held & required)


def role_at_least(level: int, required_level: int) -> bool:
    """True if a role's integer level meets or exceeds the required level."""
    return (level or 0) >= required_level
