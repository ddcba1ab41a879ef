"""
colony_backend/routes_users.py

User and role administration endpoints.

Security:
- Password hashes never leave the service (public_user strips them)
- Email uniqueness is checked on the normalized address
- Roles referenced by a user cannot be deleted
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from colony_backend.auth_context import Principal, get_store, hash_password, require_principal
from colony_backend.config import IS_DEV
from colony_backend.dependencies import authorize
from colony_backend.envelope import page_bounds, paginate, paginated, success
from colony_backend.errors import ConflictFailure, NotFound, ValidationFailure
from colony_backend.rbac import Permission
from colony_backend.sanitizers import is_valid_object_id, sanitize_payload
from colony_backend.schemas_users import (
    RoleCreateRequest,
    RoleUpdateRequest,
    UserCreateRequest,
    UserListQuery,
    UserUpdateRequest,
)
from colony_backend.store import DocumentStore
from colony_backend.validation import (
    require_object_id,
    to_changes,
    to_document,
    validate_payload,
    validate_query,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
)

roles_router = APIRouter(
    prefix="/api/v1/users/roles",
    tags=["roles"],
)


def public_user(user: Dict[str, Any], store: Optional[DocumentStore] = None) -> Dict[str, Any]:
    """User document as returned to callers: no password hash, role summary attached."""
    doc = {k: v for k, v in user.items() if k != "passwordHash"}
    if store is not None and doc.get("role"):
        role = store.roles.get(doc["role"])
        doc["roleInfo"] = {"id": role["id"], "name": role.get("name"), "level": role.get("level")} if role else None
    return doc


def _invalid_role(value: Any) -> ValidationFailure:
    return ValidationFailure(
        [{"field": "role", "message": "Invalid role", "rejectedValue": value, "location": "body"}],
        message="Invalid role",
    )


# ---------------------------------------------------------
# Roles (registered before the user routes)
# ---------------------------------------------------------
@roles_router.get("/all")
def list_roles(
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """Active roles ordered by level, lowest first."""
    roles = store.roles.find({"isActive": True}, sort=[("level", 1)])
    return success({"roles": roles})


@roles_router.post("", status_code=201)
def create_role(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.USER_CREATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    payload = validate_payload(RoleCreateRequest, sanitize_payload(body))
    doc = to_document(payload)

    if store.roles.find_one({"name": doc["name"]}):
        raise ConflictFailure("Role already exists with this name")

    role = store.roles.insert(doc)
    logger.info("[ROLES] Created role=%s by=%s", role["name"], principal.user_id)
    return success({"role": role}, "Role created successfully")


@roles_router.put("/{role_id}")
def update_role(
    role_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.USER_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    role_id = require_object_id(role_id)
    payload = validate_payload(RoleUpdateRequest, sanitize_payload(body))
    changes = to_changes(payload, keep_null=("description",))

    role = store.roles.update(role_id, changes)
    if role is None:
        raise NotFound("Role")

    logger.info("[ROLES] Updated role_id=%s fields=%s by=%s", role_id, sorted(changes), principal.user_id)
    return success({"role": role}, "Role updated successfully")


@roles_router.delete("/{role_id}")
def delete_role(
    role_id: str,
    principal: Principal = Depends(authorize(Permission.USER_DELETE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    role_id = require_object_id(role_id)
    if store.roles.get(role_id) is None:
        raise NotFound("Role")

    if store.users.find_one({"role": role_id}):
        raise ConflictFailure("Cannot delete role assigned to users")

    store.roles.delete(role_id)
    logger.info("[ROLES] Deleted role_id=%s by=%s", role_id, principal.user_id)
    return success(None, "Role deleted successfully")


# ---------------------------------------------------------
# Users
# ---------------------------------------------------------
@router.get("")
def list_users(
    request: Request,
    principal: Principal = Depends(authorize(Permission.USER_READ)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Paginated user list.

    The role filter accepts a role id or a role name (case-insensitive).
    """
    params = validate_query(UserListQuery, request.query_params)

    query: Dict[str, Any] = {}
    if params.role:
        if is_valid_object_id(params.role):
            query["role"] = params.role.lower()
        else:
            matches = [r for r in store.roles.find() if r.get("name", "").lower() == params.role.lower()]
            if not matches:
                raise ValidationFailure(
                    [{"field": "role", "message": "Invalid role filter", "rejectedValue": params.role, "location": "query"}],
                    message="Invalid role filter",
                )
            query["role"] = matches[0]["id"]
    if params.status:
        query["isActive"] = params.status == "active"
    search = (("name", "email"), params.search) if params.search else None

    offset, limit = page_bounds(params.page, params.limit)
    users = store.users.find(query, search=search, limit=limit, offset=offset)
    total = store.users.count(query, search=search)

    return paginated(
        {"users": [public_user(u, store) for u in users]},
        paginate(params.page, params.limit, total),
    )


@router.get("/{user_id}")
def get_user(
    user_id: str,
    principal: Principal = Depends(require_principal),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    user_id = require_object_id(user_id)
    user = store.users.get(user_id)
    if user is None:
        raise NotFound("User")
    return success({"user": public_user(user, store)})


@router.post("", status_code=201)
def create_user(
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.USER_CREATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Create a user.

    Raises:
        ValidationFailure(400): Field rules violated, or the role does not exist
        ConflictFailure(400): Email already registered
    """
    payload = validate_payload(UserCreateRequest, sanitize_payload(body, exclude=("password",)))
    doc = to_document(payload)

    if store.users.find_one({"email": doc["email"]}):
        raise ConflictFailure("User already exists with this email")

    if store.roles.get(doc["role"]) is None:
        raise _invalid_role(doc["role"])

    doc["passwordHash"] = hash_password(doc.pop("password"))
    doc["createdBy"] = principal.user_id

    user = store.users.insert(doc)
    logger.info("[USERS] Created user_id=%s by=%s", user["id"], principal.user_id)
    return success({"user": public_user(user, store)}, "User created successfully")


@router.put("/{user_id}")
def update_user(
    user_id: str,
    body: Dict[str, Any] = Body(...),
    principal: Principal = Depends(authorize(Permission.USER_UPDATE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    """Update name, phone, role, address or isActive. Email and password are not editable here."""
    user_id = require_object_id(user_id)
    payload = validate_payload(UserUpdateRequest, sanitize_payload(body))
    changes = to_changes(payload, keep_null=("phone", "address"))

    if changes.get("role") and store.roles.get(changes["role"]) is None:
        raise _invalid_role(changes["role"])

    user = store.users.update(user_id, changes)
    if user is None:
        raise NotFound("User")

    if IS_DEV:
        logger.debug("[USERS] Updated user_id=%s fields=%s", user_id, sorted(changes))
    return success({"user": public_user(user, store)}, "User updated successfully")


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    principal: Principal = Depends(authorize(Permission.USER_DELETE)),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    user_id = require_object_id(user_id)
    if not store.users.delete(user_id):
        raise NotFound("User")
    logger.info("[USERS] Deleted user_id=%s by=%s", user_id, principal.user_id)
    return success(None, "User deleted successfully")
