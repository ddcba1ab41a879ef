"""
colony_backend/auth_context.py

Authentication primitives for FastAPI dependency injection.

Contains:
- hash_password / verify_password: salted PBKDF2 password hashing
- create_access_token / verify_token: JWT helpers
- Principal: the authenticated user with its role's permissions
- require_principal: FastAPI dependency resolving the bearer token

Token issuance endpoints live outside this service; create_access_token is
used by the seed script and the tests.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from colony_backend.config import ACCESS_TOKEN_MINUTES, ALGORITHM, IS_DEV, SECRET_KEY
from colony_backend.errors import AuthError, PermissionDenied
from colony_backend.sanitizers import is_valid_object_id
from colony_backend.store import DocumentStore

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our 401 envelope, not a bare 403
security = HTTPBearer(auto_error=False)

PBKDF2_ITERATIONS = 120_000


# ---------------------------------------------------------
# Store Helper
# ---------------------------------------------------------
_store = DocumentStore()


def get_store() -> DocumentStore:
    """
    Return the process-wide document store.
    Tests swap it through app.dependency_overrides.
    """
    return _store


# ---------------------------------------------------------
# Passwords
# ---------------------------------------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        _, iterations, salt, expected = password_hash.split("$")
    except (AttributeError, ValueError):
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


# ---------------------------------------------------------
# JWT
# ---------------------------------------------------------
def create_access_token(user_id: str, minutes: Optional[int] = None) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=minutes or ACCESS_TOKEN_MINUTES)
    return jwt.encode({"sub": user_id, "exp": expires}, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify JWT access token and return decoded payload.

    Raises:
        AuthError(401): If token is expired or invalid
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")


# ---------------------------------------------------------
# Principal
# ---------------------------------------------------------
class Principal(BaseModel):
    """
    Authenticated user resolved server-side from the bearer token.
    Permissions come from the user's Role record, never from the token.
    """
    user_id: str
    email: str
    name: Optional[str] = None
    role_id: Optional[str] = None
    role_name: Optional[str] = None
    permissions: List[str] = []
    level: int = 0


def require_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: DocumentStore = Depends(get_store),
) -> Principal:
    """
    Resolve the bearer token to a Principal.

    Raises:
        AuthError(401): Missing/invalid token or unknown user
        PermissionDenied(403): Inactive user
    """
    if credentials is None:
        raise AuthError("Not authorized, no token")

    payload = verify_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id or not is_valid_object_id(user_id):
        raise AuthError("Invalid token payload")

    user = store.users.get(user_id)
    if user is None:
        logger.warning("[AUTH] User not found: user_id=%s", user_id)
        raise AuthError("User not found")

    if not user.get("isActive", True):
        logger.warning("[AUTH] Inactive user attempted access: user_id=%s", user_id)
        raise PermissionDenied("Account inactive")

    role = store.roles.get(user["role"]) if user.get("role") else None
    principal = Principal(
        user_id=user["id"],
        email=user["email"],
        name=user.get("name"),
        role_id=role["id"] if role else None,
        role_name=role.get("name") if role else None,
        permissions=list(role.get("permissions", [])) if role and role.get("isActive", True) else [],
        level=int(role.get("level", 0)) if role else 0,
    )

    if IS_DEV:
        logger.debug(
            "[AUTH] Authenticated: user_id=%s, role=%s, permissions=%d",
            principal.user_id, principal.role_name, len(principal.permissions),
        )
    return principal
