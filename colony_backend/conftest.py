"""
colony_backend/conftest.py

Shared fixtures: a throwaway SQLite document store per test, seeded default
roles, users per role with bearer headers, and a TestClient wired to the store.

Run: pytest colony_backend -v
"""

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# main.py bootstraps DATABASE_PATH at import; point it away from the package dir
os.environ.setdefault("DATABASE_PATH", tempfile.mktemp(suffix=".db"))

from colony_backend.auth_context import create_access_token, get_store, hash_password  # noqa: E402
from colony_backend.counters import empty_counters  # noqa: E402
from colony_backend.db import init_db  # noqa: E402
from colony_backend.main import app  # noqa: E402
from colony_backend.seed import seed_roles  # noqa: E402
from colony_backend.store import DocumentStore  # noqa: E402

TEST_PASSWORD = "Secret123"


@pytest.fixture
def store(tmp_path):
    """Fresh document store backed by a temp file."""
    db_path = str(tmp_path / "colony_test.db")
    init_db(db_path)
    return DocumentStore(db_path)


@pytest.fixture
def role_ids(store):
    return seed_roles(store)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(store, role_id, email, name="Test User", is_active=True):
    return store.users.insert({
        "name": name,
        "email": email,
        "passwordHash": hash_password(TEST_PASSWORD),
        "role": role_id,
        "isActive": is_active,
    })


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user['id'])}"}


@pytest.fixture
def admin(store, role_ids):
    return make_user(store, role_ids["Admin"], "admin@example.com", "Admin User")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def manager_headers(store, role_ids):
    return auth_headers(make_user(store, role_ids["Manager"], "manager@example.com", "Manager User"))


@pytest.fixture
def agent_headers(store, role_ids):
    return auth_headers(make_user(store, role_ids["Agent"], "agent@example.com", "Agent User"))


@pytest.fixture
def buyer(store, role_ids):
    return make_user(store, role_ids["Buyer"], "buyer@example.com", "Buyer User")


@pytest.fixture
def buyer_headers(buyer):
    return auth_headers(buyer)


@pytest.fixture
def colony(store, admin):
    return store.colonies.insert({
        "name": "Green Valley",
        "address": "Ring Road, Nagpur",
        "status": "active",
        "createdBy": admin["id"],
        **empty_counters(),
    })


def plot_payload(colony_id, **overrides):
    body = {
        "plotNumber": "A-1",
        "colony": colony_id,
        "area": 1200,
        "pricePerSqFt": 1500,
        "facing": "east",
    }
    body.update(overrides)
    return body
