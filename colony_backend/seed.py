# colony_backend/seed.py
# Idempotent bootstrap: default roles, admin user, starter cities
# Run: python -m colony_backend.seed [--db PATH]

import argparse
import logging
import os
from typing import Dict, Optional

from colony_backend.auth_context import hash_password
from colony_backend.db import init_db
from colony_backend.rbac import DEFAULT_ROLES
from colony_backend.sanitizers import sanitize_email
from colony_backend.store import DocumentStore

logger = logging.getLogger(__name__)

STARTER_CITIES = (
    {"name": "Mumbai", "state": "Maharashtra"},
    {"name": "Pune", "state": "Maharashtra"},
    {"name": "Nashik", "state": "Maharashtra"},
    {"name": "Nagpur", "state": "Maharashtra"},
    {"name": "Aurangabad", "state": "Maharashtra"},
)


def seed_roles(store: DocumentStore) -> Dict[str, str]:
    """Create missing default roles; returns {role name: id}."""
    ids = {}
    for role in DEFAULT_ROLES:
        existing = store.roles.find_one({"name": role["name"]})
        if existing:
            ids[role["name"]] = existing["id"]
            continue
        created = store.roles.insert({**role, "isActive": True})
        ids[role["name"]] = created["id"]
        logger.info("[SEED] Created role: %s", role["name"])
    return ids


def seed_admin(store: DocumentStore, admin_role_id: str) -> Optional[dict]:
    email = sanitize_email(os.environ.get("ADMIN_EMAIL", "admin@jayshree.com"))
    if store.users.find_one({"email": email}):
        logger.info("[SEED] Admin user already exists: %s", email)
        return None
    admin = store.users.insert({
        "name": "System Administrator",
        "email": email,
        "passwordHash": hash_password(os.environ.get("ADMIN_PASSWORD", "Admin123")),
        "role": admin_role_id,
        "isActive": True,
    })
    logger.info("[SEED] Created admin user: %s", email)
    return admin


def seed_cities(store: DocumentStore) -> int:
    """Cities are unique by (name, state); existing pairs are skipped."""
    created = 0
    for city in STARTER_CITIES:
        if store.cities.find_one({"name": city["name"], "state": city["state"]}):
            continue
        store.cities.insert({**city, "country": "India", "isActive": True})
        created += 1
    logger.info("[SEED] Created %d cities", created)
    return created


def run_seed(db_path: Optional[str] = None) -> None:
    logger.info("[SEED] Starting database bootstrap...")
    init_db(db_path)
    store = DocumentStore(db_path)
    role_ids = seed_roles(store)
    seed_admin(store, role_ids["Admin"])
    seed_cities(store)
    logger.info("[SEED] Bootstrap complete")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed roles, admin user and cities")
    parser.add_argument("--db", default=None, help="SQLite file (defaults to DATABASE_PATH)")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    run_seed(args.db)
