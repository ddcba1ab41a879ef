# colony_backend/db.py
# SQLite connection management and collection bootstrap for the document store

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path as FsPath
from typing import Generator, Optional

from colony_backend.config import DATABASE_PATH

logger = logging.getLogger(__name__)

# Every entity lives in its own table as a JSON document
COLLECTIONS = (
    "cities",
    "colonies",
    "plots",
    "properties",
    "users",
    "roles",
    "bookings",
)

# Expression indexes over hot lookup paths: (collection, index suffix, json path)
DOCUMENT_INDEXES = (
    ("plots", "colony", "$.colony"),
    ("plots", "plot_number", "$.plotNumber"),
    ("users", "email", "$.email"),
    ("users", "role", "$.role"),
    ("bookings", "plot", "$.plot"),
    ("properties", "colony", "$.colony"),
)


def resolve_db_path(path: Optional[str] = None) -> str:
    """Resolve the database file; relative paths live beside this package."""
    raw = path or DATABASE_PATH
    if raw == ":memory:":
        return raw
    candidate = FsPath(raw)
    if not candidate.is_absolute():
        candidate = FsPath(__file__).resolve().parent / candidate
    return str(candidate)


@contextmanager
def get_db_connection(path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    Yields a sqlite3.Connection with Row factory; always closed on exit.
    """
    conn = sqlite3.connect(resolve_db_path(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(path: Optional[str] = None) -> None:
    """Create collection tables and indexes (idempotent)."""
    with get_db_connection(path) as conn:
        cur = conn.cursor()
        for name in COLLECTIONS:
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {name} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cur.execute(f"CREATE INDEX IF NOT EXISTS idx_{name}_created_at ON {name}(created_at)")

        for collection, suffix, json_path in DOCUMENT_INDEXES:
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{collection}_{suffix} "
                f"ON {collection}(json_extract(data, '{json_path}'))"
            )

        conn.commit()

    logger.info("[DB] Ensured %d collections at %s", len(COLLECTIONS), resolve_db_path(path))
