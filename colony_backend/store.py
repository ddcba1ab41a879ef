"""
colony_backend/store.py

Document store over SQLite.

Each collection is a table of JSON documents addressed by a 24-character hex
identifier. Filters are a small Mongo-like dict language compiled to
json_extract() predicates:

    {"colony": "65f...", "status": "available"}            equality
    {"totalPrice": {"$gte": 100000, "$lte": 900000}}         comparisons
    {"status": {"$in": ["available", "reserved"]}}           membership
    {"coordinates.x": 10}                                     dotted paths

Free-text search is a separate argument, (fields, term), matched
case-insensitively as a substring across the fields.

There are no transactions spanning calls: every operation opens, commits and
closes its own connection.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from colony_backend.config import IS_DEV
from colony_backend.db import COLLECTIONS, get_db_connection
from colony_backend.errors import StoreFailure

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

_OPERATORS = {
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
    "$ne": "!=",
}

# Row-level columns that can be filtered/sorted without json_extract
_COLUMNS = {"id": "id", "createdAt": "created_at", "updatedAt": "updated_at"}


def new_object_id() -> str:
    """24 hex chars: 4-byte big-endian timestamp followed by 8 random bytes."""
    return int(time.time()).to_bytes(4, "big").hex() + os.urandom(8).hex()


def now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="microseconds") + "Z"


def _column(field: str) -> str:
    if field in _COLUMNS:
        return _COLUMNS[field]
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"json_extract(data, '$.{field}')"


def _bind(value: Any) -> Any:
    # json_extract yields 1/0 for JSON booleans
    if isinstance(value, bool):
        return int(value)
    return value


def compile_filter(
    filters: Optional[Dict[str, Any]],
    search: Optional[Tuple[Sequence[str], str]] = None,
) -> Tuple[str, List[Any]]:
    """Compile a filter dict (+ optional search) into a WHERE clause and params."""
    clauses: List[str] = []
    params: List[Any] = []

    for field, condition in (filters or {}).items():
        column = _column(field)
        if isinstance(condition, dict):
            for op, value in condition.items():
                if op == "$in":
                    values = list(value)
                    if not values:
                        clauses.append("0")
                        continue
                    clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
                    params.extend(_bind(v) for v in values)
                elif op in _OPERATORS:
                    if op == "$ne" and value is None:
                        clauses.append(f"{column} IS NOT NULL")
                        continue
                    clauses.append(f"{column} {_OPERATORS[op]} ?")
                    params.append(_bind(value))
                else:
                    raise ValueError(f"Unsupported operator: {op}")
        elif condition is None:
            clauses.append(f"{column} IS NULL")
        else:
            clauses.append(f"{column} = ?")
            params.append(_bind(condition))

    if search:
        fields, term = search
        if term:
            pattern = f"%{term}%"
            ors = [f"{_column(f)} LIKE ? COLLATE NOCASE" for f in fields]
            clauses.append("(" + " OR ".join(ors) + ")")
            params.extend(pattern for _ in fields)

    where = " AND ".join(clauses) if clauses else "1"
    return where, params


def _row_to_document(row: sqlite3.Row) -> Dict[str, Any]:
    doc = json.loads(row["data"])
    doc["id"] = row["id"]
    doc["createdAt"] = row["created_at"]
    doc["updatedAt"] = row["updated_at"]
    return doc


def _strip_meta(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in ("id", "createdAt", "updatedAt")}


class Collection:
    """CRUD over one collection table."""

    def __init__(self, store: "DocumentStore", name: str):
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {name}")
        self.store = store
        self.name = name

    def _execute(self, label: str, query: str, params: Iterable[Any] = (), write: bool = False):
        try:
            with get_db_connection(self.store.db_path) as conn:
                cur = conn.cursor()
                cur.execute(query, tuple(params))
                if write:
                    conn.commit()
                    return cur.rowcount
                return cur.fetchall()
        except sqlite3.Error as e:
            logger.error("[STORE] %s on %s failed: %s", label, self.name, e)
            raise StoreFailure(str(e)) from e

    def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[Tuple[Sequence[str], str]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        where, params = compile_filter(filters, search)
        query = f"SELECT id, data, created_at, updated_at FROM {self.name} WHERE {where}"
        order = sort or [("createdAt", -1)]
        query += " ORDER BY " + ", ".join(
            f"{_column(field)} {'DESC' if direction < 0 else 'ASC'}" for field, direction in order
        )
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params = params + [int(limit), int(offset)]
        rows = self._execute("find", query, params)
        return [_row_to_document(r) for r in rows]

    def find_one(self, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        docs = self.find(filters, limit=1)
        return docs[0] if docs else None

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            "get",
            f"SELECT id, data, created_at, updated_at FROM {self.name} WHERE id = ?",
            (doc_id,),
        )
        return _row_to_document(rows[0]) if rows else None

    def count(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[Tuple[Sequence[str], str]] = None,
    ) -> int:
        where, params = compile_filter(filters, search)
        rows = self._execute("count", f"SELECT COUNT(*) AS n FROM {self.name} WHERE {where}", params)
        return int(rows[0]["n"])

    def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        doc_id = doc.get("id") or new_object_id()
        now = now_iso()
        body = _strip_meta(doc)
        self._execute(
            "insert",
            f"INSERT INTO {self.name} (id, data, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (doc_id, json.dumps(body), now, now),
            write=True,
        )
        if IS_DEV:
            logger.debug("[STORE] Inserted %s/%s", self.name, doc_id)
        return {**body, "id": doc_id, "createdAt": now, "updatedAt": now}

    def replace(self, doc_id: str, doc: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        now = now_iso()
        body = _strip_meta(doc)
        changed = self._execute(
            "replace",
            f"UPDATE {self.name} SET data = ?, updated_at = ? WHERE id = ?",
            (json.dumps(body), now, doc_id),
            write=True,
        )
        if not changed:
            return None
        return self.get(doc_id)

    def update(self, doc_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Shallow-merge changes into the stored document (read, merge, write back)."""
        current = self.get(doc_id)
        if current is None:
            return None
        merged = {**_strip_meta(current), **_strip_meta(changes)}
        return self.replace(doc_id, merged)

    def delete(self, doc_id: str) -> bool:
        removed = self._execute("delete", f"DELETE FROM {self.name} WHERE id = ?", (doc_id,), write=True)
        return removed > 0


class DocumentStore:
    """Entry point: one instance per database file."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path

    def collection(self, name: str) -> Collection:
        return Collection(self, name)

    @property
    def cities(self) -> Collection:
        return self.collection("cities")

    @property
    def colonies(self) -> Collection:
        return self.collection("colonies")

    @property
    def plots(self) -> Collection:
        return self.collection("plots")

    @property
    def properties(self) -> Collection:
        return self.collection("properties")

    @property
    def users(self) -> Collection:
        return self.collection("users")

    @property
    def roles(self) -> Collection:
        return self.collection("roles")

    @property
    def bookings(self) -> Collection:
        return self.collection("bookings")
