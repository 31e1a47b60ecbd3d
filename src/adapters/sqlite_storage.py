"""SQLite document store adapter.

Implements the core DocumentStore port as JSON documents grouped by
collection in a single SQLite table. Every call runs in a worker thread and is
bounded by a per-call timeout.
"""

from __future__ import annotations

import asyncio
import json
import re
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from core.errors import StoreTimeoutError

_T = TypeVar("_T")

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Unsupported document field: {field!r}")
    return f"$.{field}"


class SQLiteDocumentStore:
    """Thin SQLite wrapper that satisfies the DocumentStore contract."""

    def __init__(self, db_path: str, timeout: float = 10.0) -> None:
        self._db_path = db_path
        self._timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - documents: append-only JSON documents keyed by collection name
        """

        with closing(self._connect()) as conn, conn:
            # Fields:
            # - id: auto-increment primary key, exposed as "_id"
            # - collection: logical collection name ("messages", "motd")
            # - body: the document as JSON text
            # - inserted_at: UTC insertion timestamp, used for time windows
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    body TEXT NOT NULL,
                    inserted_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS documents_collection ON documents (collection, inserted_at)"
            )

    async def _bounded(self, operation: str, func: Callable[..., _T], *args: Any) -> _T:
        # The worker thread keeps running after a timeout; callers only stop
        # waiting for it.
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise StoreTimeoutError(f"Document store {operation} timeout after {self._timeout:g}s") from exc

    async def insert(self, collection: str, document: dict[str, Any]) -> int:
        """Append a document and return its row id."""

        return await self._bounded("insert", self._insert_sync, collection, document)

    async def find(
        self,
        collection: str,
        filter: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
        sort: Optional[tuple[str, int]] = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching top-level equality filters.

        ``sort`` is a ``(field, direction)`` pair; ``"_id"`` sorts by
        insertion order and a negative direction sorts descending.
        """

        return await self._bounded("find", self._find_sync, collection, filter or {}, limit, sort)

    async def count(self, collection: str, since: Optional[datetime] = None) -> int:
        """Count documents in a collection, optionally inserted after ``since``."""

        return await self._bounded("count", self._count_sync, collection, since)

    def _insert_sync(self, collection: str, document: dict[str, Any]) -> int:
        inserted_at = datetime.now(timezone.utc)
        with closing(self._connect()) as conn, conn:
            cur = conn.execute(
                "INSERT INTO documents (collection, body, inserted_at) VALUES (?, ?, ?)",
                (collection, json.dumps(document, ensure_ascii=False), inserted_at.isoformat()),
            )
            return int(cur.lastrowid)

    def _find_sync(
        self,
        collection: str,
        filter: dict[str, Any],
        limit: Optional[int],
        sort: Optional[tuple[str, int]],
    ) -> list[dict[str, Any]]:
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for field, value in filter.items():
            clauses.append("json_extract(body, ?) = ?")
            params.extend([_json_path(field), value])

        query = f"SELECT id, body FROM documents WHERE {' AND '.join(clauses)}"
        if sort is not None:
            field, direction = sort
            order = "DESC" if direction < 0 else "ASC"
            if field == "_id":
                query += f" ORDER BY id {order}"
            else:
                query += f" ORDER BY json_extract(body, ?) {order}, id {order}"
                params.append(_json_path(field))
        else:
            query += " ORDER BY id ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        with closing(self._connect()) as conn:
            rows = conn.execute(query, params).fetchall()

        documents = []
        for row in rows:
            document = json.loads(row["body"])
            document["_id"] = row["id"]
            documents.append(document)
        return documents

    def _count_sync(self, collection: str, since: Optional[datetime]) -> int:
        query = "SELECT COUNT(*) AS total FROM documents WHERE collection = ?"
        params: list[Any] = [collection]
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            query += " AND inserted_at >= ?"
            params.append(since.astimezone(timezone.utc).isoformat())
        with closing(self._connect()) as conn:
            row = conn.execute(query, params).fetchone()
        return int(row["total"])
