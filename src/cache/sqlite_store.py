# src/cache/sqlite_store.py — v2
"""SQLite-based store (CACHE_BACKEND=sqlite, the default).

Uses stdlib sqlite3 — no external dependency. Each INSERT OR REPLACE is a
single-row transaction, which gives per-key atomicity.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from lexiread.cache.base_store import DEFAULT_QUOTA_BYTES, BaseKeyValueStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteKeyValueStore(BaseKeyValueStore):
    """SQLite-backed key-value store."""

    def __init__(
        self, db_path: Path | str, quota_bytes: int = DEFAULT_QUOTA_BYTES
    ) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._quota_bytes = quota_bytes
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, keys: list[str] | None = None) -> dict[str, str]:
        if keys is None:
            cursor = self._conn.execute("SELECT key, value FROM kv_entries")
            return {row[0]: row[1] for row in cursor.fetchall()}
        result: dict[str, str] = {}
        for key in keys:
            row = self._conn.execute(
                "SELECT value FROM kv_entries WHERE key = ?", (key,)
            ).fetchone()
            if row is not None:
                result[key] = row[0]
        return result

    async def set(self, entries: dict[str, str]) -> None:
        self._conn.executemany(
            """INSERT OR REPLACE INTO kv_entries (key, value, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)""",
            list(entries.items()),
        )
        self._conn.commit()

    async def remove(self, keys: list[str]) -> None:
        self._conn.executemany(
            "DELETE FROM kv_entries WHERE key = ?", [(k,) for k in keys]
        )
        self._conn.commit()

    async def clear(self) -> None:
        self._conn.execute("DELETE FROM kv_entries")
        self._conn.commit()

    async def bytes_in_use(self) -> int:
        row = self._conn.execute(
            "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0)"
            " FROM kv_entries"
        ).fetchone()
        return int(row[0])

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
