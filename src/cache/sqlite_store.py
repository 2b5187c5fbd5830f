# src/cache/sqlite_store.py — v1
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. The connection is opened on
first use so that an unusable database path surfaces as CacheUnavailable
from the operation that needed it.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pagereader.cache.base_cache_store import BaseCacheStore
from pagereader.cache.models import PageRecord
from pagereader.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)

STORE_FILENAME = "page_cache.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS page_records (
    key TEXT PRIMARY KEY,
    ocr_text TEXT,
    translated_text TEXT,
    timestamp INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_timestamp ON page_records(timestamp);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path))
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise CacheUnavailable(f"cannot open {self._db_path}: {e}") from e
        self._conn = conn
        return conn

    def _execute(self, sql: str, params: tuple = (), commit: bool = False) -> sqlite3.Cursor:
        conn = self._connect()
        try:
            cursor = conn.execute(sql, params)
            if commit:
                conn.commit()
        except sqlite3.Error as e:
            raise CacheUnavailable(f"sqlite error on {self._db_path}: {e}") from e
        return cursor

    async def get(self, key: str) -> PageRecord | None:
        """Retrieve a page record by key."""
        row = self._execute(
            "SELECT ocr_text, translated_text, timestamp FROM page_records WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        return PageRecord(ocr_text=row[0], translated_text=row[1], timestamp=row[2])

    async def put(self, key: str, record: PageRecord) -> None:
        """Store a page record (upsert)."""
        self._execute(
            """INSERT OR REPLACE INTO page_records
               (key, ocr_text, translated_text, timestamp)
               VALUES (?, ?, ?, ?)""",
            (key, record.ocr_text, record.translated_text, record.timestamp),
            commit=True,
        )

    async def delete(self, key: str) -> None:
        """Remove a page record."""
        self._execute("DELETE FROM page_records WHERE key = ?", (key,), commit=True)

    async def delete_prefix(self, prefix: str) -> int:
        """Remove every record whose key starts with *prefix*."""
        cursor = self._execute(
            "DELETE FROM page_records WHERE substr(key, 1, ?) = ?",
            (len(prefix), prefix),
            commit=True,
        )
        return cursor.rowcount

    async def list_entries(self) -> dict[str, PageRecord]:
        """All stored page records."""
        rows = self._execute(
            "SELECT key, ocr_text, translated_text, timestamp FROM page_records"
        ).fetchall()
        return {
            row[0]: PageRecord(ocr_text=row[1], translated_text=row[2], timestamp=row[3])
            for row in rows
        }

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
