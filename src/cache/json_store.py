# src/cache/json_store.py — v1
"""JSON file-based cache store (default CACHE_BACKEND=json).

All page records live in a single JSON object file under CACHE_ROOT,
loaded lazily on first use and rewritten atomically after each change.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pagereader.cache.base_cache_store import BaseCacheStore
from pagereader.cache.models import KEY_PREFIX, PageRecord
from pagereader.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)

STORE_FILENAME = "page_cache.json"
CORRUPT_SUFFIX = ".corrupt"


class JsonCacheStore(BaseCacheStore):
    """Single-file cache store using a JSON object of page records."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> PageRecord | None:
        """Retrieve a page record by key."""
        raw = self._load().get(key)
        if raw is None:
            return None
        return self._parse(key, raw)

    async def put(self, key: str, record: PageRecord) -> None:
        """Store a page record."""
        data = dict(self._load())
        data[key] = record.to_store()
        self._save(data)

    async def delete(self, key: str) -> None:
        """Remove a page record."""
        await self.delete_many([key])

    async def delete_many(self, keys: list[str]) -> None:
        """Remove several records with a single rewrite."""
        data = dict(self._load())
        removed = [k for k in keys if data.pop(k, None) is not None]
        if removed:
            self._save(data)

    async def list_entries(self) -> dict[str, PageRecord]:
        """All valid page records."""
        entries: dict[str, PageRecord] = {}
        for key, raw in self._load().items():
            if not key.startswith(KEY_PREFIX):
                continue
            record = self._parse(key, raw)
            if record is not None:
                entries[key] = record
        return entries

    # --- Internals ---

    def _parse(self, key: str, raw: Any) -> PageRecord | None:
        try:
            return PageRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring malformed cache record %s: %s", key, e)
            return None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self._path.exists():
            self._data = {}
            return self._data
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheUnavailable(f"cannot read {self._path}: {e}") from e
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
        except ValueError as e:
            data = {}
            self._set_aside(e)
        self._data = data
        return data

    def _set_aside(self, error: ValueError) -> None:
        """Move a corrupt store file out of the way; the next write starts afresh."""
        corrupt = self._path.with_name(self._path.name + CORRUPT_SUFFIX)
        try:
            self._path.replace(corrupt)
        except OSError as e:
            logger.warning("Corrupt cache file %s (%s); could not move it aside: %s", self._path, error, e)
            return
        logger.warning("Corrupt cache file %s (%s); moved to %s", self._path, error, corrupt.name)

    def _save(self, data: dict[str, Any]) -> None:
        """Write *data* atomically, then make it the in-memory view."""
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(data, ensure_ascii=False), encoding="utf-8"
            )
            tmp.replace(self._path)
        except OSError as e:
            raise CacheUnavailable(f"cannot write {self._path}: {e}") from e
        self._data = data
