# src/cache/content_cache.py — v1
"""Bounded, persistent cache of per-page derived text.

Reads never fail: a store that cannot be opened or read behaves as an
empty cache. Writes merge the new artifact into the page's record,
refresh its timestamp, then evict the oldest records until the
aggregate size fits the budget. An empty string is never reported as a
hit.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from pagereader.cache.base_cache_store import BaseCacheStore
from pagereader.cache.models import (
    KEY_PREFIX,
    CacheEntry,
    CacheKey,
    PageRecord,
    document_prefix,
    record_key,
)
from pagereader.core.errors import CacheUnavailable

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class ContentCache:
    """Key/value cache of OCR and translation text with size-bounded eviction.

    Args:
        store: Persistence backend, or None to run with caching disabled.
        max_bytes: Aggregate size budget.
        clock: Returns seconds since the epoch; injectable for tests.
    """

    def __init__(
        self,
        store: BaseCacheStore | None,
        max_bytes: int = DEFAULT_MAX_BYTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_bytes = DEFAULT_MAX_BYTES
        self.set_max_size(max_bytes)

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def set_max_size(self, max_bytes: int) -> None:
        """Change the size budget. Takes effect on the next write."""
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")
        self._max_bytes = max_bytes

    async def get(self, key: CacheKey) -> str | None:
        """Cached value for *key*, or None when absent, empty or unreadable."""
        entry = await self.get_entry(key)
        return entry.value if entry is not None else None

    async def get_entry(self, key: CacheKey) -> CacheEntry | None:
        """Cached value and write time for *key*."""
        if self._store is None:
            return None
        try:
            record = await self._store.get(key.record_key)
        except CacheUnavailable as e:
            logger.warning("Cache read failed for %s: %s", key.record_key, e)
            return None
        if record is None:
            return None
        value = record.value(key.kind)
        if not value:
            return None
        return CacheEntry(value=value, written_at=record.timestamp)

    async def put(self, key: CacheKey, value: str) -> None:
        """Store *value* under *key* and enforce the size budget.

        Raises:
            CacheUnavailable: The record could not be persisted.
        """
        if self._store is None:
            return
        now = self._now_ms()
        existing = await self._store.get(key.record_key)
        record = (existing or PageRecord(timestamp=now)).with_value(key.kind, value, now)
        await self._store.put(key.record_key, record)
        logger.debug("Cached %s for %s (%d chars)", key.kind.value, key.record_key, len(value))
        await self._enforce_budget()

    async def size(self) -> int:
        """Aggregate size of every stored record."""
        if self._store is None:
            return 0
        entries = await self._store.list_entries()
        return sum(record.serialized_size(k) for k, record in entries.items())

    async def clear_page(self, fingerprint: str, page: int) -> None:
        """Remove every artifact of one page."""
        if self._store is not None:
            await self._store.delete(record_key(fingerprint, page))

    async def clear(self, fingerprint: str) -> int:
        """Remove every artifact of one document. Returns records removed."""
        if self._store is None:
            return 0
        removed = await self._store.delete_prefix(document_prefix(fingerprint))
        logger.info("Cleared %d cached page(s) for document %s", removed, fingerprint[:12])
        return removed

    async def clear_all(self) -> int:
        """Remove every cached artifact. Returns records removed."""
        if self._store is None:
            return 0
        removed = await self._store.delete_prefix(KEY_PREFIX)
        logger.info("Cleared %d cached page(s)", removed)
        return removed

    def close(self) -> None:
        if self._store is not None:
            self._store.close()

    # --- Internals ---

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _enforce_budget(self) -> int:
        """Evict oldest records until the aggregate size fits. Returns evictions."""
        entries = await self._store.list_entries()  # type: ignore[union-attr]
        total = sum(record.serialized_size(k) for k, record in entries.items())
        if total <= self._max_bytes:
            return 0

        victims: list[str] = []
        oldest_first = sorted(entries.items(), key=lambda item: (item[1].timestamp, item[0]))
        for key, record in oldest_first:
            if total <= self._max_bytes:
                break
            victims.append(key)
            total -= record.serialized_size(key)

        await self._store.delete_many(victims)  # type: ignore[union-attr]
        logger.info(
            "Evicted %d cache record(s); %d bytes retained of %d allowed",
            len(victims), total, self._max_bytes,
        )
        return len(victims)
