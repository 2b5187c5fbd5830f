# src/cache/base_cache_store.py — v1
"""Abstract cache store interface.

Stores persist ``PageRecord`` objects under string keys. They raise
``CacheUnavailable`` when the backing file or database cannot be used;
``ContentCache`` decides which of those failures to tolerate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pagereader.cache.models import PageRecord


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> PageRecord | None:
        """Retrieve a page record by key."""

    @abstractmethod
    async def put(self, key: str, record: PageRecord) -> None:
        """Store a page record (upsert)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a page record. Missing keys are ignored."""

    @abstractmethod
    async def list_entries(self) -> dict[str, PageRecord]:
        """All stored records, keyed by storage key."""

    async def delete_many(self, keys: list[str]) -> None:
        """Remove several records."""
        for key in keys:
            await self.delete(key)

    async def delete_prefix(self, prefix: str) -> int:
        """Remove every record whose key starts with *prefix*.

        Returns:
            Number of records removed.
        """
        keys = [k for k in await self.list_entries() if k.startswith(prefix)]
        await self.delete_many(keys)
        return len(keys)

    def close(self) -> None:
        """Release backend resources."""
