# src/cache/cache_factory.py — v1
"""Factory for cache store instantiation."""

from __future__ import annotations

from pathlib import Path

from pagereader.cache.base_cache_store import BaseCacheStore
from pagereader.config.settings import Settings

DEFAULT_CACHE_ROOT = Path("~/.pagereader/cache")


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to JSON backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    cache_root = DEFAULT_CACHE_ROOT if settings is None else Path(settings.cache_root)

    if backend == "json":
        from pagereader.cache.json_store import STORE_FILENAME, JsonCacheStore
        return JsonCacheStore(cache_root / STORE_FILENAME)

    if backend == "sqlite":
        from pagereader.cache.sqlite_store import STORE_FILENAME, SqliteCacheStore
        return SqliteCacheStore(cache_root / STORE_FILENAME)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
