# tests/unit/cache/test_unit_content_cache.py — v1
"""Tests for cache/content_cache.py — lookups, merging, eviction and clearing."""

from __future__ import annotations

import pytest

from pagereader.cache.content_cache import DEFAULT_MAX_BYTES, ContentCache
from pagereader.cache.json_store import JsonCacheStore
from pagereader.cache.models import ArtifactKind, CacheKey
from pagereader.core.errors import CacheUnavailable


class Clock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float = 1.0) -> None:
        self.now += seconds


def ocr(page: int, fp: str = "fp") -> CacheKey:
    return CacheKey(fingerprint=fp, page=page, kind=ArtifactKind.OCR_TEXT)


def translated(page: int, fp: str = "fp") -> CacheKey:
    return CacheKey(fingerprint=fp, page=page, kind=ArtifactKind.TRANSLATED_TEXT)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(tmp_path):
    return JsonCacheStore(tmp_path / "page_cache.json")


@pytest.fixture
def cache(store, clock):
    return ContentCache(store, clock=clock)


class TestGetPut:
    @pytest.mark.asyncio
    async def test_put_then_get(self, cache):
        await cache.put(ocr(1), "Hello")
        assert await cache.get(ocr(1)) == "Hello"

    @pytest.mark.asyncio
    async def test_miss(self, cache):
        assert await cache.get(ocr(1)) is None

    @pytest.mark.asyncio
    async def test_empty_value_reads_as_absent(self, cache):
        await cache.put(ocr(1), "")
        assert await cache.get(ocr(1)) is None

    @pytest.mark.asyncio
    async def test_artifacts_are_independent(self, cache):
        await cache.put(ocr(1), "Hello")
        assert await cache.get(translated(1)) is None
        await cache.put(translated(1), "你好")
        assert await cache.get(ocr(1)) == "Hello"
        assert await cache.get(translated(1)) == "你好"

    @pytest.mark.asyncio
    async def test_entry_carries_write_time(self, cache, clock):
        await cache.put(ocr(1), "Hello")
        clock.tick(2)
        await cache.put(translated(1), "你好")
        entry = await cache.get_entry(ocr(1))
        assert entry.value == "Hello"
        # A write to either artifact refreshes the page record.
        assert entry.written_at == 1_002_000

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path, clock):
        path = tmp_path / "page_cache.json"
        await ContentCache(JsonCacheStore(path), clock=clock).put(ocr(4), "persisted")
        reopened = ContentCache(JsonCacheStore(path), clock=clock)
        assert await reopened.get(ocr(4)) == "persisted"


class TestEviction:
    @pytest.mark.asyncio
    async def test_oldest_evicted_first(self, store, clock):
        # Each record: len("cache_fp_N") 10 + value 10 + 8 = 28 bytes.
        cache = ContentCache(store, max_bytes=60, clock=clock)
        for page in (1, 2, 3):
            await cache.put(ocr(page), "x" * 10)
            clock.tick()
        assert await cache.get(ocr(1)) is None
        assert await cache.get(ocr(2)) == "x" * 10
        assert await cache.get(ocr(3)) == "x" * 10
        assert await cache.size() <= 60

    @pytest.mark.asyncio
    async def test_rewrite_refreshes_age(self, store, clock):
        cache = ContentCache(store, max_bytes=60, clock=clock)
        await cache.put(ocr(1), "x" * 10)
        clock.tick()
        await cache.put(ocr(2), "x" * 10)
        clock.tick()
        await cache.put(ocr(1), "y" * 10)
        clock.tick()
        await cache.put(ocr(3), "x" * 10)
        assert await cache.get(ocr(2)) is None
        assert await cache.get(ocr(1)) == "y" * 10

    @pytest.mark.asyncio
    async def test_ties_broken_by_key(self, store, clock):
        cache = ContentCache(store, max_bytes=60, clock=clock)
        for page in (2, 1, 3):
            await cache.put(ocr(page), "x" * 10)
        # All three share a timestamp; the smallest key goes first.
        assert await cache.get(ocr(1)) is None
        assert await cache.get(ocr(2)) is not None
        assert await cache.get(ocr(3)) is not None

    @pytest.mark.asyncio
    async def test_set_max_size_applies_on_next_write(self, cache, clock):
        assert cache.max_bytes == DEFAULT_MAX_BYTES
        for page in (1, 2, 3):
            await cache.put(ocr(page), "x" * 10)
            clock.tick()
        cache.set_max_size(30)
        await cache.put(ocr(4), "x" * 10)
        assert await cache.size() <= 30
        assert await cache.get(ocr(4)) == "x" * 10

    def test_set_max_size_rejects_non_positive(self, cache):
        with pytest.raises(ValueError):
            cache.set_max_size(0)


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_document_only(self, cache):
        await cache.put(ocr(1, "doc1"), "a")
        await cache.put(translated(2, "doc1"), "b")
        await cache.put(ocr(1, "doc2"), "c")
        assert await cache.clear("doc1") == 2
        assert await cache.get(ocr(1, "doc1")) is None
        assert await cache.get(translated(2, "doc1")) is None
        assert await cache.get(ocr(1, "doc2")) == "c"

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, cache):
        await cache.put(ocr(1), "a")
        await cache.clear("fp")
        assert await cache.clear("fp") == 0

    @pytest.mark.asyncio
    async def test_clear_page(self, cache):
        await cache.put(ocr(1), "a")
        await cache.put(translated(1), "b")
        await cache.put(ocr(2), "c")
        await cache.clear_page("fp", 1)
        assert await cache.get(ocr(1)) is None
        assert await cache.get(translated(1)) is None
        assert await cache.get(ocr(2)) == "c"

    @pytest.mark.asyncio
    async def test_clear_all(self, cache):
        await cache.put(ocr(1, "doc1"), "a")
        await cache.put(ocr(1, "doc2"), "b")
        assert await cache.clear_all() == 2
        assert await cache.clear_all() == 0
        assert await cache.size() == 0


class TestDegradedStore:
    @pytest.mark.asyncio
    async def test_disabled_cache(self):
        cache = ContentCache(None)
        await cache.put(ocr(1), "Hello")
        assert await cache.get(ocr(1)) is None
        assert await cache.clear("fp") == 0
        assert not cache.enabled

    @pytest.mark.asyncio
    async def test_unreadable_store_reads_as_miss(self, tmp_path):
        path = tmp_path / "page_cache.json"
        path.write_text("garbage", encoding="utf-8")
        cache = ContentCache(JsonCacheStore(path))
        assert await cache.get(ocr(1)) is None

    @pytest.mark.asyncio
    async def test_corrupt_store_recovers(self, tmp_path):
        path = tmp_path / "page_cache.json"
        path.write_text("{not json", encoding="utf-8")
        cache = ContentCache(JsonCacheStore(path))
        assert await cache.clear_all() == 0
        await cache.put(ocr(1), "Hello")
        assert await ContentCache(JsonCacheStore(path)).get(ocr(1)) == "Hello"

    @pytest.mark.asyncio
    async def test_unwritable_store_raises_on_put(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        cache = ContentCache(JsonCacheStore(blocker / "page_cache.json"))
        with pytest.raises(CacheUnavailable):
            await cache.put(ocr(1), "Hello")
