# tests/integration/pipeline/test_int_reading_scenarios.py — v1
"""End-to-end reading scenarios through ReadingSession.

No external services required: the provider is scripted, narration uses
the fake speech engine, and the cache is a real SQLite/JSON store.
Coverage targets: api/session.py, pipeline/*, cache/content_cache.py
"""

from __future__ import annotations

import asyncio

import pytest

from pagereader.api.session import ReadingSession
from pagereader.cache.cache_factory import create_cache_store
from pagereader.cache.models import ArtifactKind, CacheKey
from pagereader.pipeline.state import PageStage
from tests.conftest import FakeRenderer, eventually, page_image

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def doc_path(tmp_path):
    path = tmp_path / "novel.pdf"
    path.write_bytes(b"%PDF-1.7 scripted novel")
    return path


@pytest.fixture
def open_session(settings, llm_factory, speech_engine, doc_path):
    async def build(backend: str = "sqlite", **overrides):
        current = settings.model_copy(update={"cache_backend": backend, **overrides})
        return await ReadingSession.open(
            doc_path,
            lambda: current,
            store=create_cache_store(current),
            renderer_factory=lambda path: FakeRenderer(page_count=10),
            llm_factory=llm_factory,
            speech_engine=speech_engine,
        )

    return build


class TestAutoReadScenario:
    @pytest.mark.asyncio
    async def test_reads_translation_and_turns_page(self, open_session, fake_llm, speech_engine):
        fake_llm.ocr_texts[page_image(3)] = "Hello"
        fake_llm.ocr_texts[page_image(4)] = "World"
        fake_llm.translations["Hello"] = ["你", "好"]
        fake_llm.translations["World"] = ["世界"]

        async with await open_session(auto_translate=True, auto_read=True) as session:
            await session.start(page=3)
            await eventually(lambda: speech_engine.spoken == ["你好"])
            assert session.pipeline.view.stage is PageStage.READY

            speech_engine.finish()
            await eventually(lambda: speech_engine.spoken == ["你好", "世界"])
            assert session.pipeline.state.current_page == 4
            assert session.pipeline.state.is_auto_reading

    @pytest.mark.asyncio
    async def test_cached_page_then_waits_for_next_page(self, open_session, fake_llm, speech_engine):
        gate = asyncio.Event()
        fake_llm.vision_gates[page_image(4)] = gate
        fake_llm.ocr_texts[page_image(4)] = "World"
        fake_llm.translations["World"] = ["世", "界"]

        async with await open_session(auto_translate=True, auto_read=True) as session:
            for kind, value in ((ArtifactKind.OCR_TEXT, "Hello"), (ArtifactKind.TRANSLATED_TEXT, "你好")):
                await session.cache.put(
                    CacheKey(fingerprint=session.fingerprint, page=3, kind=kind), value
                )
            await session.start(page=3)
            await eventually(lambda: speech_engine.spoken == ["你好"])
            assert fake_llm.vision_calls == []

            speech_engine.finish()
            await eventually(lambda: fake_llm.vision_calls == [page_image(4)])
            assert session.pipeline.state.current_page == 4
            assert not session.pipeline.state.page_ready
            await asyncio.sleep(0.01)
            assert speech_engine.spoken == ["你好"]

            gate.set()
            await eventually(lambda: speech_engine.spoken == ["你好", "世界"])
            assert session.pipeline.state.page_ready


class TestCancellationScenario:
    @pytest.mark.asyncio
    async def test_quick_navigation_never_shows_stale_text(self, open_session, fake_llm):
        fake_llm.vision_gates[page_image(5)] = asyncio.Event()
        fake_llm.ocr_texts[page_image(5)] = "Stale five"
        fake_llm.ocr_texts[page_image(6)] = "Fresh six"
        views = []

        async with await open_session() as session:
            session.pipeline.add_listener(views.append)
            await session.pipeline.go_to_page(5)
            await eventually(lambda: fake_llm.vision_calls)
            await session.pipeline.next_page()
            view = await session.pipeline.wait_until_settled()

            assert view.page == 6
            assert view.ocr_text == "Fresh six"
            assert fake_llm.vision_cancelled == 1
            assert all("Stale" not in v.ocr_text for v in views)
            key = CacheKey(fingerprint=session.fingerprint, page=5, kind=ArtifactKind.OCR_TEXT)
            assert await session.cache.get(key) is None


class TestCacheScenario:
    @pytest.mark.parametrize("backend", ["json", "sqlite"])
    @pytest.mark.asyncio
    async def test_second_visit_is_served_from_cache(self, open_session, fake_llm, backend):
        fake_llm.ocr_texts[page_image(2)] = "Hello"
        fake_llm.translations["Hello"] = ["你好"]

        async with await open_session(backend, auto_translate=True) as session:
            await session.pipeline.go_to_page(2)
            first = await session.pipeline.wait_until_settled()
        assert first.translated_text == "你好"
        assert len(fake_llm.vision_calls) == 1
        assert len(fake_llm.stream_calls) == 1

        async with await open_session(backend, auto_translate=True) as session:
            await session.pipeline.go_to_page(2)
            second = await session.pipeline.wait_until_settled()
        assert second.ocr_text == "Hello"
        assert second.translated_text == "你好"
        assert len(fake_llm.vision_calls) == 1
        assert len(fake_llm.stream_calls) == 1


class TestReasoningScenario:
    @pytest.mark.asyncio
    async def test_think_blocks_never_reach_the_view(self, open_session, fake_llm):
        fake_llm.ocr_texts[page_image(1)] = "Good morning"
        fake_llm.translations["Good morning"] = [
            "<thi", "nk>The user wants Chinese.", "</think>", "\n\n早", "上好",
        ]
        views = []

        async with await open_session(auto_translate=True) as session:
            session.pipeline.add_listener(views.append)
            await session.pipeline.go_to_page(1)
            view = await session.pipeline.wait_until_settled()

            assert view.translated_text == "早上好"
            assert all("think" not in v.translated_text.lower() for v in views)
            assert all(not v.translated_text.startswith("\n") for v in views)
            key = CacheKey(
                fingerprint=session.fingerprint, page=1, kind=ArtifactKind.TRANSLATED_TEXT
            )
            assert await session.cache.get(key) == "早上好"


class TestRealDocument:
    @pytest.mark.asyncio
    async def test_pages_rendered_with_pymupdf(self, settings, llm_factory, fake_llm, speech_engine, pdf_path):
        async with await ReadingSession.open(
            pdf_path,
            lambda: settings,
            llm_factory=llm_factory,
            speech_engine=speech_engine,
        ) as session:
            assert session.pipeline.state.page_count == 3
            await session.pipeline.go_to_page(2)
            view = await session.pipeline.wait_until_settled()
        assert view.stage is PageStage.EMPTY
        assert fake_llm.vision_calls[0].startswith(PNG_MAGIC)
