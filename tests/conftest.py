# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a scripted LLM provider, an in-memory page renderer, a speech
engine that finishes on demand, and settings wired to temp directories.
No external services: every provider call is faked.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable

import pytest

from pagereader.cache.content_cache import ContentCache
from pagereader.cache.json_store import JsonCacheStore
from pagereader.config.settings import Settings
from pagereader.llm.base_client import BaseLLMClient
from pagereader.llm.models import ImageInput, LLMResponse, Message
from pagereader.narration.narration_client import NarrationClient
from pagereader.narration.speech_engine import SpeechEngine, VoiceInfo
from pagereader.pipeline.page_pipeline import PagePipeline
from pagereader.pipeline.prefetch import Prefetcher
from pagereader.recognition.recognition_client import RecognitionClient
from pagereader.translation.translation_client import PROMPT_DELIMITER, TranslationClient

FINGERPRINT = "f" * 64


# === FAKES ===


class FakeLLMClient(BaseLLMClient):
    """Scripted provider: OCR text per image, translation chunks per source text."""

    def __init__(self) -> None:
        self.ocr_texts: dict[bytes, str] = {}
        self.translations: dict[str, list[str]] = {}
        self.vision_gates: dict[bytes, asyncio.Event] = {}
        self.stream_gate: asyncio.Event | None = None
        self.vision_error: Exception | None = None
        self.stream_error: Exception | None = None
        self.vision_calls: list[bytes] = []
        self.stream_calls: list[str] = []
        self.vision_cancelled = 0
        self.stream_cancelled = 0

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        data = images[0].data
        self.vision_calls.append(data)
        gate = self.vision_gates.get(data)
        try:
            if gate is not None:
                await gate.wait()
        except asyncio.CancelledError:
            self.vision_cancelled += 1
            raise
        if self.vision_error is not None:
            raise self.vision_error
        return LLMResponse(
            content=self.ocr_texts.get(data, ""),
            model="fake-vision",
            provider="fake",
            latency_ms=1,
        )

    async def stream_complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> AsyncIterator[str]:
        source = messages[-1].content.split(PROMPT_DELIMITER, 1)[-1]
        self.stream_calls.append(source)
        if self.stream_error is not None:
            raise self.stream_error
        try:
            for i, chunk in enumerate(self.translations.get(source, [])):
                if i == 1 and self.stream_gate is not None:
                    await self.stream_gate.wait()
                yield chunk
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.stream_cancelled += 1
            raise

    @property
    def provider_name(self) -> str:
        return "fake"


class FakeRenderer:
    """Renders page N as the bytes b"png-N"."""

    def __init__(self, page_count: int = 10) -> None:
        self.page_count = page_count
        self.rendered: list[int] = []

    async def render_page(self, page: int, scale: float = 1.5) -> bytes:
        self.rendered.append(page)
        return page_image(page)


class FakeSpeechEngine(SpeechEngine):
    """Speech engine whose narrations finish only when the test says so."""

    name = "fake"

    def __init__(self) -> None:
        super().__init__()
        self.spoken: list[str] = []
        self.voices_used: list[str | None] = []
        self.stopped: list[str] = []
        self.last_id: str | None = None
        self.voices = [
            VoiceInfo(name="Samantha", language="en-US"),
            VoiceInfo(name="Daniel", language="en-GB"),
            VoiceInfo(name="Tingting", language="zh-CN"),
        ]
        self.list_error: Exception | None = None
        self._counter = 0

    async def start(self, text: str, voice: str | None = None) -> str:
        self._counter += 1
        self.last_id = f"proc-{self._counter}"
        self.spoken.append(text)
        self.voices_used.append(voice)
        return self.last_id

    async def stop(self, process_id: str) -> None:
        self.stopped.append(process_id)

    async def list_voices(self) -> list[VoiceInfo]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.voices)

    def finish(self, process_id: str | None = None) -> None:
        self._emit_finished(process_id or self.last_id or "")


# === HELPERS ===


def page_image(page: int) -> bytes:
    return f"png-{page}".encode()


async def eventually(predicate: Callable[[], Any], timeout: float = 2.0) -> None:
    """Yield to the event loop until *predicate* holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


# === FIXTURES ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with both providers configured and the cache under tmp_path."""
    return Settings(
        _env_file=None,
        ocr_endpoint="https://ocr.example/v1",
        ocr_api_key="ocr-key",
        ocr_model="vision-model",
        translation_endpoint="https://mt.example/v1",
        translation_api_key="mt-key",
        translation_model="chat-model",
        cache_root=tmp_path / "cache",
        prefetch_enabled=False,
    )


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def llm_factory(fake_llm):
    """LLM factory returning the shared fake and recording its arguments."""
    calls: list[dict[str, Any]] = []

    def factory(provider: str, model: str, api_key: str = "", base_url: str = "", **kw: Any):
        calls.append(
            {"provider": provider, "model": model, "api_key": api_key, "base_url": base_url}
        )
        return fake_llm

    factory.calls = calls  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer(page_count=10)


@pytest.fixture
def speech_engine() -> FakeSpeechEngine:
    return FakeSpeechEngine()


@pytest.fixture
def cache(tmp_path) -> ContentCache:
    return ContentCache(JsonCacheStore(tmp_path / "cache" / "page_cache.json"))


@pytest.fixture
def make_pipeline(settings, llm_factory, renderer, speech_engine, cache):
    """Build a PagePipeline over the fakes; keyword arguments override settings."""

    def build(*, with_prefetcher: bool = False, **overrides: Any) -> PagePipeline:
        current = settings.model_copy(update=overrides)

        def provider() -> Settings:
            return current

        prefetcher = None
        if with_prefetcher:
            prefetcher = Prefetcher(
                FINGERPRINT,
                renderer,
                cache,
                RecognitionClient(provider, llm_factory, name="prefetch-recognition"),
                TranslationClient(provider, llm_factory, name="prefetch-translation"),
                provider,
            )
        return PagePipeline(
            FINGERPRINT,
            renderer,
            cache,
            RecognitionClient(provider, llm_factory),
            TranslationClient(provider, llm_factory),
            NarrationClient(speech_engine, provider),
            prefetcher=prefetcher,
            settings_provider=provider,
        )

    return build
