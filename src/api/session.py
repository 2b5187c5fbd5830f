# src/api/session.py — v1
"""Public API — one reading session per open document.

Usage:
    from pagereader.api.session import ReadingSession
    async with await ReadingSession.open("book.pdf") as session:
        await session.pipeline.go_to_page(3)
        view = await session.pipeline.wait_until_settled()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from pagereader.cache.base_cache_store import BaseCacheStore
from pagereader.cache.cache_factory import create_cache_store
from pagereader.cache.content_cache import ContentCache
from pagereader.cache.fingerprint import fingerprint_file
from pagereader.config.settings import SettingsProvider, load_settings
from pagereader.document.renderer import PageRenderer, PdfPageRenderer
from pagereader.llm.client_factory import LLMClientFactory, create_llm_client
from pagereader.narration.narration_client import NarrationClient
from pagereader.narration.speech_engine import SpeechEngine
from pagereader.pipeline.page_pipeline import PagePipeline
from pagereader.pipeline.prefetch import Prefetcher
from pagereader.recognition.local_recognizer import TesseractRecognizer
from pagereader.recognition.recognition_client import RecognitionClient
from pagereader.translation.translation_client import TranslationClient

logger = logging.getLogger(__name__)

RendererFactory = Callable[[Path], PageRenderer]


def open_cache(settings_provider: SettingsProvider = load_settings) -> ContentCache:
    """ContentCache over the configured store (disabled when CACHE_ENABLED is false)."""
    settings = settings_provider()
    store = create_cache_store(settings) if settings.cache_enabled else None
    return ContentCache(store, max_bytes=settings.cache_max_bytes)


class ReadingSession:
    """An open document wired to its cache, clients and page pipeline."""

    def __init__(
        self,
        path: Path,
        fingerprint: str,
        renderer: PageRenderer,
        cache: ContentCache,
        pipeline: PagePipeline,
    ) -> None:
        self.path = path
        self.fingerprint = fingerprint
        self.renderer = renderer
        self.cache = cache
        self.pipeline = pipeline

    @classmethod
    async def open(
        cls,
        path: Path | str,
        settings_provider: SettingsProvider = load_settings,
        *,
        store: BaseCacheStore | None = None,
        renderer_factory: RendererFactory = PdfPageRenderer,
        llm_factory: LLMClientFactory = create_llm_client,
        speech_engine: SpeechEngine | None = None,
        local_recognizer: TesseractRecognizer | None = None,
    ) -> ReadingSession:
        """Open *path*, fingerprint it and build the pipeline.

        Args:
            path: Document to read.
            settings_provider: Called at every provider request.
            store: Cache backend; defaults to the configured one.
            renderer_factory: Builds the page renderer for *path*.
            llm_factory: Builds provider clients for recognition/translation.
            speech_engine: Narration backend; defaults to the configured one.
            local_recognizer: On-device recognizer; created on demand.
        """
        doc_path = Path(path).expanduser()
        settings = settings_provider()
        fingerprint = fingerprint_file(doc_path)
        renderer = renderer_factory(doc_path)

        if store is not None:
            cache = ContentCache(store, max_bytes=settings.cache_max_bytes)
        else:
            cache = open_cache(settings_provider)

        def recognition(name: str) -> RecognitionClient:
            return RecognitionClient(settings_provider, llm_factory, local_recognizer, name=name)

        def translation(name: str) -> TranslationClient:
            return TranslationClient(settings_provider, llm_factory, name=name)

        prefetcher = Prefetcher(
            fingerprint,
            renderer,
            cache,
            recognition("prefetch-recognition"),
            translation("prefetch-translation"),
            settings_provider,
        )
        pipeline = PagePipeline(
            fingerprint,
            renderer,
            cache,
            recognition("recognition"),
            translation("translation"),
            NarrationClient(speech_engine, settings_provider),
            prefetcher=prefetcher,
            settings_provider=settings_provider,
        )
        logger.info(
            "Opened %s (%d pages, fingerprint %s)",
            doc_path.name, renderer.page_count, fingerprint[:12],
        )
        return cls(doc_path, fingerprint, renderer, cache, pipeline)

    async def start(self, page: int = 1) -> None:
        """Show the first page and enter auto-read if it is enabled."""
        await self.pipeline.go_to_page(page)
        if self.pipeline.state.auto_read_enabled:
            await self.pipeline.start_auto_read()

    async def clear_cache(self) -> int:
        """Drop every cached artifact of this document."""
        return await self.cache.clear(self.fingerprint)

    async def close(self) -> None:
        await self.pipeline.close()
        close = getattr(self.renderer, "close", None)
        if close is not None:
            close()
        self.cache.close()

    async def __aenter__(self) -> ReadingSession:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
