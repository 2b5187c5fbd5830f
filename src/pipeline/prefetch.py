# src/pipeline/prefetch.py — v1
"""Background warm-up of the next page's OCR and translation.

The prefetcher owns its own recognition and translation clients, so its
requests never supersede (or get superseded by) those of the visible
page. Only one prefetch runs at a time; scheduling another replaces it.
Results only ever reach the cache. Failures are logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging

from pagereader.cache.content_cache import ContentCache
from pagereader.cache.models import ArtifactKind, CacheKey
from pagereader.config.settings import SettingsProvider, load_settings
from pagereader.core.errors import CacheUnavailable, Cancelled, PageReaderError
from pagereader.document.renderer import PageRenderer
from pagereader.logging.context import set_page_context, set_step
from pagereader.recognition.recognition_client import RecognitionClient
from pagereader.translation.translation_client import TranslationClient

logger = logging.getLogger(__name__)


class Prefetcher:
    """Warm the cache for one page ahead of the reader."""

    def __init__(
        self,
        fingerprint: str,
        renderer: PageRenderer,
        cache: ContentCache,
        recognition: RecognitionClient,
        translation: TranslationClient,
        settings_provider: SettingsProvider = load_settings,
    ) -> None:
        self._fingerprint = fingerprint
        self._renderer = renderer
        self._cache = cache
        self._recognition = recognition
        self._translation = translation
        self._settings_provider = settings_provider
        self._task: asyncio.Task[None] | None = None
        self._page: int | None = None

    @property
    def pending_page(self) -> int | None:
        """Page being prefetched, if a prefetch is running."""
        if self._task is None or self._task.done():
            return None
        return self._page

    def schedule(self, page: int) -> asyncio.Task[None] | None:
        """Start prefetching *page*, replacing any running prefetch."""
        if not 1 <= page <= self._renderer.page_count:
            return None
        if self.pending_page == page:
            return self._task
        self.cancel()
        self._page = page
        self._task = asyncio.create_task(self._run(page))
        return self._task

    def cancel(self) -> None:
        """Abort the running prefetch, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self._recognition.cancel()
            self._translation.cancel()
        self._task = None
        self._page = None

    async def wait(self) -> None:
        """Wait for the running prefetch to finish (tests and shutdown)."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self, page: int) -> None:
        set_page_context(self._fingerprint, page)
        set_step("prefetch")
        try:
            await self.prefetch(page)
        except Cancelled:
            logger.debug("Prefetch of page %d superseded", page)
        except PageReaderError as e:
            logger.warning("Prefetch of page %d failed: %s", page, e)
        except Exception:
            logger.exception("Unexpected failure prefetching page %d", page)

    async def prefetch(self, page: int) -> None:
        """Ensure *page* has cached OCR text and, when it has text, a translation."""
        ocr_key = CacheKey(fingerprint=self._fingerprint, page=page, kind=ArtifactKind.OCR_TEXT)
        translated_key = ocr_key.model_copy(update={"kind": ArtifactKind.TRANSLATED_TEXT})

        ocr_text = await self._cache.get(ocr_key)
        if ocr_text is None:
            settings = self._settings_provider()
            image = await self._renderer.render_page(page, settings.render_scale)
            ocr_text = await self._recognition.extract_text(image)
            if ocr_text:
                await self._store(ocr_key, ocr_text)
        if not ocr_text:
            logger.debug("Page %d has no text; nothing to translate", page)
            return

        if await self._cache.get(translated_key) is not None:
            logger.debug("Page %d already cached", page)
            return
        translated = await self._translation.translate_stream(ocr_text)
        if translated:
            await self._store(translated_key, translated)
        logger.info("Prefetched page %d", page)

    async def _store(self, key: CacheKey, value: str) -> None:
        try:
            await self._cache.put(key, value)
        except CacheUnavailable as e:
            logger.warning("Prefetch could not cache %s: %s", key.kind.value, e)
