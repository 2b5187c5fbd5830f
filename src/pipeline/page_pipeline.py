# src/pipeline/page_pipeline.py — v1
"""Per-page cycle: cache lookup → recognition → translation → ready.

Every page change (navigation, auto-advance, rerun) opens a new
generation. Each cycle checks its generation after every await and
drops its results once it has been superseded, so a slow response for
an old page can never overwrite the view of the current one. The
visible clients are also cancelled on every change so the superseded
requests are aborted rather than left to finish.

View updates are delivered synchronously to listeners as immutable
``PageView`` snapshots.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from pagereader.cache.content_cache import ContentCache
from pagereader.cache.models import ArtifactKind, CacheKey
from pagereader.config.settings import SettingsProvider, load_settings
from pagereader.core.errors import CacheUnavailable, Cancelled, PageReaderError
from pagereader.core.messages import user_message
from pagereader.document.renderer import PageRenderer
from pagereader.logging.context import set_page_context, set_step
from pagereader.narration.narration_client import NarrationClient
from pagereader.pipeline.auto_reader import AutoReadSupervisor
from pagereader.pipeline.prefetch import Prefetcher
from pagereader.pipeline.state import PageStage, PageView, ReadingSessionState
from pagereader.recognition.recognition_client import RecognitionClient
from pagereader.translation.translation_client import TranslationClient

logger = logging.getLogger(__name__)

ViewListener = Callable[[PageView], None]


class PagePipeline:
    """Drives recognition, translation and narration for the current page."""

    def __init__(
        self,
        fingerprint: str,
        renderer: PageRenderer,
        cache: ContentCache,
        recognition: RecognitionClient,
        translation: TranslationClient,
        narration: NarrationClient,
        *,
        prefetcher: Prefetcher | None = None,
        settings_provider: SettingsProvider = load_settings,
    ) -> None:
        settings = settings_provider()
        self.fingerprint = fingerprint
        self.cache = cache
        self.recognition = recognition
        self.translation = translation
        self.narration = narration
        self.prefetcher = prefetcher
        self._renderer = renderer
        self._settings_provider = settings_provider
        self.state = ReadingSessionState(
            page_count=renderer.page_count,
            auto_ocr_enabled=settings.auto_ocr,
            auto_translate_enabled=settings.auto_translate,
            auto_read_enabled=settings.auto_read,
        )
        self._view = PageView(page=self.state.current_page, generation=0)
        self._listeners: list[ViewListener] = []
        self._settled = asyncio.Event()
        self._cycle: asyncio.Task[None] | None = None
        self.auto_reader = AutoReadSupervisor(self, narration)
        narration.on_speaking_changed(self._on_speaking_changed)

    @property
    def view(self) -> PageView:
        return self._view

    def add_listener(self, listener: ViewListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ViewListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # === Explicit user actions ===

    async def go_to_page(self, page: int, *, force_refresh: bool = False) -> asyncio.Task[None]:
        """Show *page* (clamped into range). Leaves auto-read."""
        await self.auto_reader.stop()
        return self._show(page, force_refresh=force_refresh)

    async def next_page(self) -> asyncio.Task[None]:
        return await self.go_to_page(self.state.current_page + 1)

    async def prev_page(self) -> asyncio.Task[None]:
        return await self.go_to_page(self.state.current_page - 1)

    async def rerun(self, *, force_refresh: bool = True) -> asyncio.Task[None]:
        """Run recognition again for the current page, bypassing the cache by default."""
        await self.auto_reader.stop()
        return self._show(self.state.current_page, force_refresh=force_refresh, manual=True)

    async def translate_current(self) -> asyncio.Task[None]:
        """Translate the current page regardless of the auto-translate toggle."""
        await self.auto_reader.stop()
        return self._show(self.state.current_page, manual=True, translate=True)

    async def start_auto_read(self) -> None:
        await self.auto_reader.start()

    async def stop_auto_read(self) -> None:
        await self.auto_reader.stop()

    def set_auto_ocr(self, enabled: bool) -> None:
        self.state.auto_ocr_enabled = enabled

    def set_auto_translate(self, enabled: bool) -> None:
        """Toggle translation for subsequent page cycles."""
        self.state.auto_translate_enabled = enabled

    async def wait_until_settled(self) -> PageView:
        """Wait until the current cycle is ready, empty, or failed."""
        while True:
            await self._settled.wait()
            if self._settled.is_set():
                return self._view

    async def close(self) -> None:
        """Stop narration and abort everything in flight."""
        await self.auto_reader.stop()
        self.narration.off_speaking_changed(self._on_speaking_changed)
        self.recognition.cancel()
        self.translation.cancel()
        if self.prefetcher is not None:
            self.prefetcher.cancel()
        if self._cycle is not None and not self._cycle.done():
            self._cycle.cancel()
            await asyncio.gather(self._cycle, return_exceptions=True)

    # === Used by the auto-read supervisor ===

    def advance(self) -> bool:
        """Move to the next page without leaving auto-read. False on the last page."""
        if self.state.current_page >= self.state.page_count:
            return False
        self._show(self.state.current_page + 1)
        return True

    def report_error(self, generation: int, error: PageReaderError) -> None:
        """Show *error* on the view of *generation* without changing its stage."""
        self._update(generation, error=self._describe(error))

    # === Page cycle ===

    def _show(
        self,
        page: int,
        *,
        force_refresh: bool = False,
        manual: bool = False,
        translate: bool | None = None,
    ) -> asyncio.Task[None]:
        page = self.state.clamp_page(page)
        self.state.current_page = page
        self.state.generation += 1
        generation = self.state.generation
        self.state.page_ready = False
        self._settled.clear()

        aborted = [self.recognition.cancel(), self.translation.cancel()]
        if any(aborted):
            logger.debug("Aborted in-flight requests of generation %d", generation - 1)

        self._view = PageView(page=page, generation=generation)
        self._notify()
        self._cycle = asyncio.create_task(
            self._run_cycle(generation, page, force_refresh, manual, translate)
        )
        return self._cycle

    async def _run_cycle(
        self,
        generation: int,
        page: int,
        force_refresh: bool,
        manual: bool,
        translate: bool | None,
    ) -> None:
        try:
            await self._cycle_steps(generation, page, force_refresh, manual, translate)
        except Exception as e:
            logger.exception("Unexpected failure on page %d", page)
            self._crash(generation, e)

    def _crash(self, generation: int, error: Exception) -> None:
        """Settle *generation* as failed after an error outside the taxonomy."""
        if not self._is_current(generation):
            return
        wrapped = PageReaderError(str(error) or type(error).__name__)
        self._view = self._view.model_copy(
            update={"stage": PageStage.IDLE, "error": self._describe(wrapped)}
        )
        self._settle(generation)
        try:
            self._notify()
        except Exception:
            logger.exception("View listener failed on page %d", self._view.page)

    async def _cycle_steps(
        self,
        generation: int,
        page: int,
        force_refresh: bool,
        manual: bool,
        translate: bool | None,
    ) -> None:
        set_page_context(self.fingerprint, page, generation)
        settings = self._settings_provider()
        want_translation = (
            self.state.auto_translate_enabled if translate is None else translate
        )
        ocr_key = CacheKey(fingerprint=self.fingerprint, page=page, kind=ArtifactKind.OCR_TEXT)

        if force_refresh:
            await self._forget_page(page)
            ocr_text = None
        else:
            ocr_text = await self.cache.get(ocr_key)
        if not self._is_current(generation):
            return

        if ocr_text is None:
            if not (manual or self.state.auto_ocr_enabled):
                logger.debug("Auto OCR is off; page %d waits for an explicit run", page)
                self._settle(generation)
                return
            ocr_text = await self._recognize(generation, page, settings.render_scale)
            if ocr_text is None:
                return
            if ocr_text:
                await self._store(ocr_key, ocr_text)
            if not self._is_current(generation):
                return
        else:
            logger.debug("OCR cache hit for page %d", page)

        if not ocr_text:
            logger.info("No text recognized on page %d", page)
            self._update(generation, stage=PageStage.EMPTY, ocr_text="")
            self._settle(generation)
            return

        self._update(generation, ocr_text=ocr_text)
        if want_translation:
            translated = await self._translate(generation, page, ocr_text)
            if translated is None:
                return
            self._update(generation, translated_text=translated, translated=True)

        set_step(None)
        self._update(generation, stage=PageStage.READY)
        self.state.page_ready = True
        self._settle(generation)
        logger.info("Page %d ready", page)

        if (
            want_translation
            and settings.prefetch_enabled
            and self.prefetcher is not None
            and page < self.state.page_count
        ):
            self.prefetcher.schedule(page + 1)

    async def _recognize(self, generation: int, page: int, scale: float) -> str | None:
        """Rasterize and recognize *page*. None when superseded or failed."""
        self._update(generation, stage=PageStage.EXTRACTING)
        try:
            image = await self._renderer.render_page(page, scale)
            if not self._is_current(generation):
                return None
            text = await self.recognition.extract_text(image)
        except Cancelled:
            logger.debug("Recognition of page %d superseded", page)
            return None
        except PageReaderError as e:
            self._fail(generation, e)
            return None
        if not self._is_current(generation):
            logger.debug("Discarding stale recognition of page %d", page)
            return None
        return text

    async def _translate(self, generation: int, page: int, ocr_text: str) -> str | None:
        """Cached or streamed translation of *ocr_text*. None when superseded or failed."""
        key = CacheKey(fingerprint=self.fingerprint, page=page, kind=ArtifactKind.TRANSLATED_TEXT)
        self._update(generation, stage=PageStage.TRANSLATING, translated_text="", translated=False)

        cached = await self.cache.get(key)
        if not self._is_current(generation):
            return None
        if cached is not None:
            logger.debug("Translation cache hit for page %d", page)
            return cached

        received: list[str] = []

        def on_chunk(fragment: str) -> None:
            received.append(fragment)
            self._update(generation, translated_text="".join(received))

        try:
            translated = await self.translation.translate_stream(ocr_text, on_chunk=on_chunk)
        except Cancelled:
            logger.debug("Translation of page %d superseded", page)
            return None
        except PageReaderError as e:
            self._fail(generation, e)
            return None
        if not self._is_current(generation):
            logger.debug("Discarding stale translation of page %d", page)
            return None

        if translated:
            await self._store(key, translated)
            if not self._is_current(generation):
                return None
        return translated

    # === Helpers ===

    def _is_current(self, generation: int) -> bool:
        return generation == self.state.generation

    def _update(self, generation: int, **changes: object) -> None:
        if not self._is_current(generation):
            return
        self._view = self._view.model_copy(update=changes)
        self._notify()

    def _notify(self) -> None:
        view = self._view
        for listener in list(self._listeners):
            listener(view)

    def _settle(self, generation: int) -> None:
        if self._is_current(generation):
            self._settled.set()

    def _fail(self, generation: int, error: PageReaderError) -> None:
        if not self._is_current(generation):
            return
        logger.warning("Page %d failed: %s", self._view.page, error)
        self._update(generation, stage=PageStage.IDLE, error=self._describe(error))
        self._settle(generation)

    def _describe(self, error: PageReaderError) -> str:
        return user_message(error, self._settings_provider().ui_language)

    async def _store(self, key: CacheKey, value: str) -> None:
        try:
            await self.cache.put(key, value)
        except CacheUnavailable as e:
            logger.warning("Could not cache %s for page %d: %s", key.kind.value, key.page, e)

    async def _forget_page(self, page: int) -> None:
        try:
            await self.cache.clear_page(self.fingerprint, page)
        except CacheUnavailable as e:
            logger.warning("Could not clear cached page %d: %s", page, e)

    def _on_speaking_changed(self, speaking: bool) -> None:
        self.state.is_speaking = speaking
