# src/pipeline/auto_reader.py — v1
"""Auto-read: narrate each page once it is ready, then turn the page.

The supervisor owns the narration client's finished-callback slot while
active. Every explicit stop or navigation deactivates it before the page
changes, so a finished event from a narration that was cut short cannot
advance the reader.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pagereader.core.errors import PageReaderError
from pagereader.narration.narration_client import NarrationClient
from pagereader.pipeline.state import PageStage

if TYPE_CHECKING:
    from pagereader.pipeline.page_pipeline import PagePipeline

logger = logging.getLogger(__name__)


class AutoReadSupervisor:
    """Speak-when-ready / advance-when-finished loop over the pages."""

    def __init__(self, pipeline: PagePipeline, narration: NarrationClient) -> None:
        self._pipeline = pipeline
        self._narration = narration
        self._active = False
        self._task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()
        self._stopped.set()

    @property
    def active(self) -> bool:
        return self._active

    async def start(self) -> None:
        """Enter auto-read from the current page. No-op if already active."""
        if self._active:
            return
        self._active = True
        self._stopped.clear()
        self._pipeline.state.is_auto_reading = True
        self._narration.on_finished(self._on_finished)
        logger.info("Auto-read started at page %d", self._pipeline.state.current_page)
        self._schedule()

    async def stop(self) -> None:
        """Leave auto-read and silence any narration."""
        if self._active:
            logger.info("Auto-read stopped at page %d", self._pipeline.state.current_page)
        self._deactivate()
        await self._narration.stop()

    async def wait_stopped(self) -> None:
        """Wait until auto-read ends (last page reached, failure, or stop)."""
        await self._stopped.wait()

    # --- Internals ---

    def _schedule(self) -> None:
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._task = asyncio.create_task(
            self._speak_when_ready(self._pipeline.state.generation)
        )

    async def _speak_when_ready(self, generation: int) -> None:
        view = await self._pipeline.wait_until_settled()
        if not self._active or view.generation != generation:
            return

        if view.stage is PageStage.EMPTY:
            logger.info("Page %d has no text; skipping", view.page)
            self._advance()
            return
        if view.stage is not PageStage.READY:
            logger.info("Page %d did not become ready; leaving auto-read", view.page)
            await self.stop()
            return

        try:
            await self._narration.speak(view.ready_text)
        except PageReaderError as e:
            logger.warning("Narration of page %d failed: %s", view.page, e)
            self._pipeline.report_error(generation, e)
            await self.stop()
            return
        if not self._active:
            await self._narration.stop()

    def _on_finished(self) -> None:
        if not self._active:
            return
        self._advance()

    def _advance(self) -> None:
        if not self._pipeline.advance():
            logger.info("Auto-read reached the last page")
            self._deactivate()
            return
        self._schedule()

    def _deactivate(self) -> None:
        self._active = False
        self._pipeline.state.is_auto_reading = False
        self._narration.off_finished(self._on_finished)
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._stopped.set()
