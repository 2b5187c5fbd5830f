# src/pipeline/state.py — v1
"""Reading-session state and the per-page view shown to the user.

``ReadingSessionState`` is mutated only by the pipeline and the auto-read
supervisor, both on the event loop. ``PageView`` is replaced wholesale on
every change so listeners always receive a consistent snapshot.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class PageStage(str, Enum):
    """Where the current page is in its recognition/translation cycle."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    # Recognition found no text; translation is skipped.
    EMPTY = "empty"
    TRANSLATING = "translating"
    READY = "ready"


class PageView(BaseModel):
    """Snapshot of what is displayed for one page cycle."""

    model_config = {"frozen": True}

    page: int
    generation: int
    stage: PageStage = PageStage.IDLE
    ocr_text: str = ""
    translated_text: str = ""
    translated: bool = False
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.stage in (PageStage.EXTRACTING, PageStage.TRANSLATING)

    @property
    def ready_text(self) -> str:
        """Text to narrate: the translation when one was produced, else the OCR text."""
        return self.translated_text if self.translated else self.ocr_text


class ReadingSessionState(BaseModel):
    """Mutable state of one open document."""

    current_page: int = 1
    page_count: int = 0
    auto_ocr_enabled: bool = True
    auto_translate_enabled: bool = False
    auto_read_enabled: bool = False
    is_speaking: bool = False
    is_auto_reading: bool = False
    page_ready: bool = False
    generation: int = 0

    def clamp_page(self, page: int) -> int:
        """Clamp *page* into ``1..page_count``."""
        if self.page_count < 1:
            return 1
        return max(1, min(page, self.page_count))
