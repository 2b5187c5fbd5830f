# src/document/renderer.py — v1
"""Rasterize document pages to PNG with PyMuPDF (fitz).

Rendering runs in a worker thread. A document handle is not safe for
concurrent use, so renders of one document are serialized.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

from pagereader.core.errors import RenderFailed

logger = logging.getLogger(__name__)


class PageRenderer(Protocol):
    """What the pipeline needs from a document."""

    @property
    def page_count(self) -> int: ...

    async def render_page(self, page: int, scale: float = 1.5) -> bytes: ...


class PdfPageRenderer:
    """PyMuPDF-backed renderer for one open document."""

    def __init__(self, source: bytes | str | Path) -> None:
        try:
            import fitz  # PyMuPDF
        except ImportError as e:
            raise ImportError(
                "pymupdf package required for page rendering: pip install pymupdf"
            ) from e

        self._fitz = fitz
        try:
            self._doc = self._open_document(source, fitz)
        except (RuntimeError, OSError) as e:
            raise RenderFailed(0, f"cannot open document: {e}") from e
        self._lock = asyncio.Lock()

    @staticmethod
    def _open_document(source: bytes | str | Path, fitz_module: Any) -> Any:
        if isinstance(source, (str, Path)):
            return fitz_module.open(str(Path(source).expanduser()))
        return fitz_module.open(stream=source, filetype="pdf")

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    async def render_page(self, page: int, scale: float = 1.5) -> bytes:
        """PNG bytes of 1-based *page* at *scale*.

        Raises:
            RenderFailed: Page out of range or PyMuPDF error.
        """
        if not 1 <= page <= self.page_count:
            raise RenderFailed(page, f"out of range 1..{self.page_count}")
        async with self._lock:
            return await asyncio.to_thread(self._render_sync, page, scale)

    def _render_sync(self, page: int, scale: float) -> bytes:
        try:
            pdf_page = self._doc.load_page(page - 1)
            pix = pdf_page.get_pixmap(matrix=self._fitz.Matrix(scale, scale), alpha=False)
            png = pix.tobytes("png")
        except RuntimeError as e:
            raise RenderFailed(page, str(e)) from e
        logger.debug("Rendered page %d at %.2fx (%d bytes)", page, scale, len(png))
        return png

    def close(self) -> None:
        self._doc.close()

    def __enter__(self) -> PdfPageRenderer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
