# tests/unit/document/test_unit_renderer.py — v1
"""Tests for document/renderer.py against small PDFs built with PyMuPDF."""

from __future__ import annotations

import fitz
import pytest

from pagereader.core.errors import RenderFailed
from pagereader.document.renderer import PdfPageRenderer

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def _pdf_bytes(pages: int) -> bytes:
    doc = fitz.open()
    for n in range(1, pages + 1):
        page = doc.new_page(width=200, height=100)
        page.insert_text((20, 50), f"Page {n}")
    data = doc.tobytes()
    doc.close()
    return data


class TestPdfPageRenderer:
    def test_page_count(self):
        with PdfPageRenderer(_pdf_bytes(3)) as renderer:
            assert renderer.page_count == 3

    def test_open_from_path(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(_pdf_bytes(2))
        with PdfPageRenderer(path) as renderer:
            assert renderer.page_count == 2

    @pytest.mark.asyncio
    async def test_render_png(self):
        with PdfPageRenderer(_pdf_bytes(2)) as renderer:
            png = await renderer.render_page(2, scale=1.0)
        assert png.startswith(PNG_MAGIC)

    @pytest.mark.asyncio
    async def test_scale_changes_size(self):
        with PdfPageRenderer(_pdf_bytes(1)) as renderer:
            small = fitz.Pixmap(await renderer.render_page(1, scale=1.0))
            large = fitz.Pixmap(await renderer.render_page(1, scale=2.0))
        assert (large.width, large.height) == (small.width * 2, small.height * 2)

    @pytest.mark.asyncio
    async def test_out_of_range(self):
        with PdfPageRenderer(_pdf_bytes(1)) as renderer:
            with pytest.raises(RenderFailed, match="out of range"):
                await renderer.render_page(2)
            with pytest.raises(RenderFailed):
                await renderer.render_page(0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(RenderFailed, match="cannot open"):
            PdfPageRenderer(tmp_path / "missing.pdf")

    def test_corrupt_stream(self):
        with pytest.raises(RenderFailed):
            PdfPageRenderer(b"%PDF-1.4 this is not a pdf")
