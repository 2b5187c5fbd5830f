# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

No external services: providers are scripted, documents are built with
PyMuPDF, and the cache lives under tmp_path.
"""

from __future__ import annotations

import fitz
import pytest


@pytest.fixture
def pdf_path(tmp_path):
    """A three-page PDF on disk."""
    doc = fitz.open()
    for n in range(1, 4):
        page = doc.new_page(width=300, height=200)
        page.insert_text((30, 100), f"Page {n} of the sample document")
    path = tmp_path / "sample.pdf"
    doc.save(str(path))
    doc.close()
    return path
