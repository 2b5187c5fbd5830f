# src/cache/models.py — v1
"""Cache data models.

A ``CacheKey`` names one derived artifact (OCR text or translation) of one
page of one document. Artifacts of the same page are persisted together
in a ``PageRecord`` stored under ``cache_<fingerprint>_<page>``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

KEY_PREFIX = "cache_"

# Fixed per-record overhead counted for the write timestamp.
TIMESTAMP_OVERHEAD = 8


class ArtifactKind(str, Enum):
    """Kinds of derived text stored per page."""

    OCR_TEXT = "ocrText"
    TRANSLATED_TEXT = "translatedText"


def document_prefix(fingerprint: str) -> str:
    """Key prefix shared by every record of one document."""
    return f"{KEY_PREFIX}{fingerprint}_"


def record_key(fingerprint: str, page: int) -> str:
    """Storage key of the record holding all artifacts of one page."""
    return f"{document_prefix(fingerprint)}{page}"


class CacheKey(BaseModel):
    """Identity of one cached artifact."""

    model_config = {"frozen": True}

    fingerprint: str = Field(min_length=1)
    page: int = Field(ge=1)
    kind: ArtifactKind

    @property
    def record_key(self) -> str:
        return record_key(self.fingerprint, self.page)


class CacheEntry(BaseModel):
    """A cached artifact value with its write time (ms since epoch)."""

    value: str
    written_at: int


class PageRecord(BaseModel):
    """Persisted unit: every artifact of one page plus the last write time."""

    model_config = {"populate_by_name": True}

    ocr_text: str | None = Field(default=None, alias="ocrText")
    translated_text: str | None = Field(default=None, alias="translatedText")
    timestamp: int = 0

    def value(self, kind: ArtifactKind) -> str | None:
        if kind is ArtifactKind.OCR_TEXT:
            return self.ocr_text
        return self.translated_text

    def with_value(self, kind: ArtifactKind, value: str, timestamp: int) -> PageRecord:
        """Copy of this record with one artifact replaced and the timestamp refreshed."""
        field = "ocr_text" if kind is ArtifactKind.OCR_TEXT else "translated_text"
        return self.model_copy(update={field: value, "timestamp": timestamp})

    def serialized_size(self, key: str) -> int:
        """Byte count charged against the cache budget."""
        return (
            len(key)
            + len(self.ocr_text or "")
            + len(self.translated_text or "")
            + TIMESTAMP_OVERHEAD
        )

    def to_store(self) -> dict[str, object]:
        """Plain dict in the on-disk layout (camelCase, absent fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)
