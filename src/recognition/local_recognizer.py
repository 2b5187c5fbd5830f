# src/recognition/local_recognizer.py — v1
"""On-device text recognition through the tesseract binary (pytesseract).

Tesseract runs out of process, so calls are pushed to a worker thread
and reported as a ``LocalRecognitionResult`` instead of raising.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging

import pytesseract
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# BCP-47 language hints → tesseract traineddata names.
_TESSERACT_LANGUAGES: dict[str, str] = {
    "en": "eng",
    "en-us": "eng",
    "en-gb": "eng",
    "zh": "chi_sim",
    "zh-cn": "chi_sim",
    "zh-hans": "chi_sim",
    "zh-tw": "chi_tra",
    "zh-hant": "chi_tra",
    "ja": "jpn",
    "ja-jp": "jpn",
    "ko": "kor",
    "ko-kr": "kor",
    "fr": "fra",
    "de": "deu",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "ru": "rus",
}


class LocalRecognitionResult(BaseModel):
    """Outcome of one on-device recognition."""

    text: str = ""
    success: bool
    error_message: str | None = None


def to_tesseract_language(language: str) -> str:
    """Map a BCP-47 hint to a tesseract language name (unknown hints pass through)."""
    return _TESSERACT_LANGUAGES.get(language.strip().lower(), language.strip())


class TesseractRecognizer:
    """Recognize text in base64-encoded page images with tesseract."""

    def __init__(self, tesseract_cmd: str = "") -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    async def extract(
        self, image_b64: str, languages: list[str] | None = None
    ) -> LocalRecognitionResult:
        """Recognize text in a base64-encoded PNG/JPEG image."""
        return await asyncio.to_thread(self._extract_sync, image_b64, languages or [])

    async def get_supported_languages(self) -> list[str]:
        """Languages installed for tesseract (traineddata names, 'osd' excluded)."""
        languages = await asyncio.to_thread(pytesseract.get_languages, config="")
        return sorted(lang for lang in languages if lang != "osd")

    def _extract_sync(self, image_b64: str, languages: list[str]) -> LocalRecognitionResult:
        lang = "+".join(to_tesseract_language(hint) for hint in languages) or None
        try:
            image = Image.open(io.BytesIO(base64.b64decode(image_b64, validate=True)))
            text = pytesseract.image_to_string(image, lang=lang)
        except (binascii.Error, UnidentifiedImageError) as e:
            return LocalRecognitionResult(success=False, error_message=f"invalid image: {e}")
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            logger.warning("tesseract failed: %s", e)
            return LocalRecognitionResult(success=False, error_message=str(e))
        return LocalRecognitionResult(text=text.strip(), success=True)
