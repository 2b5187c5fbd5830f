# tests/unit/core/test_unit_errors.py — v1
"""Tests for core/errors.py and core/messages.py — taxonomy and localization."""

from __future__ import annotations

from pagereader.core.errors import (
    CacheUnavailable,
    Cancelled,
    ConfigurationMissing,
    NarrationFailed,
    PageReaderError,
    ProviderRequestFailed,
    RecognitionFailed,
    RenderFailed,
    TranslationFailed,
)
from pagereader.core.messages import message, user_message


class TestErrors:
    def test_hierarchy(self):
        for cls in (RecognitionFailed, TranslationFailed, NarrationFailed):
            assert issubclass(cls, ProviderRequestFailed)
        assert issubclass(ProviderRequestFailed, PageReaderError)
        assert issubclass(Cancelled, PageReaderError)

    def test_configuration_missing_lists_fields(self):
        err = ConfigurationMissing("recognition", ["ocr_endpoint", "ocr_model"])
        assert err.fields == ["ocr_endpoint", "ocr_model"]
        assert "ocr_endpoint, ocr_model" in str(err)

    def test_provider_failure_keeps_status(self):
        err = TranslationFailed("openai", "rate limited", status_code=429)
        assert err.status_code == 429
        assert str(err) == "openai: rate limited"

    def test_render_failed(self):
        assert RenderFailed(3, "bad xref").page == 3


class TestMessages:
    def test_configuration_missing_en(self):
        text = user_message(ConfigurationMissing("translation", ["translation_model"]))
        assert text == "translation is not configured. Please set: translation_model."

    def test_configuration_missing_zh(self):
        text = user_message(ConfigurationMissing("translation", ["translation_model"]), "zh-CN")
        assert "translation_model" in text
        assert "尚未配置" in text

    def test_provider_failure(self):
        text = user_message(RecognitionFailed("openai", "HTTP 500"))
        assert text == "Text recognition failed: HTTP 500"

    def test_cancelled_is_silent(self):
        assert user_message(Cancelled("ocr")) == ""
        assert user_message(Cancelled("ocr"), "zh-CN") == ""

    def test_cache_unavailable(self):
        assert "disk full" in user_message(CacheUnavailable("disk full"))

    def test_unknown_exception_is_generic(self):
        assert user_message(RuntimeError("oops")) == "Something went wrong: oops"

    def test_unknown_language_falls_back_to_english(self):
        assert message("no_text", "fr") == "No text was found on this page."
