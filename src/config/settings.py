# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider endpoints, reading toggles, cache
limits and logging. Components never hold on to a Settings instance:
they take a settings provider (a zero-argument callable, ``load_settings``
by default) and call it at the start of every provider request, so edits
to the environment or the .env file apply to the next call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagereader.logging.handlers import parse_size

DEFAULT_OCR_PROMPT = (
    "Extract all text from this page image. Preserve the reading order, "
    "paragraphs and list structure. Output only the extracted text."
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === RECOGNITION (OCR) ===
    ocr_engine: Literal["remote-multimodal", "local-system"] = "remote-multimodal"
    ocr_provider: Literal["openai", "ollama"] = "openai"
    ocr_endpoint: str = ""
    ocr_api_key: str = ""
    ocr_model: str = ""
    ocr_languages: str = ""
    ocr_prompt: str = DEFAULT_OCR_PROMPT
    ocr_max_tokens: int = 4096
    tesseract_cmd: str = ""

    # === TRANSLATION ===
    translation_provider: Literal["openai", "ollama"] = "openai"
    translation_endpoint: str = ""
    translation_api_key: str = ""
    translation_model: str = ""
    translation_target_language: str = "简体中文"
    translation_max_tokens: int = 4096

    # === NARRATION (TTS) ===
    tts_engine: Literal["say", "espeak"] = "say"
    tts_voice: str = ""
    tts_language: str = "zh-CN"

    # === Reading toggles ===
    auto_ocr: bool = True
    auto_translate: bool = False
    auto_read: bool = False
    render_scale: float = 1.5
    prefetch_enabled: bool = True

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["json", "sqlite"] = "json"
    cache_root: Path = Path("~/.pagereader/cache")
    cache_max_bytes: int = 10 * 1024 * 1024

    # === Logging ===
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # === UI ===
    ui_language: Literal["en", "zh-CN"] = "en"

    # --- Validators ---

    @field_validator("cache_max_bytes")
    @classmethod
    def validate_cache_max_bytes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache_max_bytes must be > 0")
        return v

    @field_validator("render_scale")
    @classmethod
    def validate_render_scale(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("render_scale must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field checks that cannot be expressed per field."""
        try:
            parse_size(self.log_rotation)
        except ValueError as e:
            raise ConfigurationError(f"LOG_ROTATION is invalid: {e}") from e
        return self

    # --- Helpers ---

    @property
    def ocr_languages_list(self) -> list[str]:
        """Parse comma-separated recognition language hints."""
        return [lang.strip() for lang in self.ocr_languages.split(",") if lang.strip()]

    def missing_provider_fields(self, component: Literal["ocr", "translation"]) -> list[str]:
        """Names of the settings a remote provider call for *component* still needs.

        OpenAI-compatible endpoints need endpoint, key and model. Ollama
        only needs a model; its endpoint falls back to the local daemon.
        """
        provider = getattr(self, f"{component}_provider")
        required = ["model"] if provider == "ollama" else ["endpoint", "api_key", "model"]
        return [
            f"{component}_{name}"
            for name in required
            if not str(getattr(self, f"{component}_{name}")).strip()
        ]


SettingsProvider = Callable[[], Settings]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
