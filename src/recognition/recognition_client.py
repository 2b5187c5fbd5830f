# src/recognition/recognition_client.py — v1
"""Page-image → text, through a remote multimodal model or local tesseract.

At most one request is in flight per client instance: a new call
supersedes (and aborts) the previous one, whose caller receives
``Cancelled``. Configuration is read from the settings provider at the
start of every call.
"""

from __future__ import annotations

import base64
import logging
from typing import Literal

import pytesseract
from pydantic import BaseModel

from pagereader.config.settings import Settings, SettingsProvider, load_settings
from pagereader.core.cancellation import CancellationToken, SingleFlight
from pagereader.core.errors import (
    ConfigurationMissing,
    ProviderRequestFailed,
    RecognitionFailed,
)
from pagereader.llm.client_factory import LLMClientFactory, create_llm_client
from pagereader.llm.models import ImageInput, Message
from pagereader.logging.context import set_step
from pagereader.recognition.local_recognizer import TesseractRecognizer

logger = logging.getLogger(__name__)

LOCAL_ENGINE = "local-system"


class RecognitionOptions(BaseModel):
    """Per-call overrides. Unset fields fall back to settings."""

    engine: Literal["remote-multimodal", "local-system"] | None = None
    languages: list[str] | None = None
    media_type: str = "image/png"


class RecognitionClient:
    """Extract text from rasterized pages."""

    def __init__(
        self,
        settings_provider: SettingsProvider = load_settings,
        llm_factory: LLMClientFactory = create_llm_client,
        local_recognizer: TesseractRecognizer | None = None,
        name: str = "recognition",
    ) -> None:
        self._settings_provider = settings_provider
        self._llm_factory = llm_factory
        self._local = local_recognizer
        self._flight: SingleFlight[str] = SingleFlight(name)

    @property
    def busy(self) -> bool:
        return self._flight.busy

    def cancel(self) -> bool:
        """Abort the in-flight request, if any."""
        return self._flight.cancel()

    async def extract_text(
        self, image: bytes, options: RecognitionOptions | None = None
    ) -> str:
        """Recognize the text in an encoded page image.

        Returns:
            The recognized text; empty if the page holds none.

        Raises:
            ConfigurationMissing: Remote engine selected without endpoint/key/model.
            RecognitionFailed: The provider or the local engine failed.
            Cancelled: Superseded by a newer call or cancelled.
        """
        opts = options or RecognitionOptions()
        return await self._flight.run(lambda token: self._extract(image, opts, token))

    async def get_supported_languages(self) -> list[str]:
        """Languages the local engine can recognize."""
        settings = self._settings_provider()
        try:
            return await self._local_recognizer(settings).get_supported_languages()
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            raise RecognitionFailed(LOCAL_ENGINE, f"cannot list languages: {e}") from e

    # --- Internals ---

    async def _extract(
        self, image: bytes, options: RecognitionOptions, token: CancellationToken
    ) -> str:
        set_step("recognition")
        settings = self._settings_provider()
        engine = options.engine or settings.ocr_engine
        languages = (
            options.languages if options.languages is not None else settings.ocr_languages_list
        )
        if engine == LOCAL_ENGINE:
            text = await self._extract_local(image, languages, settings)
        else:
            text = await self._extract_remote(image, options.media_type, settings)
        token.raise_if_cancelled(self._flight.name)
        logger.info("Recognized %d characters with %s", len(text), engine)
        return text

    async def _extract_remote(self, image: bytes, media_type: str, settings: Settings) -> str:
        missing = settings.missing_provider_fields("ocr")
        if missing:
            raise ConfigurationMissing("recognition", missing)

        llm = self._llm_factory(
            settings.ocr_provider,
            settings.ocr_model,
            api_key=settings.ocr_api_key,
            base_url=settings.ocr_endpoint,
        )
        try:
            response = await llm.complete_with_vision(
                messages=[Message(role="user", content=settings.ocr_prompt)],
                images=[ImageInput(data=image, media_type=media_type)],
                max_tokens=settings.ocr_max_tokens,
            )
        except ProviderRequestFailed as e:
            raise RecognitionFailed(e.provider, e.reason, e.status_code) from e
        logger.debug(
            "Recognition response: model=%s latency=%dms", response.model, response.latency_ms
        )
        return response.content.strip()

    async def _extract_local(
        self, image: bytes, languages: list[str], settings: Settings
    ) -> str:
        result = await self._local_recognizer(settings).extract(
            base64.b64encode(image).decode("ascii"), languages
        )
        if not result.success:
            raise RecognitionFailed(
                LOCAL_ENGINE, result.error_message or "system recognition failed"
            )
        return result.text

    def _local_recognizer(self, settings: Settings) -> TesseractRecognizer:
        if self._local is None:
            self._local = TesseractRecognizer(tesseract_cmd=settings.tesseract_cmd)
        return self._local
