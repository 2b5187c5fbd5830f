# src/translation/translation_client.py — v1
"""Streaming translation through an OpenAI-compatible or ollama chat model.

Fragments are delivered to ``on_chunk`` in arrival order with reasoning
blocks already removed; the returned text is exactly their concatenation.
At most one translation is in flight per client instance, and a
superseded call delivers no further fragments.
"""

from __future__ import annotations

import logging
from typing import Callable

from pagereader.config.settings import SettingsProvider, load_settings
from pagereader.core.cancellation import CancellationToken, SingleFlight
from pagereader.core.errors import (
    ConfigurationMissing,
    ProviderRequestFailed,
    TranslationFailed,
)
from pagereader.llm.client_factory import LLMClientFactory, create_llm_client
from pagereader.llm.models import Message
from pagereader.logging.context import set_step
from pagereader.translation.reasoning import ReasoningFilter

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]

SYSTEM_PROMPT = (
    "You are a professional translator. Translate the user's text into "
    "{target} accurately, keeping its meaning, tone, paragraphs and list "
    "structure, and phrase it the way everyday {target} readers would. "
    "Output only the translation, without any reasoning. /nothink"
)

# Separates the instructions from the source text in the user turn.
PROMPT_DELIMITER = "\n===\n"


def build_messages(text: str, target_language: str) -> tuple[str, list[Message]]:
    """System prompt and user turn for translating *text*."""
    system = SYSTEM_PROMPT.format(target=target_language)
    return system, [Message(role="user", content=f"{system}{PROMPT_DELIMITER}{text}")]


class TranslationClient:
    """Translate recognized page text into the configured target language."""

    def __init__(
        self,
        settings_provider: SettingsProvider = load_settings,
        llm_factory: LLMClientFactory = create_llm_client,
        name: str = "translation",
    ) -> None:
        self._settings_provider = settings_provider
        self._llm_factory = llm_factory
        self._flight: SingleFlight[str] = SingleFlight(name)

    @property
    def busy(self) -> bool:
        return self._flight.busy

    def cancel(self) -> bool:
        """Abort the in-flight translation, if any."""
        return self._flight.cancel()

    async def translate_stream(
        self,
        text: str,
        target_language: str | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        """Translate *text*, streaming visible fragments to *on_chunk*.

        Args:
            text: Source text.
            target_language: Overrides ``translation_target_language``.
            on_chunk: Called once per visible fragment, in order.

        Returns:
            The full translation with reasoning markup removed.

        Raises:
            ConfigurationMissing: Endpoint, key or model not configured.
            TranslationFailed: The provider failed or the stream broke.
            Cancelled: Superseded by a newer call or cancelled.
        """
        return await self._flight.run(
            lambda token: self._translate(text, target_language, on_chunk, token)
        )

    async def _translate(
        self,
        text: str,
        target_language: str | None,
        on_chunk: ChunkCallback | None,
        token: CancellationToken,
    ) -> str:
        set_step("translation")
        if not text.strip():
            return ""
        settings = self._settings_provider()
        missing = settings.missing_provider_fields("translation")
        if missing:
            raise ConfigurationMissing("translation", missing)

        target = target_language or settings.translation_target_language
        system, messages = build_messages(text, target)
        llm = self._llm_factory(
            settings.translation_provider,
            settings.translation_model,
            api_key=settings.translation_api_key,
            base_url=settings.translation_endpoint,
        )

        reasoning = ReasoningFilter()
        delivered: list[str] = []

        def deliver(fragment: str) -> None:
            if not fragment:
                return
            token.raise_if_cancelled(self._flight.name)
            delivered.append(fragment)
            if on_chunk is not None:
                on_chunk(fragment)

        try:
            async for piece in llm.stream_complete(
                messages, system=system, max_tokens=settings.translation_max_tokens
            ):
                deliver(reasoning.feed(piece))
        except ProviderRequestFailed as e:
            raise TranslationFailed(e.provider, e.reason, e.status_code) from e
        deliver(reasoning.flush())

        translated = "".join(delivered)
        logger.info(
            "Translated %d characters into %s (%d chunks)", len(text), target, len(delivered)
        )
        return translated
