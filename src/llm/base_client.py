# src/llm/base_client.py — v1
"""Abstract LLM client interface.

Adapters translate SDK failures into ``ProviderRequestFailed`` so callers
never see provider-specific exception types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from pagereader.llm.models import ImageInput, LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for chat-completion providers."""

    @abstractmethod
    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """Vision-enabled completion (images + text)."""

    @abstractmethod
    def stream_complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> AsyncIterator[str]:
        """Streaming text completion yielding content fragments in order."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, ollama)."""
