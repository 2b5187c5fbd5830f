# src/llm/adapters/openai_adapter.py — v1
"""OpenAI-compatible chat-completions adapter implementing BaseLLMClient.

Uses the official openai SDK against any endpoint speaking the
``/chat/completions`` protocol (OpenAI, vLLM, LM Studio, DeepSeek, ...).
Bearer authentication; streaming arrives as server-sent events that the
SDK decodes into delta chunks.
"""

from __future__ import annotations

import base64
import time
from typing import Any, AsyncIterator

from pagereader.core.errors import ProviderRequestFailed
from pagereader.llm.base_client import BaseLLMClient
from pagereader.llm.models import ImageInput, LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI-compatible adapter."""

    def __init__(
        self, model: str = "gpt-4o", api_key: str = "", base_url: str = "", **kwargs: Any
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/") or None

    def _client(self) -> Any:
        import openai

        return openai.AsyncOpenAI(
            api_key=self._api_key, base_url=self._base_url, max_retries=0
        )

    def _build_messages(
        self, messages: list[Message], system: str | None
    ) -> list[dict[str, Any]]:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})
        return oai_messages

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        import openai

        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})

        # Build multimodal content
        content_parts: list[dict[str, Any]] = []
        for m in messages:
            content_parts.append({"type": "text", "text": m.content})
        for img in images:
            b64 = base64.b64encode(img.data).decode()
            content_parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{img.media_type};base64,{b64}"},
            })
        oai_messages.append({"role": "user", "content": content_parts})

        t0 = time.monotonic()
        try:
            async with self._client() as client:
                resp = await client.chat.completions.create(
                    model=self._model, messages=oai_messages, max_tokens=max_tokens,
                )
        except openai.APIError as e:
            raise _translate_error(e) from e
        latency = int((time.monotonic() - t0) * 1000)

        if not resp.choices:
            raise ProviderRequestFailed("openai", "response contained no choices")
        usage = resp.usage
        return LLMResponse(
            content=resp.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    async def stream_complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> AsyncIterator[str]:
        import openai

        try:
            async with self._client() as client:
                stream = await client.chat.completions.create(
                    model=self._model,
                    messages=self._build_messages(messages, system),
                    max_tokens=max_tokens,
                    stream=True,
                )
                try:
                    async for chunk in stream:
                        if not chunk.choices:
                            continue
                        content = chunk.choices[0].delta.content
                        if content:
                            yield content
                finally:
                    await stream.close()
        except openai.APIError as e:
            raise _translate_error(e) from e

    @property
    def provider_name(self) -> str:
        return "openai"


def _translate_error(error: Exception) -> ProviderRequestFailed:
    import openai

    if isinstance(error, openai.APIStatusError):
        return ProviderRequestFailed(
            "openai", f"HTTP {error.status_code}: {error.message}", error.status_code
        )
    return ProviderRequestFailed("openai", str(error) or type(error).__name__)
