# src/llm/adapters/ollama_adapter.py — v1
"""Ollama local LLM adapter implementing BaseLLMClient.

Uses the ollama Python SDK. Vision support is model-dependent.
"""

from __future__ import annotations

import base64
import time
from typing import Any, AsyncIterator

from pagereader.core.errors import ProviderRequestFailed
from pagereader.llm.base_client import BaseLLMClient
from pagereader.llm.models import ImageInput, LLMResponse, Message


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self, model: str = "llava", host: str = "http://localhost:11434", **kwargs: Any,
    ):
        self._model = model
        self._host = host

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        import ollama

        client = ollama.AsyncClient(host=self._host)
        msgs: list[dict[str, Any]] = []
        if system:
            msgs.append({"role": "system", "content": system})

        # Combine text + images into single user message
        text = " ".join(m.content for m in messages)
        img_data = [base64.b64encode(img.data).decode() for img in images]
        msgs.append({"role": "user", "content": text, "images": img_data})

        t0 = time.monotonic()
        try:
            resp = await client.chat(
                model=self._model, messages=msgs,
                options={"num_predict": max_tokens},
            )
        except (ollama.ResponseError, ollama.RequestError, ConnectionError) as e:
            raise _translate_error(e) from e
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content=resp["message"]["content"] or "",
            input_tokens=resp.get("prompt_eval_count") or 0,
            output_tokens=resp.get("eval_count") or 0,
            model=self._model,
            provider="ollama",
            latency_ms=latency,
            raw_response=resp,
        )

    async def stream_complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
    ) -> AsyncIterator[str]:
        import ollama

        client = ollama.AsyncClient(host=self._host)
        msgs: list[dict[str, str]] = []
        if system:
            msgs.append({"role": "system", "content": system})
        for m in messages:
            msgs.append({"role": m.role, "content": m.content})

        try:
            parts = await client.chat(
                model=self._model, messages=msgs, stream=True,
                options={"num_predict": max_tokens},
            )
            async for part in parts:
                content = part["message"]["content"]
                if content:
                    yield content
        except (ollama.ResponseError, ollama.RequestError, ConnectionError) as e:
            raise _translate_error(e) from e

    @property
    def provider_name(self) -> str:
        return "ollama"


def _translate_error(error: Exception) -> ProviderRequestFailed:
    status_code = getattr(error, "status_code", None)
    reason = getattr(error, "error", None) or str(error) or type(error).__name__
    if status_code is not None and status_code >= 0:
        return ProviderRequestFailed("ollama", f"HTTP {status_code}: {reason}", status_code)
    return ProviderRequestFailed("ollama", reason)
