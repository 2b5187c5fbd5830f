# src/llm/client_factory.py — v1
"""Factory: instantiate an LLM client from a provider name.

Recognition and translation each configure their own provider, so the
factory takes the endpoint, key and model explicitly instead of reading
them from Settings.
"""

from __future__ import annotations

import importlib
import logging
from typing import Callable

from pagereader.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "pagereader.llm.adapters.openai_adapter.OpenAIAdapter",
    "ollama": "pagereader.llm.adapters.ollama_adapter.OllamaAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    api_key: str = "",
    base_url: str = "",
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (openai, ollama).
        model: Model name.
        api_key: Bearer credential (ignored by ollama).
        base_url: Endpoint root; requests go to ``{base_url}/chat/completions``
            for OpenAI-compatible services, or to the ollama host.
        **kwargs: Additional provider-specific arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])
    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if provider == "ollama":
        if base_url:
            init_kwargs["host"] = base_url
    else:
        init_kwargs["api_key"] = api_key
        init_kwargs["base_url"] = base_url

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


LLMClientFactory = Callable[..., BaseLLMClient]


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s → %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
