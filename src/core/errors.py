# src/core/errors.py — v1
"""Error taxonomy shared by every component.

Each error carries a ``message_key`` that ``core.messages.user_message``
turns into a localized, user-facing string.
"""

from __future__ import annotations


class PageReaderError(Exception):
    """Base class for all expected failures."""

    message_key = "generic"


class ConfigurationMissing(PageReaderError):
    """A provider call was attempted without the settings it requires."""

    message_key = "configuration_missing"

    def __init__(self, component: str, fields: list[str]) -> None:
        self.component = component
        self.fields = list(fields)
        super().__init__(
            f"{component} is not configured: missing {', '.join(self.fields)}"
        )


class ProviderRequestFailed(PageReaderError):
    """A provider answered with an error, a non-2xx status, or not at all."""

    message_key = "provider_failed"

    def __init__(
        self, provider: str, reason: str, status_code: int | None = None
    ) -> None:
        self.provider = provider
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{provider}: {reason}")


class RecognitionFailed(ProviderRequestFailed):
    message_key = "recognition_failed"


class TranslationFailed(ProviderRequestFailed):
    message_key = "translation_failed"


class NarrationFailed(ProviderRequestFailed):
    message_key = "narration_failed"


class RenderFailed(PageReaderError):
    """A page could not be rasterized."""

    message_key = "render_failed"

    def __init__(self, page: int, reason: str) -> None:
        self.page = page
        self.reason = reason
        super().__init__(f"page {page}: {reason}")


class Cancelled(PageReaderError):
    """An operation was superseded or explicitly stopped.

    Never shown to the user.
    """

    message_key = "cancelled"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} was cancelled")


class CacheUnavailable(PageReaderError):
    """The persistence layer could not be opened, read or written."""

    message_key = "cache_unavailable"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
