# src/logging/context.py — v1
"""Contextual logging support: attach document, page, generation and step.

Values live in context variables, so each asyncio task (one page cycle,
one prefetch) carries its own copy.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_document: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document", default=None
)
_page: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "page", default=None
)
_generation: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "generation", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    document: str | None = None
    page: int | None = None
    generation: int | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}

    def label(self) -> str:
        """Compact ``doc:p3#g5`` label for text output (empty if unset)."""
        if self.document is None and self.page is None:
            return ""
        label = (self.document or "-")[:8]
        if self.page is not None:
            label += f":p{self.page}"
        if self.generation is not None:
            label += f"#g{self.generation}"
        return label


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        document=_document.get(),
        page=_page.get(),
        generation=_generation.get(),
        step=_step.get(),
    )


def set_page_context(document: str, page: int, generation: int | None = None) -> None:
    """Set page-level context (called at the start of every page cycle)."""
    _document.set(document)
    _page.set(page)
    _generation.set(generation)
    _step.set(None)


def set_step(step: str | None) -> None:
    """Set the pipeline step currently running (recognition, translation, ...)."""
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _document.set(None)
    _page.set(None)
    _generation.set(None)
    _step.set(None)
