# src/translation/reasoning.py — v1
"""Removal of ``<think>...</think>`` reasoning blocks from model output.

Reasoning models may prefix their answer with a think block. The rule:
remove every ``<think>...</think>`` span (case-insensitive, shortest
match), then any stray opening or closing tag, then trim surrounding
whitespace.

``ReasoningFilter`` applies the same rule incrementally so a streamed
answer can be shown as it arrives: text that might still turn out to be
reasoning (an open block, a partial tag, trailing whitespace) is held
back until it is resolved. The concatenation of everything it emits
equals ``strip_reasoning`` of the concatenated input.
"""

from __future__ import annotations

import re

OPEN_TAG = "<think>"
CLOSE_TAG = "</think>"

_ANY_TAG = re.compile(r"</?think>", re.IGNORECASE)
_OPEN_RE = re.compile(re.escape(OPEN_TAG), re.IGNORECASE)
_CLOSE_RE = re.compile(re.escape(CLOSE_TAG), re.IGNORECASE)


def _partial_tag_suffix(text: str) -> int:
    """Length of the longest suffix of *text* that is a proper prefix of a tag."""
    for size in range(min(len(text), len(CLOSE_TAG) - 1), 0, -1):
        tail = text[-size:].lower()
        if OPEN_TAG.startswith(tail) or CLOSE_TAG.startswith(tail):
            return size
    return 0


class ReasoningFilter:
    """Streaming think-block filter."""

    def __init__(self) -> None:
        self._pending = ""
        self._in_block = False
        self._started = False
        self._held_whitespace = ""

    def feed(self, chunk: str) -> str:
        """Consume a fragment; return the text that is now safe to show."""
        self._pending += chunk
        return self._emit(self._drain(final=False))

    def flush(self) -> str:
        """End of stream; return whatever remains visible."""
        return self._emit(self._drain(final=True))

    def _drain(self, final: bool) -> str:
        visible: list[str] = []
        while self._pending:
            if self._in_block:
                close = _CLOSE_RE.search(self._pending)
                if close is None:
                    if final:
                        # Unterminated block: only the tags are dropped.
                        visible.append(_ANY_TAG.sub("", self._pending))
                        self._pending = ""
                        self._in_block = False
                    break
                self._pending = self._pending[close.end():]
                self._in_block = False
                continue

            tag = _ANY_TAG.search(self._pending)
            if tag is None:
                keep = 0 if final else _partial_tag_suffix(self._pending)
                visible.append(self._pending[: len(self._pending) - keep])
                self._pending = self._pending[len(self._pending) - keep:]
                break
            visible.append(self._pending[: tag.start()])
            self._in_block = _OPEN_RE.fullmatch(tag.group()) is not None
            self._pending = self._pending[tag.end():]
        return "".join(visible)

    def _emit(self, visible: str) -> str:
        if not self._started:
            visible = visible.lstrip()
            if not visible:
                return ""
            self._started = True
        text = self._held_whitespace + visible
        trimmed = text.rstrip()
        self._held_whitespace = text[len(trimmed):]
        return trimmed


def strip_reasoning(text: str) -> str:
    """Remove think blocks and stray think tags, then trim."""
    f = ReasoningFilter()
    return f.feed(text) + f.flush()
