# src/logging/logger.py — v1
"""Log formatters and setup for the ``pagereader`` logger tree.

Two output formats, selected by LOG_FORMAT:

    text   2026-01-05 10:12:03 [INFO    ] pagereader.pipeline.page_pipeline [3f2a9c1e:p4#g7] (translation) - Page 4 ready
    json   {"timestamp": ..., "level": "INFO", "logger": ..., "message": ..., "context": {...}}

Both read the page context set by ``logging.context``; timestamps come
from the log record, not the time of formatting.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pagereader.logging.context import LogContext, get_context
from pagereader.logging.handlers import create_console_handler, create_rotating_handler

ROOT_LOGGER = "pagereader"

# Chatty transport loggers pulled in by the provider SDKs.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; page context nested under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Single-line terminal output with a compact page label."""

    def format(self, record: logging.LogRecord) -> str:
        line = " ".join(
            [
                _record_time(record).strftime("%Y-%m-%d %H:%M:%S"),
                f"[{record.levelname:8s}]",
                record.name,
                *self._context_parts(get_context()),
                f"- {record.getMessage()}",
            ]
        )
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line

    @staticmethod
    def _context_parts(ctx: LogContext) -> list[str]:
        parts = []
        label = ctx.label()
        if label:
            parts.append(f"[{label}]")
        if ctx.step:
            parts.append(f"({ctx.step})")
        return parts


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def get_logger(name: str) -> logging.Logger:
    """Logger named ``pagereader.<name>``; handlers come from setup_logging()."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> None:
    """(Re)configure the ``pagereader`` logger.

    Calling it again replaces the previous handlers.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "text" or "json"; anything else falls back to text.
        log_file: Also write to this file, rotated by size.
        rotation: Size limit of the log file, e.g. "10MB".
        retention: Rotated files to keep.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    formatter = _FORMATTERS.get(log_format, TextFormatter)()

    handlers: list[logging.Handler] = [create_console_handler()]
    if log_file:
        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
