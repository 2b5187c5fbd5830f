# src/logging/handlers.py — v1
"""Log handlers for the CLI and long reading sessions.

Console output goes to stderr because ``pagereader read`` prints page
text on stdout. The optional LOG_FILE is rotated by size (LOG_ROTATION)
keeping LOG_RETENTION backups.
"""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_PATTERN = re.compile(r"(\d+)\s*([KMG]?)(I?B)?", re.IGNORECASE)
_UNIT_FACTORS = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3}


def parse_size(size_str: str) -> int:
    """Bytes in a size like "512B", "10MB", "2 GiB" or "64K" (binary units)."""
    match = _SIZE_PATTERN.fullmatch(size_str.strip())
    if not match or not (match.group(2) or match.group(3)):
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _UNIT_FACTORS[match.group(2).upper()]


def create_console_handler() -> logging.Handler:
    """Handler writing to stderr, keeping stdout for page text."""
    return logging.StreamHandler(sys.stderr)


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 5,
) -> logging.Handler:
    """Size-rotated UTF-8 file handler; the parent directory is created.

    Args:
        log_file: Log path, ``~`` expanded.
        rotation: Size that triggers a rollover, e.g. "10MB".
        retention: Rotated files kept next to the live one.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
