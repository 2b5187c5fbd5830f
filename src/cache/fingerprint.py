# src/cache/fingerprint.py — v1
"""Document fingerprinting: SHA-256 over the raw document bytes.

Two byte-identical documents share a fingerprint, and therefore share
cached page artifacts, wherever they live on disk.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1 << 20


def compute_fingerprint(raw_bytes: bytes) -> str:
    """SHA-256 hex digest of *raw_bytes*."""
    return hashlib.sha256(raw_bytes).hexdigest()


def fingerprint_file(path: Path | str, chunk_size: int = _CHUNK_SIZE) -> str:
    """Stream a file through SHA-256 without loading it whole.

    Produces the same digest as ``compute_fingerprint(path.read_bytes())``.
    """
    digest = hashlib.sha256()
    with Path(path).expanduser().open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()
