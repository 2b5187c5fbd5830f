"""pagereader — OCR, translation and narration pipeline for paged documents."""

from pagereader.version import __version__

__all__ = ["__version__"]
