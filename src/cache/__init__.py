"""Persistent, size-bounded cache of per-page OCR and translation text."""
