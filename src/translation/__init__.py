"""Streaming translation."""
