"""Errors, cancellation and user-facing messages."""
