"""Public API: reading sessions."""
