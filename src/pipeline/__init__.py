"""Page pipeline, prefetch and auto-read."""
