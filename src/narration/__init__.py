"""Text-to-speech narration."""
