"""Page text recognition (OCR)."""
