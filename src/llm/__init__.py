"""Chat-completion provider clients."""
