"""Per-channel proposal state and its persistence."""
