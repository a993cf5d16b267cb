"""Source and destination adapters."""
