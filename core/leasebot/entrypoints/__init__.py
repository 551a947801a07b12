"""Service entrypoints."""
