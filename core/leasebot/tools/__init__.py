"""Static tool declarations."""
