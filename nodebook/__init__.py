"""Personal knowledge capture with AI tagging and full-text search."""

__version__ = "0.1.0"
