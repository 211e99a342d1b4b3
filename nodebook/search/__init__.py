"""Full-text search over nodes."""
from .index import SearchIndex

__all__ = ["SearchIndex"]
