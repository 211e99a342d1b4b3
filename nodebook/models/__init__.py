"""Data models."""
from .node import CreateNodeOptions, Node, NodeUpdate, SearchOptions, SearchResult

__all__ = ["CreateNodeOptions", "Node", "NodeUpdate", "SearchOptions", "SearchResult"]
