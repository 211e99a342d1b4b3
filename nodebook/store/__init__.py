"""Persistent node storage."""
from .exceptions import NodeNotFoundError, PathValidationError, SourceFileError, StorageError
from .jsonl_store import LOG_FILENAME, NodeStore

__all__ = [
    "LOG_FILENAME",
    "NodeNotFoundError",
    "NodeStore",
    "PathValidationError",
    "SourceFileError",
    "StorageError",
]
