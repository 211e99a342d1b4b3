"""Custom exceptions for the node store."""
from typing import Optional


class StorageError(Exception):
    """Base exception for node log I/O."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.cause = cause


class NodeNotFoundError(Exception):
    """No node with the given id exists."""

    def __init__(self, node_id: str):
        super().__init__(f"Node with id {node_id} not found")
        self.node_id = node_id


class PathValidationError(StorageError):
    """The data directory cannot be created or is not writable."""

    def __init__(self, path: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Invalid data path {path}: {message}", cause)
        self.path = path


class SourceFileError(Exception):
    """A file to import as a node is missing, unreadable or empty."""

    def __init__(self, path: str, message: str, cause: Optional[BaseException] = None):
        detail = f"Cannot import {path}: {message}"
        super().__init__(detail if cause is None else f"{detail}: {cause}")
        self.path = path
        self.cause = cause
