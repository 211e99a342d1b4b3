"""Pydantic models for request/response validation in the API."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.node import Node


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Error code for programmatic handling")
    path: Optional[str] = Field(None, description="Path where the error occurred")
    timestamp: datetime = Field(default_factory=_utcnow, description="Timestamp of the error")


class NodeCreate(BaseModel):
    """Model for creating a new node."""

    raw_text: str = Field(..., min_length=1, description="Text to capture")
    tags: Optional[List[str]] = Field(None, description="Tags; generated when omitted")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Additional metadata")


class NodeFileCreate(BaseModel):
    """Model for importing a text file as a node."""

    path: str = Field(..., min_length=1, description="Path of a UTF-8 text file readable by the server")
    title: Optional[str] = Field(None, description="Title; defaults to the path")
    tags: Optional[List[str]] = Field(None, description="Tags; generated when omitted")


class NodeUpdate(BaseModel):
    """Model for updating an existing node."""

    raw_text: Optional[str] = Field(None, min_length=1, description="New text")
    tags: Optional[List[str]] = Field(None, description="New tags")
    metadata: Optional[Dict[str, Any]] = Field(None, description="New metadata")


class NodeList(BaseModel):
    """All nodes in log order."""

    nodes: List[Node]
    total: int


class SearchRequest(BaseModel):
    """Search request model."""

    query: str = Field(..., min_length=1, description="Search query")
    limit: int = Field(10, ge=1, le=100, description="Maximum number of results")
    fuzzy: bool = Field(True, description="Match terms within a small edit distance")
    min_score: Optional[float] = Field(None, ge=0, description="Minimum score of a result")


class SearchHit(BaseModel):
    """Search result model."""

    node: Node
    score: float
    matched_terms: List[str]


class SearchResponse(BaseModel):
    """Search response model."""

    results: List[SearchHit]
    query: str
    total: int


class ConfigResponse(BaseModel):
    """Current configuration."""

    data_dir: str
    model: str
    auto_tag: bool
    config_path: str
    data_path: str


class ConfigUpdate(BaseModel):
    """Configuration changes. Unset fields are left alone."""

    data_dir: Optional[str] = Field(None, min_length=1, description="New data directory; nodes are migrated")
    model: Optional[str] = Field(None, min_length=1, description="Tagging model, applied on restart")
    auto_tag: Optional[bool] = Field(None, description="Generate tags for untagged nodes")
