"""Node model for the knowledge log."""
import time
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _unique(tags: List[str]) -> List[str]:
    return list(dict.fromkeys(tags))


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class Node(BaseModel):
    """A captured piece of text with its tags."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique identifier for the node")
    timestamp: int = Field(default_factory=now_ms, description="Creation time in epoch milliseconds")
    raw_text: str = Field(description="Captured text")
    tags: List[str] = Field(default_factory=list, description="Tags in insertion order, no duplicates")
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional metadata such as title or source"
    )

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        return _unique(tags)

    def to_json_dict(self) -> Dict[str, Any]:
        """Serializable form used in the log; ``metadata`` is omitted when unset."""
        data = self.model_dump()
        if data["metadata"] is None:
            del data["metadata"]
        return data


class CreateNodeOptions(BaseModel):
    """Options for creating a node."""

    raw_text: str
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class NodeUpdate(BaseModel):
    """Partial update of a node. Only fields that are set are applied."""

    raw_text: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class SearchOptions(BaseModel):
    """Options for a search query."""

    query: str
    limit: int = Field(10, ge=1)
    fuzzy: bool = True
    min_score: Optional[float] = None


class SearchResult(BaseModel):
    """A ranked search hit."""

    node: Node
    score: float
    matched_terms: List[str] = Field(default_factory=list)
