"""Types shared by the tag generation pipeline."""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


class TagError(Exception):
    """Tag generation error.

    Attributes:
        code: Machine-readable error code
        details: Structured context, e.g. the offending tag and rule
    """

    INITIALIZATION_ERROR = "INITIALIZATION_ERROR"
    MODEL_ERROR = "MODEL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORMAT_ERROR = "FORMAT_ERROR"
    GENERATION_ERROR = "GENERATION_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"

    def __init__(self, message: str, code: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


@dataclass
class TagValidationRule:
    """A named check applied to every extracted tag."""
    name: str
    validate: Callable[[str], bool]
    error_message: str


@dataclass
class TagConfig:
    """Tag generation configuration."""
    format: str = "hashtag"
    custom_format: Optional[str] = None
    max_tags: int = 5
    min_relevance: float = 0.5
    deduplicate: bool = True
    validation_rules: List[TagValidationRule] = field(default_factory=list)


@dataclass
class Tag:
    """A generated tag with its relevance score."""
    text: str
    relevance: float = 1.0
    category: Optional[str] = None


@dataclass
class TagResultMetadata:
    """Bookkeeping for one generation call."""
    generation_time: float
    total_tags: int
    filtered_tags: int
    model_name: str


@dataclass
class TagResult:
    """Tags produced for one piece of content."""
    tags: List[Tag]
    metadata: TagResultMetadata

    @property
    def texts(self) -> List[str]:
        """Display text of every tag, in order."""
        return [tag.text for tag in self.tags]
