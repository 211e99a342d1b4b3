"""Language model interface shared by all text-generation backends."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.retry import RetryPolicy


class ModelError(Exception):
    """Error raised by a language model backend.

    Attributes:
        code: Machine-readable error code
        cause: Underlying error, if any
    """

    INVALID_CONFIG = "INVALID_CONFIG"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    GENERATION_FAILED = "GENERATION_FAILED"

    def __init__(self, message: str, code: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


class LLMConnectionError(Exception):
    """Transport-level failure talking to a model backend.

    Messages always include ``network error`` or ``timeout`` so the default
    retry policy treats them as transient.
    """
    pass


class LLMConfig(BaseModel):
    """Configuration for a language model backend."""

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    model: str = Field(description="Model name on the backend")
    temperature: float = Field(0.3, ge=0.0, le=1.0, description="Sampling temperature")
    max_tokens: Optional[int] = Field(None, gt=0, description="Maximum tokens to generate")
    stop: List[str] = Field(default_factory=list, description="Stop sequences")
    base_url: str = Field("http://localhost:11434", description="Backend address")
    timeout: float = Field(60.0, gt=0, description="Request timeout in seconds")
    api_key: Optional[str] = Field(None, description="Optional bearer token")
    retry: RetryPolicy = Field(default_factory=RetryPolicy, description="Retry policy")


class ModelResponse(BaseModel):
    """Text produced by a model."""

    content: str
    tokens_used: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BaseLanguageModel(ABC):
    """Abstract base class for text-generation backends."""

    @abstractmethod
    async def initialize(self, config: Optional[LLMConfig] = None) -> None:
        """Validate configuration and make the model ready.

        Args:
            config: Replacement configuration, or None to keep the current one
        """
        pass

    @abstractmethod
    async def generate(self, prompt: str) -> ModelResponse:
        """Generate a completion for a prompt.

        Args:
            prompt: Prompt text

        Returns:
            ModelResponse: Generated text and usage data
        """
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        """Whether ``generate`` may be called."""
        pass

    @abstractmethod
    def get_config(self) -> LLMConfig:
        """Current configuration."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class NullLanguageModel(BaseLanguageModel):
    """Model that never produces text.

    Used when AI tagging is switched off; tag generation against it yields
    no tags.
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig(model="none")

    async def initialize(self, config: Optional[LLMConfig] = None) -> None:
        if config is not None:
            self.config = config

    async def generate(self, prompt: str) -> ModelResponse:
        return ModelResponse(content="", tokens_used=0)

    def is_ready(self) -> bool:
        return True

    def get_config(self) -> LLMConfig:
        return self.config
