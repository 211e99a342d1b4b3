"""Language model gateway."""
from .base import (
    BaseLanguageModel,
    LLMConfig,
    LLMConnectionError,
    ModelError,
    ModelResponse,
    NullLanguageModel,
)
from .ollama import OllamaLLM

__all__ = [
    "BaseLanguageModel",
    "LLMConfig",
    "LLMConnectionError",
    "ModelError",
    "ModelResponse",
    "NullLanguageModel",
    "OllamaLLM",
]
