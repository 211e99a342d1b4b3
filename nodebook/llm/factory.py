"""Factory for creating language model instances."""
import os
from typing import Optional, Union

from dotenv import load_dotenv

from .base import LLMConfig, NullLanguageModel
from .ollama import OllamaLLM
from ..core.config import Settings

# Load environment variables
load_dotenv()


def create_llm_config(settings: Optional[Settings] = None) -> LLMConfig:
    """Build an LLM configuration from settings and the environment.

    The model name comes from ``settings`` when given, otherwise from
    ``OLLAMA_MODEL``. Backend options are read from ``OLLAMA_*`` variables.

    Args:
        settings: Application settings

    Returns:
        LLMConfig: Backend configuration
    """
    model = settings.model if settings else os.environ.get("OLLAMA_MODEL", "phi4-mini")
    num_predict = os.environ.get("OLLAMA_NUM_PREDICT")
    return LLMConfig(
        model=model,
        base_url=os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434"),
        temperature=float(os.environ.get("OLLAMA_TEMPERATURE", "0.3")),
        max_tokens=int(num_predict) if num_predict else None,
        timeout=float(os.environ.get("OLLAMA_TIMEOUT", "60")),
        api_key=os.environ.get("OLLAMA_API_KEY") or None,
    )


def create_llm(
    settings: Optional[Settings] = None, enabled: bool = True
) -> Union[OllamaLLM, NullLanguageModel]:
    """Create an LLM instance.

    Args:
        settings: Application settings
        enabled: Whether AI tagging is on. When False a model that never
            produces text is returned.

    Returns:
        Union[OllamaLLM, NullLanguageModel]: Uninitialized model instance
    """
    config = create_llm_config(settings)
    if not enabled:
        return NullLanguageModel(config)
    return OllamaLLM(config)
