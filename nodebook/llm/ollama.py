"""Ollama LLM integration."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from .base import (
    BaseLanguageModel,
    LLMConfig,
    LLMConnectionError,
    ModelError,
    ModelResponse,
)
from ..utils.retry import retry

logger = logging.getLogger(__name__)


class OllamaLLM(BaseLanguageModel):
    """Ollama LLM client.

    The client starts uninitialized. ``initialize`` validates the
    configuration and checks that the model is installed on the server;
    only then is ``generate`` allowed.
    """

    def __init__(self, config: LLMConfig):
        """Initialize LLM client.

        Args:
            config: Client configuration
        """
        self.config = config
        self._ready = False
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> None:
        """Ensure aiohttp session exists."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            headers = {}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self._session = aiohttp.ClientSession(headers=headers, timeout=timeout)

    async def close(self) -> None:
        """Close the client session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Send one request to the Ollama server.

        Connection failures and timeouts are re-raised as
        ``LLMConnectionError``; HTTP error statuses surface as
        ``aiohttp.ClientResponseError``, whose message carries the status code.

        Args:
            method: HTTP method
            path: API path, e.g. ``/api/tags``
            payload: Optional JSON body

        Returns:
            Dict[str, Any]: Decoded JSON response
        """
        await self._ensure_session()
        if not self._session:
            raise RuntimeError("Failed to initialize session")

        url = f"{self.config.base_url.rstrip('/')}{path}"
        try:
            if method == "GET":
                response = await self._session.get(url)
            else:
                response = await self._session.post(url, json=payload)
            response.raise_for_status()
            data = await response.json()
        except aiohttp.ClientResponseError:
            raise
        except aiohttp.ClientConnectionError as e:
            raise LLMConnectionError(f"network error contacting {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise LLMConnectionError(f"timeout contacting {url}") from e
        return dict(data)

    async def list_models(self) -> List[str]:
        """List model names installed on the server.

        Returns:
            List[str]: Model names, including version tags
        """
        data = await self._request("GET", "/api/tags")
        return [m["name"] for m in data.get("models", []) if "name" in m]

    async def initialize(self, config: Optional[LLMConfig] = None) -> None:
        """Validate configuration and check model availability.

        Args:
            config: Replacement configuration, or None to keep the current one

        Raises:
            ModelError: INVALID_CONFIG or MODEL_NOT_FOUND
        """
        candidate = config or self.config
        try:
            validated = LLMConfig.model_validate(candidate.model_dump())
        except ValidationError as e:
            raise ModelError("Invalid configuration", ModelError.INVALID_CONFIG, e) from e

        if validated.base_url != self.config.base_url or validated.api_key != self.config.api_key:
            await self.close()
        self.config = validated

        async def check_model() -> None:
            models = await self.list_models()
            # Accept the bare name or any version tag of it
            exists = any(
                name == validated.model or name.split(":")[0] == validated.model
                for name in models
            )
            if not exists:
                raise ModelError(
                    f"Model {validated.model} not found. "
                    f"Available models: {', '.join(models) or 'none'}",
                    ModelError.MODEL_NOT_FOUND,
                )

        await retry(check_model, validated.retry, description="model availability check")
        self._ready = True
        logger.info(f"Ollama model {validated.model} ready at {validated.base_url}")

    async def generate(self, prompt: str) -> ModelResponse:
        """Generate text completion.

        Args:
            prompt: Prompt text

        Returns:
            ModelResponse: Generated text, token count and timing metadata

        Raises:
            ModelError: NOT_INITIALIZED or GENERATION_FAILED
        """
        if not self._ready:
            raise ModelError("Model not initialized", ModelError.NOT_INITIALIZED)

        options: Dict[str, Any] = {"temperature": self.config.temperature}
        if self.config.max_tokens is not None:
            options["num_predict"] = self.config.max_tokens
        if self.config.stop:
            options["stop"] = self.config.stop

        payload = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": options,
        }

        try:
            data = await retry(
                lambda: self._request("POST", "/api/generate", payload),
                self.config.retry,
                description="generate",
            )
        except Exception as e:
            raise ModelError(
                f"Failed to generate response: {e}", ModelError.GENERATION_FAILED, e
            ) from e

        return ModelResponse(
            content=data.get("response", ""),
            tokens_used=data.get("eval_count") or 0,
            metadata={
                "done": data.get("done", True),
                "total_duration": data.get("total_duration") or 0,
                "load_duration": data.get("load_duration") or 0,
                "prompt_eval_duration": data.get("prompt_eval_duration") or 0,
                "eval_duration": data.get("eval_duration") or 0,
            },
        )

    def is_ready(self) -> bool:
        """Whether the model passed initialization."""
        return self._ready

    def get_config(self) -> LLMConfig:
        """Current configuration."""
        return self.config
