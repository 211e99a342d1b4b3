"""Tag generation pipeline: prompt, generate, extract, validate, format, filter."""
import dataclasses
import logging
import time
from typing import Any, Dict, List, Optional

from .models import Tag, TagConfig, TagError, TagResult, TagResultMetadata
from ..extraction.deduplication import deduplicate_tags
from ..extraction.parser import extract_tag_candidates
from ..extraction.validator import TagValidator
from ..llm.base import BaseLanguageModel, ModelError
from ..llm.prompts import build_tag_prompt

logger = logging.getLogger(__name__)

TAG_FORMATS = ("hashtag", "plain", "custom")
TAG_PLACEHOLDER = "{tag}"


def resolve_tag_config(
    instance: Optional[Dict[str, Any]] = None,
    override: Optional[Dict[str, Any]] = None,
) -> TagConfig:
    """Resolve the effective tag configuration.

    Precedence, weakest first: ``TagConfig`` defaults, the generator's
    instance configuration, the per-call override.

    Args:
        instance: Instance-level options
        override: Per-call options

    Returns:
        TagConfig: Fully populated configuration

    Raises:
        TagError: CONFIG_ERROR for unknown options or out-of-range values,
            FORMAT_ERROR for an unusable format
    """
    merged: Dict[str, Any] = {}
    merged.update(instance or {})
    merged.update(override or {})

    known = {f.name for f in dataclasses.fields(TagConfig)}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise TagError(
            f"Unknown tag configuration options: {', '.join(unknown)}",
            TagError.CONFIG_ERROR,
            {"options": unknown},
        )

    config = TagConfig(**merged)
    if config.max_tags < 1:
        raise TagError("max_tags must be at least 1", TagError.CONFIG_ERROR, {"max_tags": config.max_tags})
    if not 0.0 <= config.min_relevance <= 1.0:
        raise TagError(
            "min_relevance must be between 0 and 1",
            TagError.CONFIG_ERROR,
            {"min_relevance": config.min_relevance},
        )
    check_format(config)
    return config


def check_format(config: TagConfig) -> None:
    """Ensure the configured format can be applied.

    Raises:
        TagError: FORMAT_ERROR
    """
    if config.format not in TAG_FORMATS:
        raise TagError(
            f"Unsupported tag format: {config.format}",
            TagError.FORMAT_ERROR,
            {"format": config.format},
        )
    if config.format == "custom":
        if not config.custom_format:
            raise TagError(
                "Custom format string is required for 'custom' format",
                TagError.FORMAT_ERROR,
                {"format": config.format},
            )
        if TAG_PLACEHOLDER not in config.custom_format:
            raise TagError(
                f"Custom format string must contain {TAG_PLACEHOLDER}",
                TagError.FORMAT_ERROR,
                {"custom_format": config.custom_format},
            )


def format_tag(tag: str, config: TagConfig) -> str:
    """Format a single tag for display.

    Args:
        tag: Validated tag text
        config: Tag configuration

    Returns:
        str: Formatted tag
    """
    check_format(config)
    if config.format == "hashtag":
        return f"#{tag}"
    if config.format == "custom":
        return config.custom_format.replace(TAG_PLACEHOLDER, tag)
    return tag


def score_relevance(tag: str, content: str) -> float:
    """Relevance of a tag to its content, between 0 and 1.

    No scoring model exists yet; every tag scores 1.0, so ``min_relevance``
    only matters once this returns real scores.
    """
    return 1.0


def filter_tags(tags: List[Tag], config: TagConfig) -> List[Tag]:
    """Apply count, relevance and duplicate filters, in that order.

    Args:
        tags: Formatted tags
        config: Tag configuration

    Returns:
        List[Tag]: Filtered tags
    """
    filtered = tags[:config.max_tags]
    filtered = [tag for tag in filtered if tag.relevance >= config.min_relevance]
    if config.deduplicate:
        filtered = deduplicate_tags(filtered)
    return filtered


class TagGenerator:
    """Generates tags for content with a language model."""

    def __init__(self, model: BaseLanguageModel, config: Optional[Dict[str, Any]] = None):
        """Initialize tag generator.

        Args:
            model: Language model used for generation
            config: Instance-level tag options (see ``TagConfig``)
        """
        self.model = model
        self._config: Dict[str, Any] = dict(config or {})
        # Fail on a bad instance config here, not on first use
        resolve_tag_config(self._config)

    async def generate_tags(
        self,
        content: str,
        content_type: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> TagResult:
        """Generate tags for the given content.

        Args:
            content: Content to tag
            content_type: Kind of content, used in the prompt
            config: Per-call option overrides

        Returns:
            TagResult: Formatted, filtered tags and generation metadata

        Raises:
            TagError: On any generation, extraction, validation or format
                failure
        """
        start = time.monotonic()
        resolved = resolve_tag_config(self._config, config)

        candidates = await self._generate_candidates(content, content_type)

        validator = TagValidator(resolved.validation_rules)
        validated = validator.validate_tags(candidates)

        tags = [
            Tag(text=format_tag(text, resolved), relevance=score_relevance(text, content))
            for text in validated
        ]
        filtered = filter_tags(tags, resolved)

        generation_time = (time.monotonic() - start) * 1000
        logger.debug(
            f"Generated {len(filtered)} of {len(tags)} tags in {generation_time:.0f} ms"
        )
        return TagResult(
            tags=filtered,
            metadata=TagResultMetadata(
                generation_time=generation_time,
                total_tags=len(tags),
                filtered_tags=len(filtered),
                model_name=self.model.get_config().model,
            ),
        )

    async def _generate_candidates(
        self, content: str, content_type: Optional[str]
    ) -> List[str]:
        """Prompt the model and extract candidate tags from its answer."""
        prompt = build_tag_prompt(content, content_type)
        try:
            response = await self.model.generate(prompt)
        except ModelError as e:
            if e.code == ModelError.NOT_INITIALIZED:
                raise TagError(str(e), TagError.INITIALIZATION_ERROR, {"cause": e.code}) from e
            if e.code == ModelError.GENERATION_FAILED:
                raise TagError(
                    "Failed to generate tags", TagError.GENERATION_ERROR, {"cause": str(e)}
                ) from e
            raise TagError(str(e), TagError.MODEL_ERROR, {"cause": e.code}) from e
        except Exception as e:
            raise TagError(
                "Failed to generate tags", TagError.GENERATION_ERROR, {"cause": str(e)}
            ) from e

        return extract_tag_candidates(response.content)

    def update_config(self, **options: Any) -> None:
        """Update instance-level tag options.

        Raises:
            TagError: If the resulting configuration is invalid
        """
        candidate = {**self._config, **options}
        resolve_tag_config(candidate)
        self._config = candidate

    def get_config(self) -> TagConfig:
        """Effective instance configuration."""
        return resolve_tag_config(self._config)
