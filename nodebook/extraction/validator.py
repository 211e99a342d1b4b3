"""Validation of extracted tags."""
import logging
import re
from typing import List, Optional, Sequence

from ..tags.models import TagError, TagValidationRule

logger = logging.getLogger(__name__)

MIN_TAG_LENGTH = 2
MAX_TAG_LENGTH = 50

_TAG_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

DEFAULT_VALIDATION_RULES: List[TagValidationRule] = [
    TagValidationRule(
        name="length",
        validate=lambda tag: MIN_TAG_LENGTH <= len(tag) <= MAX_TAG_LENGTH,
        error_message=f"Tag length must be between {MIN_TAG_LENGTH} and {MAX_TAG_LENGTH} characters",
    ),
    TagValidationRule(
        name="format",
        validate=lambda tag: _TAG_PATTERN.fullmatch(tag) is not None,
        error_message="Tag can only contain letters, numbers, hyphens, and underscores",
    ),
]


class TagValidator:
    """Runs tags through an ordered list of validation rules."""

    def __init__(self, custom_rules: Optional[Sequence[TagValidationRule]] = None):
        """Initialize validator.

        Args:
            custom_rules: Rules run after the default rules
        """
        self.rules: List[TagValidationRule] = [
            *DEFAULT_VALIDATION_RULES,
            *(custom_rules or []),
        ]

    def validate_tag(self, tag: str) -> None:
        """Validate a single tag.

        Args:
            tag: Tag text

        Raises:
            TagError: VALIDATION_ERROR for the first rule the tag fails
        """
        for rule in self.rules:
            if not rule.validate(tag):
                logger.warning(f"Tag {tag!r} failed validation rule {rule.name!r}")
                raise TagError(
                    rule.error_message,
                    TagError.VALIDATION_ERROR,
                    {"tag": tag, "rule": rule.name, "error_message": rule.error_message},
                )

    def validate_tags(self, tags: Sequence[str]) -> List[str]:
        """Validate tags in order.

        Args:
            tags: Candidate tags

        Returns:
            List[str]: The same tags, all valid

        Raises:
            TagError: VALIDATION_ERROR on the first invalid tag
        """
        for tag in tags:
            self.validate_tag(tag)
        return list(tags)
