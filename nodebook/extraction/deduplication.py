"""Deduplication of generated tags."""
from typing import List, Set

from ..tags.models import Tag


def deduplicate_tags(tags: List[Tag]) -> List[Tag]:
    """Deduplicate tags by text, ignoring case.

    Args:
        tags: Tags to deduplicate

    Returns:
        List[Tag]: Deduplicated tags, keeping the first occurrence of each
        text and its original casing
    """
    seen: Set[str] = set()
    unique_tags: List[Tag] = []

    for tag in tags:
        key = tag.text.casefold()
        if key not in seen:
            seen.add(key)
            unique_tags.append(tag)

    return unique_tags
