"""Tag extraction from raw LLM responses."""
import logging
import re
from typing import List, Tuple

logger = logging.getLogger(__name__)

MAX_CANDIDATE_LENGTH = 50

# Words that show up when the model describes its output instead of giving it
META_WORDS: Tuple[str, ...] = ("tag", "example", "content")

_SPLIT_PATTERN = re.compile(r"[,\n]")
_LEADING_SYMBOLS = re.compile(r"^(?:[^\w\s]|_)+")


def clean_candidate(candidate: str) -> str:
    """Normalize one comma/newline separated fragment.

    Strips surrounding whitespace and a leading run of punctuation or
    symbols (bullets, ``#``), then keeps only the text after the last colon.

    Args:
        candidate: Raw fragment

    Returns:
        str: Cleaned fragment, possibly empty
    """
    candidate = candidate.strip()
    candidate = _LEADING_SYMBOLS.sub("", candidate)
    if ":" in candidate:
        candidate = candidate.rsplit(":", 1)[-1]
    return candidate.strip()


def is_tag_like(candidate: str) -> bool:
    """Check whether a cleaned fragment looks like a single tag.

    Rejects empty fragments, fragments over 50 characters, multi-word
    fragments and fragments mentioning one of :data:`META_WORDS`. A real tag
    that happens to contain a meta word is dropped too.

    Args:
        candidate: Cleaned fragment

    Returns:
        bool: True if the fragment should be kept
    """
    if not candidate or len(candidate) > MAX_CANDIDATE_LENGTH:
        return False
    if " " in candidate:
        return False
    lowered = candidate.lower()
    return not any(word in lowered for word in META_WORDS)


def extract_tag_candidates(response: str) -> List[str]:
    """Extract candidate tags from an LLM response.

    Example:
        >>> extract_tag_candidates("Here are some tags: foo, bar")
        ['foo', 'bar']

    Args:
        response: LLM response text

    Returns:
        List[str]: Candidate tags in response order
    """
    candidates = []
    for fragment in _SPLIT_PATTERN.split(response):
        candidate = clean_candidate(fragment)
        if is_tag_like(candidate):
            candidates.append(candidate)
        elif candidate:
            logger.debug(f"Discarded tag candidate: {candidate!r}")
    return candidates
