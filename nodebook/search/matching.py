"""Tokenization and approximate term matching for the search index."""
import math
import re
from typing import List, Optional, Union

from rapidfuzz.distance import Levenshtein

WORD_PATTERN = re.compile(r"\w+")

MAX_FUZZY_DISTANCE = 6


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens of ``text``."""
    return WORD_PATTERN.findall(text.lower())


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def max_edit_distance(term: str, fuzzy: Union[bool, float]) -> int:
    """Largest edit distance allowed for a fuzzy match of ``term``.

    Args:
        term: Query term
        fuzzy: ``False`` disables fuzzy matching, a value below 1 is a
            fraction of the term length, anything else an absolute distance

    Returns:
        int: Allowed distance, never more than ``MAX_FUZZY_DISTANCE``
    """
    if fuzzy is False or fuzzy is None:
        return 0
    if fuzzy is True:
        fuzzy = 0.2
    if fuzzy < 1:
        distance = round_half_up(len(term) * fuzzy)
    else:
        distance = int(fuzzy)
    return min(distance, MAX_FUZZY_DISTANCE)


def bounded_levenshtein(a: str, b: str, max_distance: int) -> Optional[int]:
    """Levenshtein distance between ``a`` and ``b`` if it is at most ``max_distance``.

    Returns:
        Optional[int]: The distance, or None when it exceeds the bound
    """
    distance = Levenshtein.distance(a, b, score_cutoff=max_distance)
    return distance if distance <= max_distance else None
