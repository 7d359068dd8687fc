from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

CANDIDATE_SIMILARITY = 0.7

_NON_ALNUM = re.compile(r"[\W_]+")


def normalize_text(text: str) -> str:
    return _NON_ALNUM.sub("", (text or "").casefold())


def similarity(left: str, right: str) -> float:
    """``1 - edit_distance / len(longer)``; two empty strings are identical."""
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(left, right)) / float(longest)


def is_candidate(
    normalized_left: str,
    normalized_right: str,
    min_similarity: float = CANDIDATE_SIMILARITY,
) -> bool:
    if not normalized_left or not normalized_right:
        return False
    if normalized_left in normalized_right or normalized_right in normalized_left:
        return True
    return similarity(normalized_left, normalized_right) > min_similarity


def fuzzy_match(left: str, right: str, min_similarity: float = CANDIDATE_SIMILARITY) -> bool:
    return is_candidate(normalize_text(left), normalize_text(right), min_similarity)
