"""Normalized edit-distance similarity for training type names.

score = round((1 - levenshtein(a', b') / max(len(a'), len(b'))) * 100)

where a', b' are the normalize_name() forms. Uses the exact unit-cost Levenshtein
distance from RapidFuzz (insert, delete, substitute = 1); thresholds are applied
against this value, so approximations such as token ratios are not substitutes.
"""

from __future__ import annotations

import math

from rapidfuzz.distance import Levenshtein

from bulkrecon.canonical.normalize import normalize_name


def normalized_similarity(a: str, b: str) -> int:
    """Similarity (0-100) of two already-normalized strings."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 100  # Both empty: perfect match

    distance = Levenshtein.distance(a, b, weights=(1, 1, 1))
    # Round half up so 89.5 scores 90 on every platform
    return int(math.floor((1 - distance / longest) * 100 + 0.5))


def similarity(a: str | None, b: str | None) -> int:
    """Similarity (0-100) between two raw display names.

    Symmetric, and similarity(x, x) == 100 for every x.
    """
    return normalized_similarity(normalize_name(a), normalize_name(b))
