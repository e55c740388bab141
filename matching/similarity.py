"""
matching/similarity.py

Edit-distance similarity on normalized vehicle names.
"""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

from matching.normalizer import normalize_model_name


def similarity(a: str | None, b: str | None) -> int:
    """
    Return a 0-100 similarity score for two free-text names.

    Both empty scores 100; exactly one empty scores 0.
    """

    raw_a = (a or "").strip()
    raw_b = (b or "").strip()
    if not raw_a and not raw_b:
        return 100
    if not raw_a or not raw_b:
        return 0

    norm_a = normalize_model_name(raw_a)
    norm_b = normalize_model_name(raw_b)
    if norm_a == norm_b:
        return 100

    longest = max(len(norm_a), len(norm_b))
    distance = Levenshtein.distance(norm_a, norm_b)
    return round((1 - distance / longest) * 100)
