"""
matching/settings.py

Thresholds used by the CAP code matcher. All prices are in pence.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MatchingSettings:
    """
    Scoring thresholds and rejection gates for vehicle matching.

    ``price_bonus_bands`` is ordered ``(max_abs_difference, bonus)``; the first
    band containing the price difference applies. An exact price match earns
    ``exact_price_bonus``.
    """

    price_hard_reject_pence: int = 100_000
    price_tolerance_pence: int = 50_000
    tolerance_gate_min_confidence: int = 50
    high_confidence: int = 90
    medium_confidence: int = 70
    base_model_min_similarity: int = 60
    candidate_limit: int = 500
    base_score: int = 15
    similarity_weight: int = 70
    exact_price_bonus: int = 15
    price_bonus_bands: tuple[tuple[int, int], ...] = (
        (5_000, 12),
        (10_000, 8),
        (20_000, 4),
    )


DEFAULT_MATCHING_SETTINGS = MatchingSettings()
