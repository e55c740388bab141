"""
matching/confidence.py

Rejection gates and confidence scoring for a single source/candidate pair.
"""

from __future__ import annotations

from dataclasses import dataclass

from matching.normalizer import (
    combined_name,
    extract_base_model,
    extract_body_type,
    name_for_similarity,
    normalize_manufacturer,
)
from matching.settings import DEFAULT_MATCHING_SETTINGS, MatchingSettings
from matching.similarity import similarity
from matching.types import CandidateVehicle, SourceVehicle


class RejectionReason:
    MANUFACTURER = "manufacturer_mismatch"
    PRICE_HARD_REJECT = "price_hard_reject"
    BODY_TYPE = "body_type_mismatch"
    BASE_MODEL = "base_model_mismatch"
    PRICE_TOLERANCE = "price_outside_tolerance"


@dataclass(frozen=True)
class CandidateEvaluation:
    confidence: int | None
    rejected_by: str | None = None

    @property
    def accepted(self) -> bool:
        return self.rejected_by is None


def _price_difference(a: int | None, b: int | None) -> int | None:
    if a is None or b is None:
        return None
    return abs(a - b)


def price_hard_reject(
    source_p11d: int | None,
    candidate_p11d: int | None,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> bool:
    diff = _price_difference(source_p11d, candidate_p11d)
    return diff is not None and diff > settings.price_hard_reject_pence


def price_within_tolerance(
    source_p11d: int | None,
    candidate_p11d: int | None,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> bool:
    diff = _price_difference(source_p11d, candidate_p11d)
    return diff is None or diff <= settings.price_tolerance_pence


def price_bonus(
    source_p11d: int | None,
    candidate_p11d: int | None,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> int:
    """
    Extra points for close list prices; 0 when either price is unknown.
    """

    diff = _price_difference(source_p11d, candidate_p11d)
    if diff is None:
        return 0
    if diff == 0:
        return settings.exact_price_bonus
    for max_diff, bonus in settings.price_bonus_bands:
        if diff <= max_diff:
            return bonus
    return 0


def body_types_compatible(text_a: str | None, text_b: str | None) -> bool:
    body_a = extract_body_type(text_a)
    body_b = extract_body_type(text_b)
    if body_a is None or body_b is None:
        return True
    return body_a == body_b


def base_models_compatible(
    model_a: str | None,
    model_b: str | None,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> bool:
    """
    Base models must be equal, nested, or sufficiently similar.

    "DUSTER" vs "JOGGER" fails; "3 SERIES" vs "3 SERIES GRAN COUPE" passes.
    """

    base_a = extract_base_model(model_a)
    base_b = extract_base_model(model_b)
    if not base_a or not base_b:
        return True
    if base_a == base_b or base_a in base_b or base_b in base_a:
        return True
    return similarity(base_a, base_b) >= settings.base_model_min_similarity


def score(
    combined_similarity: int,
    bonus: int,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> int:
    raw = settings.base_score + combined_similarity / 100 * settings.similarity_weight + bonus
    return max(0, min(100, round(raw)))


def evaluate_candidate(
    source: SourceVehicle,
    candidate: CandidateVehicle,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> CandidateEvaluation:
    """
    Run every rejection gate, then score the pair.

    Gates run in a fixed order and the first failure is reported. A
    manufacturer mismatch scores 0.
    """

    if normalize_manufacturer(source.manufacturer) != normalize_manufacturer(candidate.manufacturer):
        return CandidateEvaluation(confidence=0, rejected_by=RejectionReason.MANUFACTURER)

    if price_hard_reject(source.p11d, candidate.p11d, settings):
        return CandidateEvaluation(confidence=None, rejected_by=RejectionReason.PRICE_HARD_REJECT)

    source_full = combined_name(source.model, source.variant)
    candidate_full = combined_name(candidate.model, candidate.variant)
    if not body_types_compatible(source_full, candidate_full):
        return CandidateEvaluation(confidence=None, rejected_by=RejectionReason.BODY_TYPE)

    if not base_models_compatible(source.model, candidate.model, settings):
        return CandidateEvaluation(confidence=None, rejected_by=RejectionReason.BASE_MODEL)

    combined_similarity = similarity(
        name_for_similarity(source.model, source.variant),
        name_for_similarity(candidate.model, candidate.variant),
    )
    confidence = score(
        combined_similarity,
        price_bonus(source.p11d, candidate.p11d, settings),
        settings,
    )

    if confidence >= settings.tolerance_gate_min_confidence and not price_within_tolerance(
        source.p11d, candidate.p11d, settings
    ):
        return CandidateEvaluation(confidence=confidence, rejected_by=RejectionReason.PRICE_TOLERANCE)

    return CandidateEvaluation(confidence=confidence)


def calculate_confidence(
    source: SourceVehicle,
    candidate: CandidateVehicle,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> int | None:
    """
    Confidence for an accepted pair, or None when a gate discarded it.
    """

    evaluation = evaluate_candidate(source, candidate, settings)
    if not evaluation.accepted:
        return None
    return evaluation.confidence
