"""
matching/matcher.py

Best-candidate selection against the vehicle catalog.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from matching.confidence import evaluate_candidate
from matching.normalizer import normalize_manufacturer
from matching.settings import DEFAULT_MATCHING_SETTINGS, MatchingSettings
from matching.status import method_for_confidence
from matching.types import CandidateVehicle, MatchResult, SourceVehicle

logger = logging.getLogger(__name__)

MANUFACTURER_PREFIX_LENGTH = 4


class CandidateCatalog(Protocol):
    """
    Source of catalog vehicles to score against.
    """

    def find_candidates(self, manufacturer_prefix: str, *, limit: int) -> Sequence[CandidateVehicle]:
        ...


class VehicleMatcher:
    """
    Score a bounded candidate set and keep the most confident survivor.
    """

    def __init__(
        self,
        catalog: CandidateCatalog,
        settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
    ) -> None:
        self._catalog = catalog
        self._settings = settings

    def match(self, source: SourceVehicle) -> MatchResult:
        manufacturer = normalize_manufacturer(source.manufacturer)
        if not manufacturer:
            return MatchResult.unmatched(source)

        candidates = self._catalog.find_candidates(
            manufacturer[:MANUFACTURER_PREFIX_LENGTH],
            limit=self._settings.candidate_limit,
        )
        return self.select_best(source, candidates)

    def select_best(self, source: SourceVehicle, candidates: Sequence[CandidateVehicle]) -> MatchResult:
        """
        Pick the highest-confidence candidate that survives every gate.

        Below the medium threshold the result carries no CAP code but keeps
        the best confidence seen.
        """

        best: CandidateVehicle | None = None
        best_confidence = 0
        rejected = 0

        for candidate in candidates:
            evaluation = evaluate_candidate(source, candidate, self._settings)
            if not evaluation.accepted or evaluation.confidence is None:
                rejected += 1
                continue
            if evaluation.confidence > best_confidence:
                best = candidate
                best_confidence = evaluation.confidence
                if best_confidence >= 100:
                    break

        logger.debug(
            "Scored %d candidates for source_key=%s best=%s confidence=%d rejected=%d",
            len(candidates),
            source.source_key,
            best.cap_code if best is not None else None,
            best_confidence,
            rejected,
        )

        if best is None or best_confidence < self._settings.medium_confidence:
            return MatchResult.unmatched(source, confidence=best_confidence)

        return MatchResult.from_candidate(
            source,
            best,
            confidence=best_confidence,
            method=method_for_confidence(best_confidence, self._settings),
        )
