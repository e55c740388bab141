"""
matching/types.py

Value types shared by the CAP code matching engine.
"""

from __future__ import annotations

from dataclasses import dataclass

from matching.normalizer import generate_source_key


class MatchStatus:
    CONFIRMED = "confirmed"
    PENDING = "pending"
    MANUAL = "manual"
    REJECTED = "rejected"


class MatchMethod:
    AUTO_EXACT = "auto_exact"
    AUTO_FUZZY = "auto_fuzzy"
    MANUAL = "manual"
    NONE = "none"


@dataclass(frozen=True)
class SourceVehicle:
    """
    One provider's description of a vehicle, as seen on a ratebook row.

    ``p11d`` is the list price in pence.
    """

    manufacturer: str
    model: str
    variant: str | None = None
    p11d: int | None = None

    @property
    def source_key(self) -> str:
        return generate_source_key(self.manufacturer, self.model, self.variant)


@dataclass(frozen=True)
class CandidateVehicle:
    """
    A catalog vehicle considered as a match for a source description.
    """

    cap_code: str
    manufacturer: str
    model: str
    variant: str | None = None
    p11d: int | None = None


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of resolving one source description against the catalog.
    """

    source_key: str
    source: SourceVehicle
    cap_code: str | None = None
    matched_manufacturer: str | None = None
    matched_model: str | None = None
    matched_variant: str | None = None
    matched_p11d: int | None = None
    confidence: int = 0
    method: str = MatchMethod.NONE

    @classmethod
    def unmatched(cls, source: SourceVehicle, *, confidence: int = 0) -> MatchResult:
        return cls(source_key=source.source_key, source=source, confidence=confidence)

    @classmethod
    def from_candidate(
        cls,
        source: SourceVehicle,
        candidate: CandidateVehicle,
        *,
        confidence: int,
        method: str,
    ) -> MatchResult:
        return cls(
            source_key=source.source_key,
            source=source,
            cap_code=candidate.cap_code,
            matched_manufacturer=candidate.manufacturer,
            matched_model=candidate.model,
            matched_variant=candidate.variant,
            matched_p11d=candidate.p11d,
            confidence=confidence,
            method=method,
        )

    @property
    def is_matched(self) -> bool:
        return self.cap_code is not None
