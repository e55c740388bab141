"""
Match store: one cached CAP code resolution per source key.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.vehicle_cap_match import VehicleCapMatch
from matching.status import PROTECTED_STATUSES, TRUSTED_STATUSES
from matching.types import CandidateVehicle, MatchResult, MatchStatus

# Columns an upsert overwrites on conflict.
_RESOLUTION_COLUMNS = (
    "source_provider",
    "manufacturer",
    "model",
    "variant",
    "p11d",
    "cap_code",
    "matched_manufacturer",
    "matched_model",
    "matched_variant",
    "matched_p11d",
    "match_confidence",
    "match_status",
    "match_method",
    "matched_at",
)

_STATUS_ORDER = (
    MatchStatus.CONFIRMED,
    MatchStatus.PENDING,
    MatchStatus.MANUAL,
    MatchStatus.REJECTED,
)


class VehicleMatchRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def lookup(self, source_key: str) -> VehicleCapMatch | None:
        stmt = select(VehicleCapMatch).where(VehicleCapMatch.source_key == source_key).limit(1)
        return self._session.scalars(stmt).first()

    def get_cap_code(self, source_key: str) -> str | None:
        """
        CAP code for auto-linking; only confirmed or manual records qualify.
        """

        record = self.lookup(source_key)
        if record is None or record.match_status not in TRUSTED_STATUSES:
            return None
        return record.cap_code

    def upsert(
        self,
        result: MatchResult,
        *,
        source_provider: str,
        status: str,
        automatic: bool = True,
    ) -> bool:
        """
        Insert or overwrite the record for ``result.source_key`` in one statement.

        With ``automatic`` set, records already in a reviewer-owned status
        are left untouched. Returns False when the write was skipped.
        """

        now = utc_now()
        source = result.source
        payload = {
            "source_key": result.source_key,
            "source_provider": source_provider,
            "manufacturer": source.manufacturer,
            "model": source.model,
            "variant": source.variant,
            "p11d": source.p11d,
            "cap_code": result.cap_code,
            "matched_manufacturer": result.matched_manufacturer,
            "matched_model": result.matched_model,
            "matched_variant": result.matched_variant,
            "matched_p11d": result.matched_p11d,
            "match_confidence": Decimal(result.confidence),
            "match_status": status,
            "match_method": result.method,
            "matched_at": now,
        }

        stmt = insert(VehicleCapMatch).values(**payload)
        set_ = {name: getattr(stmt.excluded, name) for name in _RESOLUTION_COLUMNS}
        set_["updated_at"] = now
        stmt = stmt.on_conflict_do_update(
            index_elements=[VehicleCapMatch.source_key],
            set_=set_,
            where=VehicleCapMatch.match_status.notin_(sorted(PROTECTED_STATUSES)) if automatic else None,
        ).returning(VehicleCapMatch.id)

        return self._session.scalars(stmt).first() is not None

    def set_status(
        self,
        source_key: str,
        *,
        status: str,
        reviewed_by: str | None = None,
    ) -> VehicleCapMatch | None:
        record = self.lookup(source_key)
        if record is None:
            return None
        record.match_status = status
        record.confirmed_by = reviewed_by
        record.confirmed_at = utc_now() if status in TRUSTED_STATUSES else None
        return record

    def assign(
        self,
        source_key: str,
        vehicle: CandidateVehicle,
        *,
        status: str,
        method: str,
        confidence: int,
        reviewed_by: str | None = None,
    ) -> VehicleCapMatch | None:
        """
        Point a record at a specific catalog vehicle, copying its details.
        """

        record = self.lookup(source_key)
        if record is None:
            return None
        now = utc_now()
        record.cap_code = vehicle.cap_code
        record.matched_manufacturer = vehicle.manufacturer
        record.matched_model = vehicle.model
        record.matched_variant = vehicle.variant
        record.matched_p11d = vehicle.p11d
        record.match_confidence = Decimal(confidence)
        record.match_status = status
        record.match_method = method
        record.matched_at = now
        record.confirmed_by = reviewed_by
        record.confirmed_at = now if status in TRUSTED_STATUSES else None
        return record

    def count_by_status(self, source_provider: str | None = None) -> dict[str, int]:
        stmt = select(VehicleCapMatch.match_status, func.count()).group_by(VehicleCapMatch.match_status)
        if source_provider:
            stmt = stmt.where(VehicleCapMatch.source_provider == source_provider)

        counts = dict.fromkeys(_STATUS_ORDER, 0)
        for status, count in self._session.execute(stmt).all():
            counts[status] = int(count)
        return counts
