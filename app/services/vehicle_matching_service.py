"""
app/services/vehicle_matching_service.py

Resolves ratebook rows to CAP codes and exposes the match review actions.

Resolution order for a row:
    1. CAP code printed on the row
    2. provider mapping table (exact derivative name)
    3. trusted match store record (confirmed or manual)
    4. rejected match store record -> unresolved, no search
    5. full candidate search, recorded in the match store

Only confirmed results resolve a row automatically. Nothing here commits;
the caller owns the transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.domain.ratebook import RatebookRow
from db.repositories.provider_cap_mapping_repository import ProviderCapMappingRepository
from db.repositories.vehicle_match_repository import VehicleMatchRepository
from db.repositories.vehicle_repository import VehicleRepository
from matching.matcher import CandidateCatalog, VehicleMatcher
from matching.settings import DEFAULT_MATCHING_SETTINGS, MatchingSettings
from matching.status import (
    InvalidMatchTransitionError,
    is_trusted,
    review_transition,
    status_for_confidence,
)
from matching.types import CandidateVehicle, MatchMethod, MatchResult, MatchStatus, SourceVehicle

logger = logging.getLogger(__name__)


class ResolutionOrigin:
    ROW = "row"
    PROVIDER_MAPPING = "provider_mapping"
    MATCH_STORE = "match_store"
    MATCHER = "matcher"


class MatchRecordNotFoundError(LookupError):
    """Raised when no match record exists for a source key."""


class CatalogVehicleNotFoundError(LookupError):
    """Raised when a CAP code is not present in the vehicle catalog."""


class MatchStore(Protocol):
    def lookup(self, source_key: str) -> Any | None:
        ...

    def upsert(
        self,
        result: MatchResult,
        *,
        source_provider: str,
        status: str,
        automatic: bool = True,
    ) -> bool:
        ...

    def get_cap_code(self, source_key: str) -> str | None:
        ...

    def set_status(
        self,
        source_key: str,
        *,
        status: str,
        reviewed_by: str | None = None,
    ) -> Any | None:
        ...

    def assign(
        self,
        source_key: str,
        vehicle: CandidateVehicle,
        *,
        status: str,
        method: str,
        confidence: int,
        reviewed_by: str | None = None,
    ) -> Any | None:
        ...

    def count_by_status(self, source_provider: str | None = None) -> dict[str, int]:
        ...


class VehicleCatalog(CandidateCatalog, Protocol):
    def get_candidate(self, cap_code: str) -> CandidateVehicle | None:
        ...


class CapMappingLookup(Protocol):
    def lookup(self, *, provider_code: str, derivative_name: str) -> str | None:
        ...


@dataclass(frozen=True)
class RowResolution:
    cap_code: str | None
    origin: str
    confidence: int | None = None

    @property
    def resolved(self) -> bool:
        return self.cap_code is not None


class VehicleMatchingService:
    def __init__(
        self,
        *,
        match_store: MatchStore,
        catalog: VehicleCatalog,
        cap_mappings: CapMappingLookup | None = None,
        settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
    ) -> None:
        self._store = match_store
        self._catalog = catalog
        self._cap_mappings = cap_mappings
        self._settings = settings
        self._matcher = VehicleMatcher(catalog, settings)

    @classmethod
    def for_session(
        cls,
        session: Session,
        settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
    ) -> VehicleMatchingService:
        return cls(
            match_store=VehicleMatchRepository(session),
            catalog=VehicleRepository(session),
            cap_mappings=ProviderCapMappingRepository(session),
            settings=settings,
        )

    def resolve_row(self, provider_code: str, row: RatebookRow) -> RowResolution:
        if row.cap_code:
            return RowResolution(cap_code=row.cap_code, origin=ResolutionOrigin.ROW)

        source = row.to_source_vehicle()

        mapped = self._lookup_provider_mapping(provider_code, row)
        if mapped is not None:
            self._record_mapping_hit(provider_code, source, mapped)
            return RowResolution(cap_code=mapped, origin=ResolutionOrigin.PROVIDER_MAPPING, confidence=100)

        existing = self._store.lookup(source.source_key)
        if existing is not None and is_trusted(existing.match_status) and existing.cap_code:
            return RowResolution(cap_code=existing.cap_code, origin=ResolutionOrigin.MATCH_STORE)
        if existing is not None and existing.match_status == MatchStatus.REJECTED:
            return RowResolution(cap_code=None, origin=ResolutionOrigin.MATCH_STORE)

        result = self._matcher.match(source)
        status = status_for_confidence(result.confidence, self._settings)
        written = self._store.upsert(result, source_provider=provider_code, status=status)
        if not written:
            # A reviewer decision landed between lookup and upsert.
            return RowResolution(
                cap_code=self._store.get_cap_code(source.source_key),
                origin=ResolutionOrigin.MATCH_STORE,
            )

        cap_code = result.cap_code if status == MatchStatus.CONFIRMED else None
        return RowResolution(cap_code=cap_code, origin=ResolutionOrigin.MATCHER, confidence=result.confidence)

    # ------------------------------------------------------------------
    # Review actions
    # ------------------------------------------------------------------

    def confirm(self, source_key: str, *, reviewed_by: str | None = None) -> Any:
        record = self._require_record(source_key)
        if not record.cap_code:
            raise InvalidMatchTransitionError(f"Match {source_key} has no CAP code to confirm.")
        status = review_transition(record.match_status, MatchStatus.CONFIRMED)
        logger.info("Match confirmed source_key=%s cap_code=%s by=%s", source_key, record.cap_code, reviewed_by)
        return self._store.set_status(source_key, status=status, reviewed_by=reviewed_by)

    def reject(self, source_key: str, *, reviewed_by: str | None = None) -> Any:
        record = self._require_record(source_key)
        status = review_transition(record.match_status, MatchStatus.REJECTED)
        logger.info("Match rejected source_key=%s by=%s", source_key, reviewed_by)
        return self._store.set_status(source_key, status=status, reviewed_by=reviewed_by)

    def assign_manual(self, source_key: str, cap_code: str, *, reviewed_by: str | None = None) -> Any:
        record = self._require_record(source_key)
        vehicle = self._catalog.get_candidate(cap_code)
        if vehicle is None:
            raise CatalogVehicleNotFoundError(f"CAP code {cap_code} is not in the vehicle catalog.")
        status = review_transition(record.match_status, MatchStatus.MANUAL)
        logger.info("Match assigned manually source_key=%s cap_code=%s by=%s", source_key, cap_code, reviewed_by)
        return self._store.assign(
            source_key,
            vehicle,
            status=status,
            method=MatchMethod.MANUAL,
            confidence=100,
            reviewed_by=reviewed_by,
        )

    def rematch(self, source_key: str) -> tuple[MatchResult, bool]:
        """
        Re-run candidate search for a stored record.

        Reviewer-owned records are searched but not overwritten; the bool is
        False in that case.
        """

        record = self._require_record(source_key)
        source = SourceVehicle(
            manufacturer=record.manufacturer,
            model=record.model,
            variant=record.variant,
            p11d=record.p11d,
        )
        result = self._matcher.match(source)
        written = self._store.upsert(
            result,
            source_provider=record.source_provider,
            status=status_for_confidence(result.confidence, self._settings),
        )
        return result, written

    def stats(self, source_provider: str | None = None) -> dict[str, int]:
        return self._store.count_by_status(source_provider)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_record(self, source_key: str) -> Any:
        record = self._store.lookup(source_key)
        if record is None:
            raise MatchRecordNotFoundError(f"No match record for source key {source_key}.")
        return record

    def _lookup_provider_mapping(self, provider_code: str, row: RatebookRow) -> str | None:
        if self._cap_mappings is None or not row.derivative_name:
            return None
        return self._cap_mappings.lookup(provider_code=provider_code, derivative_name=row.derivative_name)

    def _record_mapping_hit(self, provider_code: str, source: SourceVehicle, cap_code: str) -> None:
        vehicle = self._catalog.get_candidate(cap_code)
        if vehicle is not None:
            result = MatchResult.from_candidate(source, vehicle, confidence=100, method=MatchMethod.AUTO_EXACT)
        else:
            result = MatchResult(
                source_key=source.source_key,
                source=source,
                cap_code=cap_code,
                confidence=100,
                method=MatchMethod.AUTO_EXACT,
            )
        self._store.upsert(result, source_provider=provider_code, status=MatchStatus.CONFIRMED)
