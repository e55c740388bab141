"""
app/services/vehicle_linker.py

Backfills ``provider_rates.vehicle_id`` for an import from the vehicle catalog.

Runs after all batches are written. Failures are logged and swallowed: an
unlinked rate row is still a valid rate row.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ratebook import LinkSummary
from db.repositories.provider_rate_repository import ProviderRateRepository
from db.repositories.vehicle_repository import VehicleRepository

logger = logging.getLogger(__name__)


class LinkableRates(Protocol):
    def distinct_unlinked_cap_codes(self, import_id: uuid.UUID) -> list[str]:
        ...

    def link_vehicles(self, *, import_id: uuid.UUID, vehicle_ids: Mapping[str, uuid.UUID]) -> int:
        ...


class VehicleIdLookup(Protocol):
    def vehicle_ids_for_cap_codes(self, cap_codes: Sequence[str]) -> dict[str, uuid.UUID]:
        ...


class VehicleLinker:
    def __init__(
        self,
        session: Session,
        *,
        rates: LinkableRates | None = None,
        vehicles: VehicleIdLookup | None = None,
        batch_size: int = 100,
    ) -> None:
        self._session = session
        self._rates = rates or ProviderRateRepository(session)
        self._vehicles = vehicles or VehicleRepository(session)
        self._batch_size = max(1, batch_size)

    def link_import(self, import_id: uuid.UUID) -> LinkSummary:
        """
        Link every unlinked row of ``import_id`` whose CAP code is in the catalog.

        Each chunk of CAP codes is resolved with one IN query and written with
        one UPDATE, then committed.
        """

        cap_codes_seen = 0
        rows_linked = 0
        try:
            cap_codes = self._rates.distinct_unlinked_cap_codes(import_id)
            for start in range(0, len(cap_codes), self._batch_size):
                chunk = cap_codes[start : start + self._batch_size]
                vehicle_ids = self._vehicles.vehicle_ids_for_cap_codes(chunk)
                cap_codes_seen += len(vehicle_ids)
                if not vehicle_ids:
                    continue
                rows_linked += self._rates.link_vehicles(import_id=import_id, vehicle_ids=vehicle_ids)
                self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            logger.exception(
                "Vehicle linking failed import_id=%s linked_so_far=%d",
                import_id,
                rows_linked,
            )
            return LinkSummary(cap_codes=cap_codes_seen, rows_linked=rows_linked, failed=True)

        logger.info(
            "Vehicle linking completed import_id=%s cap_codes=%d rows_linked=%d",
            import_id,
            cap_codes_seen,
            rows_linked,
        )
        return LinkSummary(cap_codes=cap_codes_seen, rows_linked=rows_linked)

    def backfill_import(self, import_id: uuid.UUID) -> LinkSummary:
        """
        Re-run linking for an earlier import, e.g. after catalog updates.
        """

        return self.link_import(import_id)
