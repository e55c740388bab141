"""
Read access to the canonical vehicle catalog.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.provider_rate import ProviderRate
from db.models.vehicle import Vehicle
from matching.types import CandidateVehicle


def _to_candidate(vehicle: Vehicle) -> CandidateVehicle:
    return CandidateVehicle(
        cap_code=vehicle.cap_code or "",
        manufacturer=vehicle.manufacturer,
        model=vehicle.model,
        variant=vehicle.variant,
        p11d=vehicle.p11d,
    )


class VehicleRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_candidates(self, manufacturer_prefix: str, *, limit: int) -> list[CandidateVehicle]:
        """
        Bounded candidate set: catalog vehicles whose manufacturer contains
        the normalized manufacturer prefix.
        """

        stmt = (
            select(Vehicle)
            .where(
                Vehicle.cap_code.is_not(None),
                Vehicle.manufacturer.ilike(f"%{manufacturer_prefix}%"),
            )
            .order_by(Vehicle.cap_code)
            .limit(max(1, limit))
        )
        return [_to_candidate(vehicle) for vehicle in self._session.scalars(stmt).all()]

    def get_by_cap_code(self, cap_code: str) -> Vehicle | None:
        stmt = select(Vehicle).where(Vehicle.cap_code == cap_code).limit(1)
        return self._session.scalars(stmt).first()

    def get_candidate(self, cap_code: str) -> CandidateVehicle | None:
        vehicle = self.get_by_cap_code(cap_code)
        return _to_candidate(vehicle) if vehicle is not None else None

    def vehicle_ids_for_cap_codes(self, cap_codes: Sequence[str]) -> dict[str, uuid.UUID]:
        if not cap_codes:
            return {}
        stmt = select(Vehicle.cap_code, Vehicle.id).where(Vehicle.cap_code.in_(list(cap_codes)))
        return {cap_code: vehicle_id for cap_code, vehicle_id in self._session.execute(stmt).all()}

    def get_for_rate(self, rate: ProviderRate) -> Vehicle | None:
        """
        Catalog vehicle for a rate row, by link or by CAP code.
        """

        if rate.vehicle_id is not None:
            vehicle = self._session.get(Vehicle, rate.vehicle_id)
            if vehicle is not None:
                return vehicle
        return self.get_by_cap_code(rate.cap_code)
