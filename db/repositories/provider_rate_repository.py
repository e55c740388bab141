"""
Repository for canonical provider rate rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import String, column, insert, select, update, values
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Session

from app.domain.ratebook import ResolvedRate
from db.models.provider_rate import ProviderRate
from db.models.ratebook_import import RatebookImport


class ProviderRateRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def bulk_insert(
        self,
        *,
        import_id: uuid.UUID,
        provider_code: str,
        rates: Sequence[ResolvedRate],
    ) -> list[uuid.UUID]:
        """
        Insert one batch of resolved rates with a single multi-row INSERT.
        """

        if not rates:
            return []

        payloads = [_rate_payload(import_id, provider_code, rate) for rate in rates]
        stmt = insert(ProviderRate).values(payloads).returning(ProviderRate.id)
        return list(self._session.scalars(stmt).all())

    def list_latest(
        self,
        *,
        provider_code: str,
        contract_type: str | None = None,
        cap_code: str | None = None,
        limit: int = 1000,
    ) -> list[ProviderRate]:
        """
        Rates belonging to the current latest import(s) of a provider.
        """

        stmt = (
            select(ProviderRate)
            .join(RatebookImport, RatebookImport.id == ProviderRate.import_id)
            .where(
                ProviderRate.provider_code == provider_code,
                RatebookImport.is_latest.is_(True),
            )
        )
        if contract_type:
            stmt = stmt.where(RatebookImport.contract_type == contract_type)
        if cap_code:
            stmt = stmt.where(ProviderRate.cap_code == cap_code)

        stmt = stmt.order_by(ProviderRate.cap_code, ProviderRate.term, ProviderRate.annual_mileage)
        return list(self._session.scalars(stmt.limit(max(1, limit))).all())

    def distinct_unlinked_cap_codes(self, import_id: uuid.UUID) -> list[str]:
        stmt = (
            select(ProviderRate.cap_code)
            .where(
                ProviderRate.import_id == import_id,
                ProviderRate.vehicle_id.is_(None),
            )
            .distinct()
            .order_by(ProviderRate.cap_code)
        )
        return list(self._session.scalars(stmt).all())

    def link_vehicles(
        self,
        *,
        import_id: uuid.UUID,
        vehicle_ids: Mapping[str, uuid.UUID],
    ) -> int:
        """
        Set ``vehicle_id`` on every unlinked row of the import sharing a CAP code.

        Issued as one ``UPDATE ... FROM (VALUES ...)`` statement.
        """

        if not vehicle_ids:
            return 0

        pairs = values(
            column("cap_code", String),
            column("vehicle_id", UUID(as_uuid=True)),
            name="cap_vehicle_pairs",
        ).data(list(vehicle_ids.items()))

        stmt = (
            update(ProviderRate)
            .where(
                ProviderRate.import_id == import_id,
                ProviderRate.vehicle_id.is_(None),
                ProviderRate.cap_code == pairs.c.cap_code,
            )
            .values(vehicle_id=pairs.c.vehicle_id)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)


def _rate_payload(import_id: uuid.UUID, provider_code: str, rate: ResolvedRate) -> dict[str, Any]:
    row = rate.row
    return {
        "id": uuid.uuid4(),
        "import_id": import_id,
        "provider_code": provider_code,
        "contract_type": rate.contract_type,
        "cap_code": rate.cap_code,
        "manufacturer": row.manufacturer,
        "model": row.model,
        "variant": row.variant,
        "is_commercial": row.is_commercial,
        "term": row.term,
        "annual_mileage": row.annual_mileage,
        "payment_plan": row.payment_plan,
        "total_rental": row.total_rental,
        "lease_rental": row.lease_rental,
        "service_rental": row.service_rental,
        "co2_gkm": row.co2_gkm,
        "p11d": row.p11d,
        "fuel_type": row.fuel_type,
        "transmission": row.transmission,
        "body_style": row.body_style,
        "model_year": row.model_year,
        "excess_mileage_ppm": row.excess_mileage_ppm,
        "whole_life_cost": row.whole_life_cost,
        "insurance_group": row.insurance_group,
        "raw_data": row.raw_data,
    }
