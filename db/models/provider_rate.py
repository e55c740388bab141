"""
db/models/provider_rate.py

Canonical rate row written by ratebook imports. Rows are immutable apart
from the vehicle link filled in after the import.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ProviderRate(Base, TimestampMixin):
    __tablename__ = "provider_rates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    import_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("ratebook_imports.id", ondelete="CASCADE"),
        nullable=False,
    )
    vehicle_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vehicles.id", ondelete="SET NULL"),
        nullable=True,
    )
    provider_code: Mapped[str] = mapped_column(String(32), nullable=False)
    contract_type: Mapped[str] = mapped_column(String(16), nullable=False)
    cap_code: Mapped[str] = mapped_column(String(64), nullable=False)
    manufacturer: Mapped[str] = mapped_column(String(120), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    variant: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_commercial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    term: Mapped[int] = mapped_column(Integer, nullable=False)
    annual_mileage: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_plan: Mapped[str] = mapped_column(String(64), nullable=False)
    total_rental: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Monthly rental in pence",
    )
    lease_rental: Mapped[int | None] = mapped_column(Integer, nullable=True)
    service_rental: Mapped[int | None] = mapped_column(Integer, nullable=True)
    co2_gkm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    p11d: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fuel_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transmission: Mapped[str | None] = mapped_column(String(64), nullable=True)
    body_style: Mapped[str | None] = mapped_column(String(64), nullable=True)
    model_year: Mapped[str | None] = mapped_column(String(16), nullable=True)
    excess_mileage_ppm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    whole_life_cost: Mapped[int | None] = mapped_column(Integer, nullable=True)
    insurance_group: Mapped[str | None] = mapped_column(String(16), nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    __table_args__ = (
        Index("ix_provider_rates_import_id", "import_id"),
        Index("ix_provider_rates_cap_code", "cap_code"),
        Index("ix_provider_rates_vehicle_id", "vehicle_id"),
        Index("ix_provider_rates_provider_contract", "provider_code", "contract_type"),
        Index("ix_provider_rates_import_cap_code", "import_id", "cap_code"),
    )
