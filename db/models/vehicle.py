"""
db/models/vehicle.py

Canonical vehicle catalog keyed by CAP code.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Vehicle(Base, TimestampMixin):
    __tablename__ = "vehicles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    cap_code: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Industry-standard vehicle identifier",
    )
    manufacturer: Mapped[str] = mapped_column(String(120), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    variant: Mapped[str | None] = mapped_column(String(500), nullable=True)
    p11d: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="List price in pence",
    )
    co2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fuel_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transmission: Mapped[str | None] = mapped_column(String(64), nullable=True)
    body_style: Mapped[str | None] = mapped_column(String(64), nullable=True)
    model_year: Mapped[str | None] = mapped_column(String(16), nullable=True)

    __table_args__ = (
        Index(
            "uq_vehicles_cap_code",
            "cap_code",
            unique=True,
            postgresql_where=text("cap_code IS NOT NULL"),
        ),
        Index("ix_vehicles_manufacturer", "manufacturer"),
    )
