"""
db/models/vehicle_cap_match.py

Cached resolution of a provider vehicle description to a CAP code.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin
from matching.types import MatchMethod, MatchStatus


class VehicleCapMatch(Base, TimestampMixin):
    __tablename__ = "vehicle_cap_matches"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    source_key: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        comment="MD5 of normalized manufacturer_model_variant",
    )
    source_provider: Mapped[str] = mapped_column(String(32), nullable=False)
    manufacturer: Mapped[str] = mapped_column(String(120), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    variant: Mapped[str | None] = mapped_column(String(500), nullable=True)
    p11d: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cap_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    matched_manufacturer: Mapped[str | None] = mapped_column(String(120), nullable=True)
    matched_model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    matched_variant: Mapped[str | None] = mapped_column(String(500), nullable=True)
    matched_p11d: Mapped[int | None] = mapped_column(Integer, nullable=True)
    match_confidence: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=0,
    )
    match_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=MatchStatus.PENDING,
        comment="confirmed, pending, manual, rejected",
    )
    match_method: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=MatchMethod.NONE,
        comment="auto_exact, auto_fuzzy, manual, none",
    )
    matched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_vehicle_cap_matches_source_provider", "source_provider"),
        Index("ix_vehicle_cap_matches_match_status", "match_status"),
        Index("ix_vehicle_cap_matches_cap_code", "cap_code"),
    )
