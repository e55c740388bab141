"""
db/models/provider_cap_mapping.py

Provider-published derivative name to CAP code lookup.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ProviderCapMapping(Base, TimestampMixin):
    __tablename__ = "provider_cap_mappings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    provider_code: Mapped[str] = mapped_column(String(32), nullable=False)
    derivative_name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Exact derivative name as the provider prints it",
    )
    cap_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cap_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(120), nullable=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    import_batch_id: Mapped[str | None] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "provider_code",
            "derivative_name",
            name="uq_provider_cap_mappings_provider_code_derivative_name",
        ),
        Index("ix_provider_cap_mappings_cap_code", "cap_code"),
    )
