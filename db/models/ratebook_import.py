"""
db/models/ratebook_import.py

One ingestion run of a provider ratebook file.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class RatebookImportStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RatebookImport(Base, TimestampMixin):
    __tablename__ = "ratebook_imports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    provider_code: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="lex, ogilvie, ald",
    )
    contract_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="CH, CHNM, PCH, PCHNM, BSSNL",
    )
    batch_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 of the uploaded bytes",
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=RatebookImportStatus.PROCESSING,
    )
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    success_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unique_cap_codes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_log: Mapped[list[str] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="First N row/batch error messages",
    )
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    superseded_import_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("ratebook_imports.id", ondelete="SET NULL"),
        nullable=True,
        comment="Import this one replaced as latest",
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "provider_code",
            "file_hash",
            name="uq_ratebook_imports_provider_code_file_hash",
        ),
        Index(
            "uq_ratebook_imports_latest",
            "provider_code",
            "contract_type",
            unique=True,
            postgresql_where=text("is_latest"),
        ),
        Index("ix_ratebook_imports_status", "status"),
        Index("ix_ratebook_imports_created_at", "created_at"),
        Index("ix_ratebook_imports_provider_contract", "provider_code", "contract_type"),
    )
