"""
Repository for ratebook import lifecycle, versioning and history lookup.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from app.domain.ratebook import ImportProgress
from db.base import utc_now
from db.models.ratebook_import import RatebookImport, RatebookImportStatus


class RatebookImportRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def acquire_version_lock(self, *, provider_code: str, contract_type: str) -> None:
        """
        Serialize supersession per (provider, contract type).

        Transaction-scoped PostgreSQL advisory lock; released on commit or
        rollback.
        """

        lock_key = f"{provider_code}:{contract_type}"
        self._session.execute(select(func.pg_advisory_xact_lock(func.hashtext(lock_key))))

    def find_by_file_hash(self, *, provider_code: str, file_hash: str) -> RatebookImport | None:
        stmt = (
            select(RatebookImport)
            .where(
                RatebookImport.provider_code == provider_code,
                RatebookImport.file_hash == file_hash,
            )
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def get_latest(self, *, provider_code: str, contract_type: str) -> RatebookImport | None:
        stmt = (
            select(RatebookImport)
            .where(
                RatebookImport.provider_code == provider_code,
                RatebookImport.contract_type == contract_type,
                RatebookImport.is_latest.is_(True),
            )
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def supersede_and_create(
        self,
        *,
        provider_code: str,
        contract_type: str,
        batch_id: str,
        file_name: str | None,
        file_hash: str,
    ) -> RatebookImport:
        """
        Flip the current latest import off and insert the new latest one.

        Callers must run this inside the same transaction as
        :meth:`acquire_version_lock`.
        """

        previous = self.get_latest(provider_code=provider_code, contract_type=contract_type)
        self._session.execute(
            update(RatebookImport)
            .where(
                RatebookImport.provider_code == provider_code,
                RatebookImport.contract_type == contract_type,
                RatebookImport.is_latest.is_(True),
            )
            .values(is_latest=False)
            .execution_options(synchronize_session="fetch")
        )

        record = RatebookImport(
            provider_code=provider_code,
            contract_type=contract_type,
            batch_id=batch_id,
            file_name=file_name,
            file_hash=file_hash,
            status=RatebookImportStatus.PROCESSING,
            is_latest=True,
            superseded_import_id=previous.id if previous is not None else None,
            started_at=utc_now(),
        )
        self._session.add(record)
        self._session.flush()
        self._session.refresh(record)
        return record

    def get(self, import_id: uuid.UUID) -> RatebookImport | None:
        return self._session.get(RatebookImport, import_id)

    def get_by_batch_id(self, batch_id: str) -> RatebookImport | None:
        stmt = select(RatebookImport).where(RatebookImport.batch_id == batch_id).limit(1)
        return self._session.scalars(stmt).first()

    def list_imports(
        self,
        *,
        provider_code: str | None = None,
        contract_type: str | None = None,
        latest_only: bool = False,
        limit: int = 50,
    ) -> list[RatebookImport]:
        stmt: Select[tuple[RatebookImport]] = select(RatebookImport)

        if provider_code:
            stmt = stmt.where(RatebookImport.provider_code == provider_code)
        if contract_type:
            stmt = stmt.where(RatebookImport.contract_type == contract_type)
        if latest_only:
            stmt = stmt.where(RatebookImport.is_latest.is_(True))

        stmt = stmt.order_by(RatebookImport.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def update_progress(
        self,
        *,
        import_id: uuid.UUID,
        progress: ImportProgress,
        max_error_log: int,
    ) -> RatebookImport | None:
        record = self.get(import_id)
        if record is None:
            return None
        _apply_progress(record, progress, max_error_log)
        return record

    def finalize(
        self,
        *,
        import_id: uuid.UUID,
        status: str,
        progress: ImportProgress,
        max_error_log: int,
    ) -> RatebookImport | None:
        record = self.get(import_id)
        if record is None:
            return None
        _apply_progress(record, progress, max_error_log)
        record.status = status
        record.completed_at = utc_now()
        return record

    def mark_failed(
        self,
        *,
        import_id: uuid.UUID,
        errors: Sequence[str],
    ) -> RatebookImport | None:
        record = self.get(import_id)
        if record is None:
            return None
        record.status = RatebookImportStatus.FAILED
        record.error_log = list(errors) or None
        record.completed_at = utc_now()
        return record


def _apply_progress(record: RatebookImport, progress: ImportProgress, max_error_log: int) -> None:
    record.total_rows = progress.total_rows
    record.success_rows = progress.success_rows
    record.error_rows = progress.error_rows
    record.unique_cap_codes = progress.unique_cap_codes
    record.error_log = progress.errors[:max_error_log] or None
