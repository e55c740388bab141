"""
Orchestrator for ratebook uploads: synchronous acceptance, background rows.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks, UploadFile
from sqlalchemy.orm import Session

from app.config import get_matching_settings, get_ratebook_import_settings
from app.domain.errors import ImportNotFoundError
from app.domain.ratebook import RatebookRow
from app.services.ratebook_import_service import RatebookImportService
from db.models.ratebook_import import RatebookImport
from db.repositories.ratebook_import_repository import RatebookImportRepository

logger = logging.getLogger(__name__)

_UPLOAD_CHUNK_BYTES = 1024 * 1024


class ImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class RatebookOrchestratorService:
    """
    Accepts uploads, answers duplicates and parse failures immediately, and
    hands row processing to a background executor with its own session.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] | None = None,
        import_service: RatebookImportService | None = None,
        import_repository_factory: Callable[[Session], Any] = RatebookImportRepository,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._import_service = import_service or RatebookImportService(
            settings=get_ratebook_import_settings(),
            matching_settings=get_matching_settings(),
        )
        self._import_repository_factory = import_repository_factory

    def trigger_import(
        self,
        *,
        db: Session,
        executor: ImportTaskExecutor,
        upload_file: UploadFile,
        provider_code: str,
        contract_type: str,
    ) -> RatebookImport:
        """
        Create the import and schedule row processing.

        Raises DuplicateRatebookError, UnknownProviderError and
        InvalidContractTypeError. A parse failure returns the failed import
        without scheduling anything.
        """

        content = self._read_upload(upload_file)
        record = self._import_service.start_import(
            db=db,
            content=content,
            file_name=upload_file.filename,
            provider_code=provider_code,
            contract_type=contract_type,
        )

        rows = self._import_service.parse_import(db=db, import_record=record, content=content)
        if rows is None:
            return record

        try:
            executor.submit(self._run_import_job, record.id, rows)
        except Exception:
            self._import_repository_factory(db).mark_failed(
                import_id=record.id,
                errors=["Failed to schedule ratebook row processing."],
            )
            db.commit()
            raise

        return record

    def get_import_status(self, *, db: Session, batch_id: str) -> RatebookImport:
        record = self._import_repository_factory(db).get_by_batch_id(batch_id)
        if record is None:
            raise ImportNotFoundError(f"Ratebook import not found: {batch_id}")
        return record

    def list_imports(
        self,
        *,
        db: Session,
        provider_code: str | None = None,
        contract_type: str | None = None,
        latest_only: bool = False,
        limit: int = 50,
    ) -> list[RatebookImport]:
        return self._import_repository_factory(db).list_imports(
            provider_code=provider_code,
            contract_type=contract_type,
            latest_only=latest_only,
            limit=limit,
        )

    def _run_import_job(self, import_id: uuid.UUID, rows: list[RatebookRow]) -> None:
        with self._session_factory() as db:
            try:
                self._import_service.process_rows(db=db, import_id=import_id, rows=rows)
            except Exception as exc:
                self._mark_import_failed(db=db, import_id=import_id, exc=exc)

    def _mark_import_failed(self, *, db: Session, import_id: uuid.UUID, exc: Exception) -> None:
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Ratebook import failed id=%s error=%s", import_id, error_message)
        try:
            db.rollback()
            failed = self._import_repository_factory(db).mark_failed(
                import_id=import_id,
                errors=[error_message[:2000]],
            )
            if failed is None:
                logger.error("Unable to mark ratebook import as failed because it was not found id=%s", import_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed ratebook import state id=%s", import_id)

    def _read_upload(self, upload_file: UploadFile) -> bytes:
        upload_file.file.seek(0)
        chunks: list[bytes] = []
        while True:
            chunk = upload_file.file.read(_UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            chunks.append(chunk)
        upload_file.file.seek(0)
        return b"".join(chunks)


@lru_cache(maxsize=1)
def get_ratebook_orchestrator_service() -> RatebookOrchestratorService:
    return RatebookOrchestratorService()
