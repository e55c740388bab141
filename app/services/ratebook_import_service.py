"""
app/services/ratebook_import_service.py

Ratebook ingestion pipeline.

A run goes through three steps, each usable on its own so the HTTP layer
can answer duplicate and parse failures synchronously and process rows in
the background:

    1. start_import()  - dedup by file hash, supersede the previous latest
                         import and create the new one (one transaction)
    2. parse_import()  - provider schema turns bytes into rows; a parse
                         failure marks the import failed
    3. process_rows()  - resolve CAP codes and write rates in batches, link
                         vehicles, finalize

Row and batch errors are accumulated on the import, never raised. Each batch
is its own transaction so earlier batches survive a later failure.
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import RatebookImportSettings
from app.domain.errors import (
    BatchPersistenceError,
    DuplicateRatebookError,
    ImportNotFoundError,
    InvalidContractTypeError,
    RatebookParseError,
)
from app.domain.ratebook import (
    ContractType,
    ImportProgress,
    LinkSummary,
    RatebookImportResult,
    RatebookRow,
    ResolvedRate,
)
from app.providers import get_provider_schema
from app.services.vehicle_linker import VehicleLinker
from app.services.vehicle_matching_service import RowResolution, VehicleMatchingService
from db.models.ratebook_import import RatebookImport, RatebookImportStatus
from db.repositories.provider_rate_repository import ProviderRateRepository
from db.repositories.ratebook_import_repository import RatebookImportRepository
from matching.settings import DEFAULT_MATCHING_SETTINGS, MatchingSettings

logger = logging.getLogger(__name__)

DUPLICATE_FILE_CONSTRAINT = "uq_ratebook_imports_provider_code_file_hash"


class ImportStore(Protocol):
    def acquire_version_lock(self, *, provider_code: str, contract_type: str) -> None:
        ...

    def find_by_file_hash(self, *, provider_code: str, file_hash: str) -> Any | None:
        ...

    def supersede_and_create(
        self,
        *,
        provider_code: str,
        contract_type: str,
        batch_id: str,
        file_name: str | None,
        file_hash: str,
    ) -> Any:
        ...

    def get(self, import_id: uuid.UUID) -> Any | None:
        ...

    def update_progress(self, *, import_id: uuid.UUID, progress: ImportProgress, max_error_log: int) -> Any:
        ...

    def finalize(
        self,
        *,
        import_id: uuid.UUID,
        status: str,
        progress: ImportProgress,
        max_error_log: int,
    ) -> Any:
        ...

    def mark_failed(self, *, import_id: uuid.UUID, errors: Sequence[str]) -> Any:
        ...


class RateStore(Protocol):
    def bulk_insert(
        self,
        *,
        import_id: uuid.UUID,
        provider_code: str,
        rates: Sequence[ResolvedRate],
    ) -> list[uuid.UUID]:
        ...


class RowResolver(Protocol):
    def resolve_row(self, provider_code: str, row: RatebookRow) -> RowResolution:
        ...


class ImportLinker(Protocol):
    def link_import(self, import_id: uuid.UUID) -> LinkSummary:
        ...


def compute_file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def generate_batch_id(provider_code: str, contract_type: str) -> str:
    return f"{provider_code}_{contract_type.lower()}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def _violated_constraint(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)


def normalize_contract_type(contract_type: str) -> str:
    normalized = (contract_type or "").strip().upper()
    if normalized not in ContractType.ALL:
        raise InvalidContractTypeError(
            f"Unsupported contract type '{contract_type}'. "
            f"Allowed: {', '.join(sorted(ContractType.ALL))}."
        )
    return normalized


class RatebookImportService:
    """
    Coordinates dedup, versioning, CAP resolution and batched persistence.
    """

    def __init__(
        self,
        *,
        settings: RatebookImportSettings | None = None,
        matching_settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
        import_repository_factory: Callable[[Session], ImportStore] = RatebookImportRepository,
        rate_repository_factory: Callable[[Session], RateStore] = ProviderRateRepository,
        matching_service_factory: Callable[[Session], RowResolver] | None = None,
        linker_factory: Callable[[Session], ImportLinker] | None = None,
    ) -> None:
        self._settings = settings or RatebookImportSettings()
        self._matching_settings = matching_settings
        self._import_repository_factory = import_repository_factory
        self._rate_repository_factory = rate_repository_factory
        self._matching_service_factory = matching_service_factory or self._default_matching_service
        self._linker_factory = linker_factory or self._default_linker

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def import_ratebook(
        self,
        *,
        db: Session,
        content: bytes,
        file_name: str | None,
        provider_code: str,
        contract_type: str,
    ) -> RatebookImportResult:
        """
        Run the whole pipeline synchronously.

        Raises DuplicateRatebookError, UnknownProviderError or
        InvalidContractTypeError before any import row is created. A parse
        failure returns a failed result.
        """

        record = self.start_import(
            db=db,
            content=content,
            file_name=file_name,
            provider_code=provider_code,
            contract_type=contract_type,
        )
        rows = self.parse_import(db=db, import_record=record, content=content)
        if rows is None:
            return self.result_for(record)
        return self.process_rows(db=db, import_id=record.id, rows=rows)

    def start_import(
        self,
        *,
        db: Session,
        content: bytes,
        file_name: str | None,
        provider_code: str,
        contract_type: str,
    ) -> RatebookImport:
        schema = get_provider_schema(provider_code)
        provider = schema.code
        contract = normalize_contract_type(contract_type)
        file_hash = compute_file_hash(content)
        batch_id = generate_batch_id(provider, contract)
        repository = self._import_repository_factory(db)

        try:
            repository.acquire_version_lock(provider_code=provider, contract_type=contract)
            existing = repository.find_by_file_hash(provider_code=provider, file_hash=file_hash)
            if existing is not None:
                db.rollback()
                logger.info(
                    "Duplicate ratebook rejected provider=%s contract_type=%s existing_batch_id=%s",
                    provider,
                    contract,
                    existing.batch_id,
                )
                raise DuplicateRatebookError(provider, file_hash, existing.batch_id)

            record = repository.supersede_and_create(
                provider_code=provider,
                contract_type=contract,
                batch_id=batch_id,
                file_name=file_name,
                file_hash=file_hash,
            )
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if _violated_constraint(exc) == DUPLICATE_FILE_CONSTRAINT:
                raise DuplicateRatebookError(provider, file_hash) from exc
            raise
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(
            "Ratebook import started batch_id=%s provider=%s contract_type=%s file_name=%s superseded=%s",
            record.batch_id,
            provider,
            contract,
            file_name,
            record.superseded_import_id,
        )
        return record

    def parse_import(
        self,
        *,
        db: Session,
        import_record: RatebookImport,
        content: bytes,
    ) -> list[RatebookRow] | None:
        """
        Parse file bytes with the provider's schema.

        Returns None after marking the import failed when the file cannot be
        parsed.
        """

        schema = get_provider_schema(import_record.provider_code)
        try:
            return schema.parse(content, contract_type=import_record.contract_type)
        except RatebookParseError as exc:
            message = f"Parse error: {exc}"
            logger.warning("Ratebook parse failed batch_id=%s: %s", import_record.batch_id, exc)
            repository = self._import_repository_factory(db)
            repository.mark_failed(import_id=import_record.id, errors=[message])
            db.commit()
            return None

    def process_rows(
        self,
        *,
        db: Session,
        import_id: uuid.UUID,
        rows: Sequence[RatebookRow],
    ) -> RatebookImportResult:
        import_repository = self._import_repository_factory(db)
        record = import_repository.get(import_id)
        if record is None:
            raise ImportNotFoundError(f"Ratebook import not found: {import_id}")

        rate_repository = self._rate_repository_factory(db)
        resolver = self._matching_service_factory(db)
        progress = ImportProgress(total_rows=len(rows))
        batch_size = self._settings.batch_size

        for start in range(0, len(rows), batch_size):
            batch = rows[start : start + batch_size]
            rates = self._resolve_batch(
                db=db,
                resolver=resolver,
                record=record,
                batch=batch,
                progress=progress,
            )
            try:
                self._insert_batch(
                    db=db,
                    rate_repository=rate_repository,
                    record=record,
                    rates=rates,
                )
            except BatchPersistenceError as exc:
                logger.warning(
                    "Ratebook batch insert failed batch_id=%s first_row=%s rows=%d",
                    record.batch_id,
                    batch[0].row_number,
                    len(rates),
                    exc_info=True,
                )
                progress.record_batch_failure(
                    len(rates),
                    f"Batch insert error at row {batch[0].row_number}: {exc}",
                    max_errors=self._settings.max_error_log,
                )
            else:
                progress.cap_codes.update(rate.cap_code for rate in rates)

            self._save_progress(db=db, import_repository=import_repository, record=record, progress=progress)

        link_summary = self._link_vehicles(db=db, record=record)

        status = (
            RatebookImportStatus.FAILED
            if progress.error_rows > progress.total_rows * self._settings.failure_ratio
            else RatebookImportStatus.COMPLETED
        )
        import_repository.finalize(
            import_id=record.id,
            status=status,
            progress=progress,
            max_error_log=self._settings.max_error_log,
        )
        db.commit()

        logger.info(
            "Ratebook import finished batch_id=%s status=%s total=%d success=%d errors=%d cap_codes=%d",
            record.batch_id,
            status,
            progress.total_rows,
            progress.success_rows,
            progress.error_rows,
            progress.unique_cap_codes,
        )

        return RatebookImportResult(
            success=status == RatebookImportStatus.COMPLETED,
            import_id=record.id,
            batch_id=record.batch_id,
            status=status,
            total_rows=progress.total_rows,
            success_rows=progress.success_rows,
            error_rows=progress.error_rows,
            unique_cap_codes=progress.unique_cap_codes,
            errors=progress.errors[: self._settings.result_error_limit],
            link_summary=link_summary,
        )

    def result_for(self, record: RatebookImport) -> RatebookImportResult:
        """
        Summarize a stored import, e.g. one that failed to parse.
        """

        errors = list(record.error_log or [])
        return RatebookImportResult(
            success=record.status == RatebookImportStatus.COMPLETED,
            import_id=record.id,
            batch_id=record.batch_id,
            status=record.status,
            total_rows=record.total_rows or 0,
            success_rows=record.success_rows or 0,
            error_rows=record.error_rows or 0,
            unique_cap_codes=record.unique_cap_codes or 0,
            errors=errors[: self._settings.result_error_limit],
        )

    # ------------------------------------------------------------------
    # Batch internals
    # ------------------------------------------------------------------

    def _resolve_batch(
        self,
        *,
        db: Session,
        resolver: RowResolver,
        record: RatebookImport,
        batch: Sequence[RatebookRow],
        progress: ImportProgress,
    ) -> list[ResolvedRate]:
        rates: list[ResolvedRate] = []
        for row in batch:
            if not row.manufacturer.strip() or not row.model.strip():
                self._record_error(progress, record, f"Row {row.row_number}: Missing manufacturer or model")
                continue

            try:
                with db.begin_nested():
                    resolution = resolver.resolve_row(record.provider_code, row)
            except SQLAlchemyError as exc:
                self._record_error(progress, record, f"Row {row.row_number}: CAP code lookup failed: {exc}")
                continue

            if not resolution.resolved:
                self._record_error(
                    progress,
                    record,
                    f"Row {row.row_number}: No CAP code match found for "
                    f"{row.manufacturer} {row.model} - needs manual review",
                )
                continue

            rates.append(
                ResolvedRate(
                    row=row,
                    cap_code=resolution.cap_code,
                    contract_type=row.contract_type or record.contract_type,
                )
            )
            progress.success_rows += 1

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.warning(
                "Match store writes rolled back batch_id=%s first_row=%s",
                record.batch_id,
                batch[0].row_number if batch else None,
                exc_info=True,
            )
        return rates

    def _insert_batch(
        self,
        *,
        db: Session,
        rate_repository: RateStore,
        record: RatebookImport,
        rates: Sequence[ResolvedRate],
    ) -> None:
        if not rates:
            return
        try:
            rate_repository.bulk_insert(
                import_id=record.id,
                provider_code=record.provider_code,
                rates=rates,
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise BatchPersistenceError(str(exc).splitlines()[0] if str(exc) else type(exc).__name__) from exc

    def _save_progress(
        self,
        *,
        db: Session,
        import_repository: ImportStore,
        record: RatebookImport,
        progress: ImportProgress,
    ) -> None:
        try:
            import_repository.update_progress(
                import_id=record.id,
                progress=progress,
                max_error_log=self._settings.max_error_log,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Ratebook progress update failed batch_id=%s", record.batch_id, exc_info=True)

    def _link_vehicles(self, *, db: Session, record: RatebookImport) -> LinkSummary:
        try:
            return self._linker_factory(db).link_import(record.id)
        except Exception:  # noqa: BLE001
            db.rollback()
            logger.exception("Vehicle linking aborted batch_id=%s", record.batch_id)
            return LinkSummary(failed=True)

    def _record_error(self, progress: ImportProgress, record: RatebookImport, message: str) -> None:
        if self._settings.log_row_errors:
            logger.warning("Ratebook row error batch_id=%s %s", record.batch_id, message)
        progress.record_row_error(message, max_errors=self._settings.max_error_log)

    # ------------------------------------------------------------------
    # Default collaborators
    # ------------------------------------------------------------------

    def _default_matching_service(self, db: Session) -> RowResolver:
        return VehicleMatchingService.for_session(db, self._matching_settings)

    def _default_linker(self, db: Session) -> ImportLinker:
        return VehicleLinker(db, batch_size=self._settings.batch_size)


def result_to_dict(result: RatebookImportResult) -> Mapping[str, Any]:
    return {
        "success": result.success,
        "import_id": str(result.import_id),
        "batch_id": result.batch_id,
        "status": result.status,
        "total_rows": result.total_rows,
        "success_rows": result.success_rows,
        "error_rows": result.error_rows,
        "unique_cap_codes": result.unique_cap_codes,
        "errors": list(result.errors),
    }
