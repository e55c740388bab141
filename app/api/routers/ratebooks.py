"""
Ratebook import endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload
from app.domain.errors import (
    DuplicateRatebookError,
    ImportNotFoundError,
    InvalidContractTypeError,
    UnknownProviderError,
)
from app.schemas.ratebook import (
    RatebookImportAcceptedResponse,
    RatebookImportListResponse,
    RatebookImportStatusResponse,
)
from app.services.ratebook_orchestrator_service import (
    FastAPIBackgroundTaskExecutor,
    RatebookOrchestratorService,
    get_ratebook_orchestrator_service,
)
from db.models.ratebook_import import RatebookImport
from db.session import get_db

router = APIRouter(prefix="/ratebooks", tags=["ratebooks"])


@router.post(
    "/imports",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RatebookImportAcceptedResponse,
)
def trigger_ratebook_import(
    background_tasks: BackgroundTasks,
    file: UploadFile = Depends(get_csv_upload),
    provider: str = Form(..., description="Provider code: lex, ogilvie, ald"),
    contract_type: str = Form(..., description="CH, CHNM, PCH, PCHNM or BSSNL"),
    db: Session = Depends(get_db),
    orchestrator: RatebookOrchestratorService = Depends(get_ratebook_orchestrator_service),
) -> RatebookImportAcceptedResponse:
    try:
        record = orchestrator.trigger_import(
            db=db,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            upload_file=file,
            provider_code=provider,
            contract_type=contract_type,
        )
    except DuplicateRatebookError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (UnknownProviderError, InvalidContractTypeError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    finally:
        file.file.close()

    return RatebookImportAcceptedResponse(
        import_id=record.id,
        batch_id=record.batch_id,
        provider_code=record.provider_code,
        contract_type=record.contract_type,
        status=record.status,
        created_at=record.created_at,
        errors=list(record.error_log or []),
    )


@router.get("/imports/{batch_id}", response_model=RatebookImportStatusResponse)
def get_ratebook_import(
    batch_id: str,
    db: Session = Depends(get_db),
    orchestrator: RatebookOrchestratorService = Depends(get_ratebook_orchestrator_service),
) -> RatebookImportStatusResponse:
    try:
        record = orchestrator.get_import_status(db=db, batch_id=batch_id)
    except ImportNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_status_response(record)


@router.get("/imports", response_model=RatebookImportListResponse)
def list_ratebook_imports(
    provider: str | None = Query(default=None, description="Optional provider code filter"),
    contract_type: str | None = Query(default=None, description="Optional contract type filter"),
    latest_only: bool = Query(default=False, description="Only the current import per contract type"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    orchestrator: RatebookOrchestratorService = Depends(get_ratebook_orchestrator_service),
) -> RatebookImportListResponse:
    records = orchestrator.list_imports(
        db=db,
        provider_code=provider.strip().lower() if provider else None,
        contract_type=contract_type.strip().upper() if contract_type else None,
        latest_only=latest_only,
        limit=limit,
    )
    return RatebookImportListResponse(imports=[_to_status_response(record) for record in records])


def _to_status_response(record: RatebookImport) -> RatebookImportStatusResponse:
    return RatebookImportStatusResponse(
        import_id=record.id,
        batch_id=record.batch_id,
        provider_code=record.provider_code,
        contract_type=record.contract_type,
        file_name=record.file_name,
        status=record.status,
        is_latest=record.is_latest,
        superseded_import_id=record.superseded_import_id,
        total_rows=record.total_rows or 0,
        success_rows=record.success_rows or 0,
        error_rows=record.error_rows or 0,
        unique_cap_codes=record.unique_cap_codes or 0,
        error_log=list(record.error_log or []),
        created_at=record.created_at,
        started_at=record.started_at,
        completed_at=record.completed_at,
    )
