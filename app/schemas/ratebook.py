"""
Schemas for ratebook import trigger and status endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class RatebookImportAcceptedResponse(BaseModel):
    import_id: UUID
    batch_id: str
    provider_code: str
    contract_type: str
    status: str
    created_at: datetime
    errors: list[str] = Field(default_factory=list)


class RatebookImportStatusResponse(BaseModel):
    import_id: UUID
    batch_id: str
    provider_code: str
    contract_type: str
    file_name: str | None = None
    status: str
    is_latest: bool
    superseded_import_id: UUID | None = None
    total_rows: int = 0
    success_rows: int = 0
    error_rows: int = 0
    unique_cap_codes: int = 0
    error_log: list[str] = Field(default_factory=list)
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class RatebookImportListResponse(BaseModel):
    imports: list[RatebookImportStatusResponse] = Field(default_factory=list)
