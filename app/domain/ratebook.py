"""
app/domain/ratebook.py

Domain models for ratebook ingestion.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from matching.types import SourceVehicle


class ContractType:
    CH = "CH"
    CHNM = "CHNM"
    PCH = "PCH"
    PCHNM = "PCHNM"
    BSSNL = "BSSNL"

    ALL = frozenset({CH, CHNM, PCH, PCHNM, BSSNL})
    WITH_MAINTENANCE = frozenset({CH, PCH})


class PaymentPlan:
    MONTHLY_IN_ADVANCE = "monthly_in_advance"
    SPREAD_3_DOWN = "spread_3_down"
    SPREAD_6_DOWN = "spread_6_down"
    SPREAD_9_DOWN = "spread_9_down"


DEFAULT_TERM_MONTHS = 36
DEFAULT_ANNUAL_MILEAGE = 10_000


@dataclass(frozen=True)
class RatebookRow:
    """
    One provider rate row, normalized to pence and canonical enums.

    ``row_number`` is the 1-based line in the file (the header is line 1).
    ``contract_type`` is set only when the row overrides the import's.
    """

    row_number: int
    manufacturer: str
    model: str
    variant: str | None = None
    p11d: int | None = None
    cap_code: str | None = None
    derivative_name: str | None = None
    contract_type: str | None = None
    term: int = DEFAULT_TERM_MONTHS
    annual_mileage: int = DEFAULT_ANNUAL_MILEAGE
    payment_plan: str = PaymentPlan.MONTHLY_IN_ADVANCE
    total_rental: int = 0
    lease_rental: int | None = None
    service_rental: int | None = None
    is_commercial: bool = False
    co2_gkm: int | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    body_style: str | None = None
    model_year: str | None = None
    excess_mileage_ppm: int | None = None
    whole_life_cost: int | None = None
    insurance_group: str | None = None
    raw_data: dict[str, Any] | None = None

    def to_source_vehicle(self) -> SourceVehicle:
        return SourceVehicle(
            manufacturer=self.manufacturer,
            model=self.model,
            variant=self.variant,
            p11d=self.p11d,
        )


@dataclass
class ImportProgress:
    """
    Running counters for one import. Mutated batch by batch.
    """

    total_rows: int = 0
    success_rows: int = 0
    error_rows: int = 0
    cap_codes: set[str] = field(default_factory=set)
    errors: list[str] = field(default_factory=list)

    @property
    def unique_cap_codes(self) -> int:
        return len(self.cap_codes)

    def log(self, message: str, *, max_errors: int | None = None) -> None:
        if max_errors is None or len(self.errors) < max_errors:
            self.errors.append(message)

    def record_row_error(self, message: str, *, max_errors: int | None = None) -> None:
        self.error_rows += 1
        self.log(message, max_errors=max_errors)

    def record_batch_failure(self, row_count: int, message: str, *, max_errors: int | None = None) -> None:
        """
        Move a batch's rows from success to error.
        """

        self.success_rows -= row_count
        self.error_rows += row_count
        self.log(message, max_errors=max_errors)


@dataclass(frozen=True)
class LinkSummary:
    cap_codes: int = 0
    rows_linked: int = 0
    failed: bool = False


@dataclass(frozen=True)
class RatebookImportResult:
    """
    End-of-run ratebook import summary.
    """

    success: bool
    import_id: uuid.UUID
    batch_id: str
    status: str
    total_rows: int
    success_rows: int
    error_rows: int
    unique_cap_codes: int
    errors: list[str] = field(default_factory=list)
    link_summary: LinkSummary | None = None


@dataclass(frozen=True)
class ResolvedRate:
    """
    A row whose CAP code is known and is ready to be written.
    """

    row: RatebookRow
    cap_code: str
    contract_type: str
