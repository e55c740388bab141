"""
tests/test_ratebook_import_service.py

Pytest unit tests for RatebookImportService.

The session and repositories are in-memory fakes; the provider schemas and
the CAP matcher are real.

Coverage
--------
- Dedup by file hash and single-latest versioning
- Unknown provider / contract type rejected before any import row exists
- Parse failures mark the import failed
- Row-level errors accumulate without stopping the run
- Batch insert failure isolation
- 50% failure rule
- Vehicle linking failure does not fail the import
- Match store reuse across imports
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.config import RatebookImportSettings
from app.domain.errors import (
    DuplicateRatebookError,
    ImportNotFoundError,
    InvalidContractTypeError,
    UnknownProviderError,
)
from app.domain.ratebook import LinkSummary, RatebookRow
from app.services import ratebook_import_service
from app.services.ratebook_import_service import (
    RatebookImportService,
    compute_file_hash,
    generate_batch_id,
    normalize_contract_type,
    result_to_dict,
)
from app.services.vehicle_matching_service import ResolutionOrigin, RowResolution, VehicleMatchingService
from db.models.ratebook_import import RatebookImportStatus
from matching.types import CandidateVehicle
from tests.fakes import (
    ExplodingLinker,
    FailingRateStore,
    FakeCapMappings,
    FakeCatalog,
    FakeImportStore,
    FakeLinker,
    FakeMatchStore,
    FakeRateStore,
    FakeSession,
    unique_violation,
)

LEX_HEADER = "CAP_CODE,Manufacturer,Model_Name,Variant,P11D,Term,Mileage,Rental\n"
OGILVIE_HEADER = "Manufacturer Name,Model Name,Derivative Name,P11D Value,Regular Rental,Product\n"


def lex_csv(*rows: str) -> bytes:
    return (LEX_HEADER + "".join(f"{row}\n" for row in rows)).encode("utf-8")


def lex_rows(count: int, *, rental: str = "299.00") -> bytes:
    return lex_csv(
        *(f"CAP{index % 7:04d},Ford,Fiesta,1.0 EcoBoost {index},21000,36,10000,{rental}" for index in range(count))
    )


class PassThroughResolver:
    """Resolves rows that carry a CAP code; everything else is unmatched."""

    def __init__(self, *, fail_for_rows: set[int] | None = None) -> None:
        self.fail_for_rows = fail_for_rows or set()
        self.calls = 0

    def resolve_row(self, provider_code: str, row: RatebookRow) -> RowResolution:
        self.calls += 1
        if row.row_number in self.fail_for_rows:
            raise SQLAlchemyError("statement timeout")
        return RowResolution(cap_code=row.cap_code, origin=ResolutionOrigin.ROW)


@pytest.fixture()
def db() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def imports() -> FakeImportStore:
    return FakeImportStore()


@pytest.fixture()
def rates() -> FakeRateStore:
    return FakeRateStore()


@pytest.fixture()
def linker() -> FakeLinker:
    return FakeLinker(LinkSummary(cap_codes=2, rows_linked=3))


def build_service(
    imports: FakeImportStore,
    rates: FakeRateStore,
    *,
    resolver: object | None = None,
    linker: object | None = None,
    settings: RatebookImportSettings | None = None,
) -> RatebookImportService:
    resolver = resolver or PassThroughResolver()
    linker = linker or FakeLinker()
    return RatebookImportService(
        settings=settings or RatebookImportSettings(),
        import_repository_factory=lambda _db: imports,
        rate_repository_factory=lambda _db: rates,
        matching_service_factory=lambda _db: resolver,  # type: ignore[arg-type, return-value]
        linker_factory=lambda _db: linker,  # type: ignore[arg-type, return-value]
    )


def run_import(
    service: RatebookImportService,
    db: FakeSession,
    content: bytes,
    *,
    provider: str = "lex",
    contract_type: str = "CH",
):
    return service.import_ratebook(
        db=db,  # type: ignore[arg-type]
        content=content,
        file_name="ratebook.csv",
        provider_code=provider,
        contract_type=contract_type,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_file_hash_is_sha256_hex(self) -> None:
        assert compute_file_hash(b"abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_batch_id_format(self) -> None:
        batch_id = generate_batch_id("lex", "PCH")
        provider, contract, millis, suffix = batch_id.split("_")
        assert (provider, contract) == ("lex", "pch")
        assert millis.isdigit()
        assert len(suffix) == 8

    def test_batch_ids_differ_within_one_millisecond(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(ratebook_import_service.time, "time", lambda: 1792361651.653)
        batch_ids = {generate_batch_id("lex", "CH") for _ in range(50)}
        assert len(batch_ids) == 50

    def test_contract_type_is_normalized(self) -> None:
        assert normalize_contract_type(" pchnm ") == "PCHNM"
        with pytest.raises(InvalidContractTypeError):
            normalize_contract_type("LEASE")


# ---------------------------------------------------------------------------
# Dedup and versioning
# ---------------------------------------------------------------------------


class TestVersioning:
    def test_successful_import_summary(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore, linker: FakeLinker
    ) -> None:
        service = build_service(imports, rates, linker=linker)
        content = lex_csv(
            "CAP0001,Ford,Fiesta,1.0 ST-Line,21000,36,10000,299.00",
            "CAP0001,Ford,Fiesta,1.0 ST-Line,21000,48,10000,279.00",
            "CAP0002,Ford,Focus,1.0 Titanium,25000,36,10000,349.00",
        )

        result = run_import(service, db, content)

        assert result.success is True
        assert result.status == RatebookImportStatus.COMPLETED
        assert (result.total_rows, result.success_rows, result.error_rows) == (3, 3, 0)
        assert result.unique_cap_codes == 2
        assert result.link_summary == LinkSummary(cap_codes=2, rows_linked=3)
        assert rates.cap_codes() == ["CAP0001", "CAP0001", "CAP0002"]
        assert linker.linked_imports == [result.import_id]

        record = imports.get(result.import_id)
        assert record is not None
        assert record.status == RatebookImportStatus.COMPLETED
        assert record.is_latest is True
        assert record.completed_at is not None
        assert imports.lock_calls == [("lex", "CH")]

    def test_same_bytes_twice_is_rejected(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        content = lex_rows(3)
        first = run_import(service, db, content)

        with pytest.raises(DuplicateRatebookError) as exc_info:
            run_import(service, db, content, contract_type="PCH")

        assert exc_info.value.existing_batch_id == first.batch_id
        assert len(imports.records) == 1
        assert len(rates.rates) == 3

    def test_different_files_in_same_millisecond_are_both_accepted(
        self,
        db: FakeSession,
        imports: FakeImportStore,
        rates: FakeRateStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(ratebook_import_service.time, "time", lambda: 1792361651.653)
        service = build_service(imports, rates)

        first = run_import(service, db, lex_rows(2, rental="299.00"))
        second = run_import(service, db, lex_rows(2, rental="289.00"))

        assert first.batch_id != second.batch_id
        assert len(imports.records) == 2

    def test_hash_collision_at_insert_is_a_duplicate(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        content = lex_rows(2)
        run_import(service, db, content)
        # A concurrent writer committed the same file after the hash check.
        imports.find_by_file_hash = lambda **_kwargs: None  # type: ignore[method-assign]

        with pytest.raises(DuplicateRatebookError):
            run_import(service, db, content)

        assert len(imports.records) == 1

    def test_other_integrity_errors_are_not_duplicates(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        def reject_batch_id(**_kwargs: object) -> None:
            raise unique_violation("ratebook_imports_batch_id_key")

        imports.supersede_and_create = reject_batch_id  # type: ignore[method-assign, assignment]
        service = build_service(imports, rates)

        with pytest.raises(IntegrityError):
            run_import(service, db, lex_rows(2))

        assert db.rollbacks >= 1

    def test_new_file_supersedes_previous_latest(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        first = run_import(service, db, lex_rows(2, rental="299.00"))
        second = run_import(service, db, lex_rows(2, rental="289.00"))

        latest = imports.latest_records("lex", "CH")
        assert [record.id for record in latest] == [second.import_id]
        previous = imports.get(first.import_id)
        assert previous is not None and previous.is_latest is False
        current = imports.get(second.import_id)
        assert current is not None and current.superseded_import_id == first.import_id

    def test_contract_types_are_versioned_separately(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        run_import(service, db, lex_rows(2, rental="299.00"), contract_type="CH")
        run_import(service, db, lex_rows(2, rental="289.00"), contract_type="PCH")

        assert len(imports.latest_records("lex", "CH")) == 1
        assert len(imports.latest_records("lex", "PCH")) == 1

    def test_unknown_provider_creates_nothing(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        with pytest.raises(UnknownProviderError):
            run_import(service, db, lex_rows(1), provider="leaseplan")
        with pytest.raises(InvalidContractTypeError):
            run_import(service, db, lex_rows(1), contract_type="HP")
        assert imports.records == []


# ---------------------------------------------------------------------------
# Parse and row errors
# ---------------------------------------------------------------------------


class TestRowErrors:
    def test_parse_failure_marks_import_failed(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)

        result = run_import(service, db, b"Manufacturer,Model_Name\nFord,Fiesta\n")

        assert result.success is False
        assert result.status == RatebookImportStatus.FAILED
        assert result.errors[0].startswith("Parse error: CSV is missing required columns: CAP_CODE")
        assert rates.rates == []

    def test_missing_manufacturer_or_model(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        content = lex_csv(
            "CAP0001,Ford,Fiesta,1.0 ST-Line,21000,36,10000,299.00",
            "CAP0002,,Focus,1.0 Titanium,25000,36,10000,349.00",
            "CAP0003,Ford,Kuga,1.5 Zetec,30000,36,10000,399.00",
        )

        result = run_import(service, db, content)

        assert result.error_rows == 1
        assert result.success_rows == 2
        assert result.errors == ["Row 3: Missing manufacturer or model"]
        assert result.status == RatebookImportStatus.COMPLETED

    def test_unresolved_rows_need_manual_review(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        content = lex_csv(
            "CAP0001,Ford,Fiesta,1.0 ST-Line,21000,36,10000,299.00",
            ",Ford,Puma,1.0 ST-Line,26000,36,10000,329.00",
        )

        result = run_import(service, db, content)

        assert result.errors == ["Row 3: No CAP code match found for Ford Puma - needs manual review"]
        assert rates.cap_codes() == ["CAP0001"]

    def test_lookup_failure_is_a_row_error(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        resolver = PassThroughResolver(fail_for_rows={3})
        service = build_service(imports, rates, resolver=resolver)

        result = run_import(service, db, lex_rows(3))

        assert result.error_rows == 1
        assert result.errors[0].startswith("Row 3: CAP code lookup failed:")
        assert db.savepoints == 3

    def test_error_log_is_capped(self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore) -> None:
        settings = RatebookImportSettings(max_error_log=5, result_error_limit=3)
        service = build_service(imports, rates, settings=settings)
        content = lex_csv(*(f"CAP{index},,Fiesta,,,,," for index in range(10)))

        result = run_import(service, db, content)

        assert result.error_rows == 10
        assert len(result.errors) == 3
        record = imports.get(result.import_id)
        assert record is not None and record.error_log is not None
        assert len(record.error_log) == 5


# ---------------------------------------------------------------------------
# Batching and final status
# ---------------------------------------------------------------------------


class TestBatches:
    def test_failed_batch_does_not_undo_other_batches(
        self, db: FakeSession, imports: FakeImportStore
    ) -> None:
        rates = FailingRateStore(fail_on_calls=[3])
        service = build_service(imports, rates)

        result = run_import(service, db, lex_rows(500))

        assert len(rates.rates) == 400
        assert result.success_rows == 400
        assert result.error_rows == 100
        assert result.status == RatebookImportStatus.COMPLETED
        assert any(error.startswith("Batch insert error at row 202:") for error in result.errors)
        assert imports.progress_updates == 5

    def test_more_than_half_failed_fails_the_import(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        content = lex_csv(
            "CAP0001,Ford,Fiesta,,,,,",
            "CAP0002,Ford,,,,,,",
            "CAP0003,Ford,,,,,,",
            "CAP0004,Ford,,,,,,",
        )

        result = run_import(service, db, content)

        assert result.status == RatebookImportStatus.FAILED
        assert result.success is False
        assert len(rates.rates) == 1

    def test_exactly_half_failed_still_completes(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        content = lex_csv(
            "CAP0001,Ford,Fiesta,,,,,",
            "CAP0002,Ford,Focus,,,,,",
            "CAP0003,Ford,,,,,,",
            "CAP0004,Ford,,,,,,",
        )

        result = run_import(service, db, content)

        assert result.status == RatebookImportStatus.COMPLETED

    def test_linking_failure_keeps_import_completed(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates, linker=ExplodingLinker())

        result = run_import(service, db, lex_rows(3))

        assert result.status == RatebookImportStatus.COMPLETED
        assert result.link_summary is not None and result.link_summary.failed is True

    def test_process_rows_requires_existing_import(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        service = build_service(imports, rates)
        with pytest.raises(ImportNotFoundError):
            service.process_rows(db=db, import_id=uuid.uuid4(), rows=[])  # type: ignore[arg-type]

    def test_result_serializes_for_cli(
        self, db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
    ) -> None:
        result = run_import(build_service(imports, rates), db, lex_rows(1))

        payload = result_to_dict(result)

        assert payload["import_id"] == str(result.import_id)
        assert payload["status"] == RatebookImportStatus.COMPLETED


# ---------------------------------------------------------------------------
# Match store reuse
# ---------------------------------------------------------------------------


def test_second_import_reuses_confirmed_matches(
    db: FakeSession, imports: FakeImportStore, rates: FakeRateStore
) -> None:
    catalog = FakeCatalog(
        [
            CandidateVehicle(
                cap_code="BM3S20MSP4SDTA",
                manufacturer="BMW",
                model="3 Series",
                variant="320i M Sport",
                p11d=3_500_000,
            )
        ]
    )
    store = FakeMatchStore()
    resolver = VehicleMatchingService(match_store=store, catalog=catalog, cap_mappings=FakeCapMappings())
    service = build_service(imports, rates, resolver=resolver)

    def ogilvie_file(rental: str) -> bytes:
        return (
            OGILVIE_HEADER + f"BMW,3 Series,320i M Sport Saloon,35000,{rental},Contract Hire\n"
        ).encode("utf-8")

    first = run_import(service, db, ogilvie_file("399.00"), provider="ogilvie")
    second = run_import(service, db, ogilvie_file("389.00"), provider="ogilvie")

    assert first.success_rows == 1
    assert second.success_rows == 1
    assert catalog.search_calls == 1
    assert rates.cap_codes() == ["BM3S20MSP4SDTA", "BM3S20MSP4SDTA"]
