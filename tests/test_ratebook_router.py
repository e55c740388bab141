"""
tests/test_ratebook_router.py

HTTP contract of the ratebook import endpoints, with in-memory stores.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from app.config import RatebookImportSettings
from app.main import create_app
from app.services.ratebook_import_service import RatebookImportService
from app.services.ratebook_orchestrator_service import (
    RatebookOrchestratorService,
    get_ratebook_orchestrator_service,
)
from app.services.vehicle_matching_service import ResolutionOrigin, RowResolution
from db.session import get_db
from tests.fakes import FakeImportStore, FakeLinker, FakeRateStore, FakeSession

LEX_CSV = (
    "CAP_CODE,Manufacturer,Model_Name,Variant,P11D,Rental\n"
    "CAP0001,Ford,Fiesta,1.0 ST-Line,21000,299.00\n"
    "CAP0002,Ford,Focus,1.0 Titanium,25000,349.00\n"
    ",Ford,Puma,1.0 ST-Line,26000,329.00\n"
).encode("utf-8")


class RowCapCodeResolver:
    def resolve_row(self, provider_code, row) -> RowResolution:
        return RowResolution(cap_code=row.cap_code, origin=ResolutionOrigin.ROW)


@pytest.fixture()
def imports() -> FakeImportStore:
    return FakeImportStore()


@pytest.fixture()
def rates() -> FakeRateStore:
    return FakeRateStore()


@pytest.fixture()
def client(imports: FakeImportStore, rates: FakeRateStore) -> Iterator[TestClient]:
    import_service = RatebookImportService(
        settings=RatebookImportSettings(),
        import_repository_factory=lambda _db: imports,
        rate_repository_factory=lambda _db: rates,
        matching_service_factory=lambda _db: RowCapCodeResolver(),
        linker_factory=lambda _db: FakeLinker(),
    )
    orchestrator = RatebookOrchestratorService(
        session_factory=FakeSession,
        import_service=import_service,
        import_repository_factory=lambda _db: imports,
    )

    def _get_db() -> Iterator[FakeSession]:
        yield FakeSession()

    app = create_app(check_startup=False)
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_ratebook_orchestrator_service] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client


def _upload(client: TestClient, content: bytes = LEX_CSV, **fields: str):
    form = {"provider": "lex", "contract_type": "CH"}
    form.update(fields)
    return client.post(
        "/ratebooks/imports",
        data=form,
        files={"file": ("lex_ch.csv", content, "text/csv")},
    )


def test_upload_is_accepted_and_processed_in_background(client: TestClient, rates: FakeRateStore) -> None:
    response = _upload(client)

    assert response.status_code == 202
    body = response.json()
    assert body["provider_code"] == "lex"
    assert body["contract_type"] == "CH"
    assert body["batch_id"].startswith("lex_ch_")

    status_response = client.get(f"/ratebooks/imports/{body['batch_id']}")
    assert status_response.status_code == 200
    status_body = status_response.json()
    assert status_body["status"] == "completed"
    assert status_body["total_rows"] == 3
    assert status_body["success_rows"] == 2
    assert status_body["error_rows"] == 1
    assert status_body["unique_cap_codes"] == 2
    assert status_body["is_latest"] is True
    assert len(rates.rates) == 2


def test_duplicate_upload_conflicts(client: TestClient) -> None:
    assert _upload(client).status_code == 202

    response = _upload(client)

    assert response.status_code == 409
    assert "Duplicate lex ratebook" in response.json()["detail"]


@pytest.mark.parametrize(
    "fields",
    [
        {"provider": "arval"},
        {"contract_type": "HP"},
    ],
)
def test_bad_provider_or_contract_type(client: TestClient, imports: FakeImportStore, fields: dict[str, str]) -> None:
    response = _upload(client, **fields)

    assert response.status_code == 400
    assert imports.records == []


def test_non_csv_upload_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/ratebooks/imports",
        data={"provider": "lex", "contract_type": "CH"},
        files={"file": ("rates.pdf", b"%PDF-1.7", "application/pdf")},
    )

    assert response.status_code == 400


def test_provider_and_contract_type_are_form_fields(client: TestClient, imports: FakeImportStore) -> None:
    response = client.post(
        "/ratebooks/imports",
        params={"provider": "lex", "contract_type": "CH"},
        files={"file": ("lex_ch.csv", LEX_CSV, "text/csv")},
    )

    assert response.status_code == 422
    assert imports.records == []


def test_unparseable_file_is_reported_as_failed(client: TestClient) -> None:
    response = _upload(client, content=b"Manufacturer,Model_Name\nFord,Fiesta\n")

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "failed"
    assert body["errors"][0].startswith("Parse error:")


def test_unknown_batch_id(client: TestClient) -> None:
    assert client.get("/ratebooks/imports/lex_ch_0").status_code == 404


def test_list_latest_only(client: TestClient) -> None:
    first = _upload(client).json()
    second = _upload(client, content=LEX_CSV.replace(b"299.00", b"289.00")).json()

    everything = client.get("/ratebooks/imports", params={"provider": "lex"}).json()["imports"]
    latest = client.get("/ratebooks/imports", params={"latest_only": "true"}).json()["imports"]

    assert {item["batch_id"] for item in everything} == {first["batch_id"], second["batch_id"]}
    assert [item["batch_id"] for item in latest] == [second["batch_id"]]
    assert latest[0]["superseded_import_id"] == first["import_id"]


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["providers"] == ["ald", "lex", "ogilvie"]
