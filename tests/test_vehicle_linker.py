from __future__ import annotations

import uuid

from app.services.vehicle_linker import VehicleLinker
from tests.fakes import FakeLinkableRates, FakeSession, FakeVehicleIds


def _catalog(cap_codes: list[str]) -> dict[str, uuid.UUID]:
    return {code: uuid.uuid4() for code in cap_codes}


def test_links_known_cap_codes_in_chunks() -> None:
    cap_codes = [f"CAP{index:03d}" for index in range(250)]
    rates = FakeLinkableRates({code: 2 for code in cap_codes})
    vehicles = FakeVehicleIds(_catalog(cap_codes[::2]))
    session = FakeSession()

    summary = VehicleLinker(session, rates=rates, vehicles=vehicles, batch_size=100).link_import(uuid.uuid4())  # type: ignore[arg-type]

    assert summary.failed is False
    assert summary.cap_codes == 125
    assert summary.rows_linked == 250
    assert [len(query) for query in vehicles.queries] == [100, 100, 50]
    assert session.commits == 3


def test_nothing_to_link() -> None:
    session = FakeSession()
    rates = FakeLinkableRates({"CAP001": 4})

    summary = VehicleLinker(session, rates=rates, vehicles=FakeVehicleIds({})).link_import(uuid.uuid4())  # type: ignore[arg-type]

    assert summary.rows_linked == 0
    assert rates.calls == 0
    assert session.commits == 0


def test_database_error_stops_linking_and_reports_partial_progress() -> None:
    cap_codes = [f"CAP{index:03d}" for index in range(20)]
    rates = FakeLinkableRates({code: 1 for code in cap_codes}, fail_on_call=2)
    session = FakeSession()
    linker = VehicleLinker(session, rates=rates, vehicles=FakeVehicleIds(_catalog(cap_codes)), batch_size=10)  # type: ignore[arg-type]

    summary = linker.link_import(uuid.uuid4())

    assert summary.failed is True
    assert summary.rows_linked == 10
    assert session.rollbacks == 1


def test_backfill_links_rows_left_unlinked() -> None:
    rates = FakeLinkableRates({"CAP001": 1, "CAP002": 3})
    vehicles = FakeVehicleIds(_catalog(["CAP001"]))
    linker = VehicleLinker(FakeSession(), rates=rates, vehicles=vehicles)  # type: ignore[arg-type]
    import_id = uuid.uuid4()

    assert linker.link_import(import_id).rows_linked == 1

    vehicles.vehicle_ids.update(_catalog(["CAP002"]))
    summary = linker.backfill_import(import_id)

    assert summary.rows_linked == 3
    assert vehicles.queries[-1] == ["CAP002"]
