import asyncio
from datetime import date

import pytest

from conftest import FakeOSRM, FakeSupabase, MemoryScheduleStore
from nurse_scheduler.data.directory import SupabaseDirectory
from nurse_scheduler.models.domain import Schedule
from nurse_scheduler.models.outcome import CorruptStateError, ErrorKind, NotFoundError, ServiceError
from nurse_scheduler.persistence.schedules import SupabaseScheduleStore, encode_route_geometry
from nurse_scheduler.services.schedules.generator import ScheduleGenerator
from nurse_scheduler.services.schedules.reconciler import ScheduleReconciler
from nurse_scheduler.services.selection.manager import SelectionManager


def _tables() -> dict:
    return {
        "nurses": [
            {"id": "1", "name": "Alice Nurse", "latitude": 33.9137, "longitude": -98.4934, "field_staff": True},
            {"id": "2", "name": "Bob Nurse", "latitude": "33.88", "longitude": "-98.52", "field_staff": None},
        ],
        "patients": [
            {"id": "s1", "nurse_id": "1", "name": "Patient s1", "address": "1 Main St", "latitude": 33.92, "longitude": -98.5, "duration": 30},
            {"id": "s2", "nurse_id": "1", "name": "Patient s2", "address": "2 Main St", "latitude": None, "longitude": None, "duration": "45"},
            {"id": "b1", "nurse_id": "2", "name": "Patient b1", "address": "3 Main St", "latitude": 33.87, "longitude": -98.53},
        ],
    }


def _schedule(worker_id: str, day: date, status: str = "GENERATED") -> Schedule:
    return Schedule(
        worker_id=worker_id,
        schedule_date=day,
        total_distance_m=1500.0,
        total_travel_time_min=1,
        visit_order=["s1"],
        route_geometry=encode_route_geometry([(33.9137, -98.4934), (33.92, -98.5)]),
        status=status,
        generated_on=day,
    )


def test_directory_reads_workers_and_stops():
    directory = SupabaseDirectory(FakeSupabase(_tables()))

    workers = asyncio.run(directory.list_workers())
    bob = asyncio.run(directory.get_worker("2"))
    stops = asyncio.run(directory.list_stops("1", limit=5))

    assert [worker.worker_id for worker in workers] == ["1", "2"]
    assert bob.coordinates == (33.88, -98.52)
    assert [stop.stop_id for stop in stops] == ["s1", "s2"]
    assert stops[1].coordinates is None
    assert stops[1].duration == 45


def test_directory_without_id_returns_first_worker_with_a_limited_query():
    client = FakeSupabase(_tables())

    worker = asyncio.run(SupabaseDirectory(client).get_worker())

    assert worker.worker_id == "1"
    assert client.executed[-1].row_limit == 1


def test_directory_unknown_worker_is_not_found():
    with pytest.raises(NotFoundError):
        asyncio.run(SupabaseDirectory(FakeSupabase(_tables())).get_worker("404"))


def test_malformed_worker_row_is_service_error():
    tables = _tables()
    tables["nurses"][0]["latitude"] = "N/A"

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(SupabaseDirectory(FakeSupabase(tables)).get_worker("1"))

    assert excinfo.value.operation == "load_worker"
    assert "N/A" in str(excinfo.value)


def test_stop_row_without_id_is_service_error():
    tables = _tables()
    del tables["patients"][0]["id"]

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(SupabaseDirectory(FakeSupabase(tables)).list_stops("1"))

    assert excinfo.value.operation == "load_stops"


def test_query_failure_is_service_error():
    client = FakeSupabase(_tables())
    client.error = RuntimeError("connection reset")

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(SupabaseDirectory(client).list_workers())

    assert "connection reset" in str(excinfo.value)


def test_selection_reports_malformed_worker_row_as_failed_stage():
    tables = _tables()
    tables["nurses"][0]["latitude"] = "N/A"
    directory = SupabaseDirectory(FakeSupabase(tables))
    store = MemoryScheduleStore()
    client = FakeOSRM().client()
    reconciler = ScheduleReconciler(store, ScheduleGenerator(directory, store, client).generate)
    manager = SelectionManager(directory, reconciler, routing_client=client, schedule_date=date(2026, 10, 19))

    outcome = asyncio.run(manager.select_worker("1"))

    assert not outcome.ok
    assert outcome.stages[-1].stage == "load_worker"
    assert manager.state.error.kind is ErrorKind.SERVICE_ERROR
    assert store.saves == 0


def test_schedule_save_upserts_on_worker_and_date():
    client = FakeSupabase()
    store = SupabaseScheduleStore(client)
    day = date(2026, 10, 19)

    first = asyncio.run(store.save(_schedule("1", day)))
    second = asyncio.run(store.save(_schedule("1", day, status="CONFIRMED")))

    assert client.executed[0].action == "upsert"
    assert client.executed[0].on_conflict == "nurse_id,schedule_date"
    assert len(client.tables["nurse_schedules"]) == 1
    assert first.schedule_id == second.schedule_id == "row-1"
    loaded = asyncio.run(store.get("1", day))
    assert loaded.status == "CONFIRMED"
    assert loaded.visit_order == ["s1"]


def test_schedule_listings():
    store = SupabaseScheduleStore(FakeSupabase())
    for worker_id, day in (("1", date(2026, 10, 21)), ("1", date(2026, 10, 19)), ("2", date(2026, 10, 19))):
        asyncio.run(store.save(_schedule(worker_id, day)))

    ranged = asyncio.run(store.list_for_worker("1", date(2026, 10, 18), date(2026, 10, 20)))
    everything = asyncio.run(store.list_for_worker("1", date(2026, 10, 1), date(2026, 10, 31)))
    by_date = asyncio.run(store.list_for_date(date(2026, 10, 19)))

    assert [item.schedule_date for item in ranged] == [date(2026, 10, 19)]
    assert [item.schedule_date for item in everything] == [date(2026, 10, 19), date(2026, 10, 21)]
    assert sorted(item.worker_id for item in by_date) == ["1", "2"]


def test_schedule_status_update():
    store = SupabaseScheduleStore(FakeSupabase())
    saved = asyncio.run(store.save(_schedule("1", date(2026, 10, 19))))

    updated = asyncio.run(store.update_status(saved.schedule_id, "in_progress"))

    assert updated.status == "IN_PROGRESS"
    with pytest.raises(NotFoundError):
        asyncio.run(store.update_status("row-99", "COMPLETED"))


def test_invalid_schedule_row_is_corrupt_state():
    row = {"id": "row-1", "nurse_id": "1", "schedule_date": "2026-10-19", "total_distance": "far"}
    client = FakeSupabase({"nurse_schedules": [row]})

    with pytest.raises(CorruptStateError):
        asyncio.run(SupabaseScheduleStore(client).get("1", date(2026, 10, 19)))
