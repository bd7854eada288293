from __future__ import annotations

import asyncio
from datetime import date
from typing import Callable, Optional

import httpx
import pytest

from nurse_scheduler.models.domain import LatLon, Schedule, Stop, Worker
from nurse_scheduler.models.outcome import NotFoundError, ServiceError
from nurse_scheduler.services.geospatial import distance_m
from nurse_scheduler.services.routing.osrm_client import OSRMClient


def encode_polyline(points: list[LatLon]) -> str:
    chunks: list[str] = []
    prev_lat = prev_lon = 0
    for lat, lon in points:
        ilat, ilon = int(round(lat * 1e5)), int(round(lon * 1e5))
        for delta in (ilat - prev_lat, ilon - prev_lon):
            value = ~(delta << 1) if delta < 0 else delta << 1
            while value >= 0x20:
                chunks.append(chr((0x20 | (value & 0x1F)) + 63))
                value >>= 5
            chunks.append(chr(value + 63))
        prev_lat, prev_lon = ilat, ilon
    return "".join(chunks)


def request_points(request: httpx.Request) -> list[LatLon]:
    """Coordinates from an OSRM request path, as (lat, lon)."""
    segment = request.url.path.rsplit("/", 1)[-1]
    points = []
    for pair in segment.split(";"):
        lon, lat = pair.split(",")
        points.append((float(lat), float(lon)))
    return points


def trip_payload(
    points: list[LatLon],
    roundtrip: bool = True,
    order: Optional[list[int]] = None,
    snap_distance: float = 0.0,
) -> dict:
    """OSRM trip response visiting ``points`` in ``order`` (input indices)."""
    order = order or list(range(len(points)))
    waypoints = [
        {
            "waypoint_index": order.index(index),
            "trips_index": 0,
            "location": [lon, lat],
            "distance": snap_distance,
            "name": "",
        }
        for index, (lat, lon) in enumerate(points)
    ]
    path = [points[index] for index in order]
    if roundtrip:
        path.append(points[order[0]])
    distance = sum(distance_m(a, b) for a, b in zip(path, path[1:]))
    return {
        "code": "Ok",
        "trips": [{"geometry": encode_polyline(path), "distance": distance, "duration": distance / 10.0}],
        "waypoints": waypoints,
    }


class FakeOSRM:
    """Mock OSRM server recording every request it answers."""

    def __init__(self, responder: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.requests: list[httpx.Request] = []
        self.responder = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responder is not None:
            return self.responder(request)
        roundtrip = request.url.params.get("roundtrip", "true") == "true"
        return httpx.Response(200, json=trip_payload(request_points(request), roundtrip=roundtrip))

    def client(self) -> OSRMClient:
        return OSRMClient(base_url="http://osrm.test", profile="driving", transport=httpx.MockTransport(self.handler))

    @property
    def points_sent(self) -> list[list[LatLon]]:
        return [request_points(request) for request in self.requests]


class FakeDirectory:
    def __init__(self, workers: list[Worker], stops: Optional[dict[str, list[Stop]]] = None) -> None:
        self.workers = {worker.worker_id: worker for worker in workers}
        self.stops = stops or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.stop_gates: dict[str, asyncio.Event] = {}
        self.failing_stops: set[str] = set()

    async def list_workers(self) -> list[Worker]:
        return sorted(self.workers.values(), key=lambda worker: worker.name.lower())

    async def get_worker(self, worker_id: Optional[str] = None) -> Worker:
        if worker_id in self.gates:
            await self.gates[worker_id].wait()
        if worker_id is None:
            return next(iter(self.workers.values()))
        if worker_id not in self.workers:
            raise NotFoundError(f"Worker {worker_id} not found", operation="load_worker", worker_id=worker_id)
        return self.workers[worker_id]

    async def list_stops(self, worker_id: str, limit: Optional[int] = None) -> list[Stop]:
        if worker_id in self.stop_gates:
            await self.stop_gates[worker_id].wait()
        if worker_id in self.failing_stops:
            raise ServiceError("stop directory unavailable", operation="load_stops", worker_id=worker_id)
        return list(self.stops.get(worker_id, []))[: limit or 30]


class MemoryScheduleStore:
    def __init__(self) -> None:
        self.records: dict[tuple[str, date], Schedule] = {}
        self.saves = 0
        self.read_error: Optional[Exception] = None
        self.gates: dict[str, asyncio.Event] = {}

    async def get(self, worker_id: str, schedule_date: date) -> Optional[Schedule]:
        if worker_id in self.gates:
            await self.gates[worker_id].wait()
        if self.read_error is not None:
            raise self.read_error
        return self.records.get((worker_id, schedule_date))

    async def save(self, schedule: Schedule) -> Schedule:
        schedule.schedule_id = f"{schedule.worker_id}_{schedule.schedule_date.isoformat()}"
        self.records[(schedule.worker_id, schedule.schedule_date)] = schedule
        self.saves += 1
        return schedule

    async def list_for_worker(self, worker_id: str, start: date, end: date) -> list[Schedule]:
        return [
            item
            for (wid, day), item in sorted(self.records.items())
            if wid == worker_id and start <= day <= end
        ]

    async def list_for_date(self, schedule_date: date) -> list[Schedule]:
        return [item for (_, day), item in self.records.items() if day == schedule_date]

    async def update_status(self, schedule_id: str, status: str) -> Schedule:
        for item in self.records.values():
            if item.schedule_id == schedule_id:
                item.status = status
                return item
        raise NotFoundError(f"Schedule {schedule_id} not found", operation="update_status")


class FakeResponse:
    def __init__(self, data: list[dict]) -> None:
        self.data = data


class FakeQuery:
    """Chainable stand-in for a Supabase table query, evaluated on execute()."""

    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self.client = client
        self.table = table
        self.action = "select"
        self.payload: dict = {}
        self.on_conflict: Optional[str] = None
        self.filters: list[tuple[str, str, object]] = []
        self.row_limit: Optional[int] = None
        self.order_by: Optional[str] = None

    def select(self, columns: str = "*") -> "FakeQuery":
        self.action = "select"
        return self

    def upsert(self, row: dict, on_conflict: Optional[str] = None) -> "FakeQuery":
        self.action = "upsert"
        self.payload = dict(row)
        self.on_conflict = on_conflict
        return self

    def update(self, values: dict) -> "FakeQuery":
        self.action = "update"
        self.payload = dict(values)
        return self

    def eq(self, column: str, value: object) -> "FakeQuery":
        self.filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value: object) -> "FakeQuery":
        self.filters.append(("gte", column, value))
        return self

    def lte(self, column: str, value: object) -> "FakeQuery":
        self.filters.append(("lte", column, value))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.row_limit = count
        return self

    def order(self, column: str) -> "FakeQuery":
        self.order_by = column
        return self

    def _matches(self, row: dict) -> bool:
        for op, column, value in self.filters:
            cell = row.get(column)
            if op == "eq" and cell != value:
                return False
            if op == "gte" and not cell >= value:
                return False
            if op == "lte" and not cell <= value:
                return False
        return True

    async def execute(self) -> FakeResponse:
        self.client.executed.append(self)
        if self.client.error is not None:
            raise self.client.error
        rows = self.client.tables.setdefault(self.table, [])
        if self.action == "upsert":
            keys = (self.on_conflict or "id").split(",")
            for row in rows:
                if all(row.get(key) == self.payload.get(key) for key in keys):
                    row.update(self.payload)
                    return FakeResponse([dict(row)])
            record = {"id": f"row-{len(rows) + 1}", **self.payload}
            rows.append(record)
            return FakeResponse([dict(record)])

        matched = [row for row in rows if self._matches(row)]
        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matched])
        if self.order_by is not None:
            matched.sort(key=lambda row: row[self.order_by])
        if self.row_limit is not None:
            matched = matched[: self.row_limit]
        return FakeResponse([dict(row) for row in matched])


class FakeSupabase:
    """In-memory tables answering the query chains the Supabase client builds."""

    def __init__(self, tables: Optional[dict[str, list[dict]]] = None) -> None:
        self.tables = tables or {}
        self.executed: list[FakeQuery] = []
        self.error: Optional[Exception] = None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def make_stop(stop_id: str, worker_id: str, coordinates: Optional[LatLon], duration: int = 30) -> Stop:
    return Stop(
        stop_id=stop_id,
        worker_id=worker_id,
        name=f"Patient {stop_id}",
        address=f"{stop_id} Main St",
        city="Wichita Falls",
        state="TX",
        time="09:00 AM",
        duration=duration,
        latitude=coordinates[0] if coordinates else None,
        longitude=coordinates[1] if coordinates else None,
    )


@pytest.fixture
def fake_osrm() -> FakeOSRM:
    return FakeOSRM()


@pytest.fixture
def directory() -> FakeDirectory:
    workers = [
        Worker("1", "Alice Nurse", 33.9137, -98.4934),
        Worker("2", "Bob Nurse", 33.88, -98.52),
    ]
    stops = {
        "1": [
            make_stop("s1", "1", (33.92, -98.50)),
            make_stop("s2", "1", None),
            make_stop("s3", "1", (33.95, -98.55), duration=45),
        ],
        "2": [
            make_stop("b1", "2", (33.87, -98.53)),
            make_stop("b2", "2", (33.86, -98.54)),
        ],
    }
    return FakeDirectory(workers, stops)


@pytest.fixture
def store() -> MemoryScheduleStore:
    return MemoryScheduleStore()
