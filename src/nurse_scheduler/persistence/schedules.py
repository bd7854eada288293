"""Schedule store: Supabase table when configured, JSON files otherwise."""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Optional, Protocol

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import LatLon, Schedule
from ..models.outcome import CorruptStateError, InvalidInputError, NotFoundError, ServiceError
from .filesystem import FileStorage

logger = logging.getLogger(__name__)

SCHEDULE_STATUSES = ("GENERATED", "EMPTY", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED")


class ScheduleStore(Protocol):
    async def get(self, worker_id: str, schedule_date: date) -> Optional[Schedule]: ...

    async def save(self, schedule: Schedule) -> Schedule: ...

    async def list_for_worker(self, worker_id: str, start: date, end: date) -> list[Schedule]: ...

    async def list_for_date(self, schedule_date: date) -> list[Schedule]: ...

    async def update_status(self, schedule_id: str, status: str) -> Schedule: ...


def encode_route_geometry(path: list[LatLon]) -> str:
    return json.dumps([[lat, lon] for lat, lon in path])


def decode_route_geometry(text: str | None) -> list[LatLon]:
    """Parse stored ``[[lat, lon], ...]`` JSON text.

    Raises CorruptStateError for anything that is not a list of coordinate pairs.
    """
    if text is None:
        raise CorruptStateError("Stored route geometry is missing", operation="reconcile_schedule")
    try:
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("expected a JSON array")
        path: list[LatLon] = []
        for pair in data:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                raise ValueError(f"invalid coordinate pair {pair!r}")
            path.append((float(pair[0]), float(pair[1])))
    except (TypeError, ValueError) as exc:
        raise CorruptStateError(
            f"Stored route geometry could not be parsed: {exc}",
            operation="reconcile_schedule",
        ) from exc
    return path


def validate_status(status: str) -> str:
    normalized = (status or "").strip().upper()
    if normalized not in SCHEDULE_STATUSES:
        raise InvalidInputError(
            f"Unknown schedule status '{status}'. Expected one of: {', '.join(SCHEDULE_STATUSES)}",
            operation="update_status",
        )
    return normalized


def schedule_to_row(schedule: Schedule) -> dict[str, Any]:
    return {
        "nurse_id": schedule.worker_id,
        "schedule_date": schedule.schedule_date.isoformat(),
        "total_distance": schedule.total_distance_m,
        "total_travel_time": schedule.total_travel_time_min,
        "patient_visit_order": list(schedule.visit_order),
        "route_coordinates": schedule.route_geometry,
        "status": schedule.status,
        "generated_date": schedule.generated_on.isoformat() if schedule.generated_on else None,
    }


def schedule_from_row(row: dict[str, Any]) -> Schedule:
    """Build a Schedule from a stored row; route geometry is kept as raw text."""
    try:
        generated = row.get("generated_date")
        return Schedule(
            worker_id=str(row["nurse_id"]),
            schedule_date=date.fromisoformat(str(row["schedule_date"])),
            total_distance_m=float(row.get("total_distance") or 0.0),
            total_travel_time_min=int(row.get("total_travel_time") or 0),
            visit_order=[str(item) for item in (row.get("patient_visit_order") or [])],
            route_geometry=row.get("route_coordinates"),
            status=str(row.get("status") or "GENERATED"),
            generated_on=date.fromisoformat(str(generated)) if generated else None,
            schedule_id=str(row["id"]) if row.get("id") is not None else None,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CorruptStateError(f"Stored schedule record is invalid: {exc}", operation="load_schedule") from exc


class FileScheduleStore:
    """Schedules stored as ``schedules/<worker>/<date>.json`` under the data root."""

    def __init__(self, storage: FileStorage | None = None) -> None:
        self.storage = storage or FileStorage()

    @staticmethod
    def make_id(worker_id: str, schedule_date: date) -> str:
        return f"{worker_id}_{schedule_date.isoformat()}"

    def _read(self, path) -> Schedule:
        try:
            row = self.storage.read_json(path)
        except ValueError as exc:
            raise CorruptStateError(f"Schedule file {path.name} is not valid JSON: {exc}", operation="load_schedule") from exc
        except OSError as exc:
            raise ServiceError(f"Failed to read schedule file {path}: {exc}", operation="load_schedule") from exc
        if not isinstance(row, dict):
            raise CorruptStateError(f"Schedule file {path.name} does not hold a record", operation="load_schedule")
        return schedule_from_row(row)

    async def get(self, worker_id: str, schedule_date: date) -> Optional[Schedule]:
        path = self.storage.schedule_path(worker_id, schedule_date)
        if not path.exists():
            return None
        return self._read(path)

    async def save(self, schedule: Schedule) -> Schedule:
        schedule.schedule_id = self.make_id(schedule.worker_id, schedule.schedule_date)
        row = schedule_to_row(schedule)
        row["id"] = schedule.schedule_id
        path = self.storage.schedule_path(schedule.worker_id, schedule.schedule_date)
        try:
            self.storage.write_json(path, row)
        except OSError as exc:
            raise ServiceError(f"Failed to write schedule file {path}: {exc}", operation="save_schedule") from exc
        logger.info(f"Saved schedule {schedule.schedule_id} to {path}")
        return schedule

    async def list_for_worker(self, worker_id: str, start: date, end: date) -> list[Schedule]:
        schedules = [self._read(path) for path in self.storage.iter_schedule_paths(worker_id)]
        return sorted(
            (item for item in schedules if start <= item.schedule_date <= end),
            key=lambda item: item.schedule_date,
        )

    async def list_for_date(self, schedule_date: date) -> list[Schedule]:
        paths = [
            path
            for path in self.storage.iter_schedule_paths()
            if path.stem == schedule_date.isoformat()
        ]
        return [self._read(path) for path in paths]

    async def update_status(self, schedule_id: str, status: str) -> Schedule:
        status = validate_status(status)
        worker_id, _, date_text = schedule_id.rpartition("_")
        try:
            schedule_date = date.fromisoformat(date_text)
        except ValueError as exc:
            raise NotFoundError(f"Schedule {schedule_id} not found", operation="update_status") from exc
        schedule = await self.get(worker_id, schedule_date) if worker_id else None
        if schedule is None:
            raise NotFoundError(f"Schedule {schedule_id} not found", operation="update_status")
        schedule.status = status
        return await self.save(schedule)


class SupabaseScheduleStore:
    """Schedules stored in the ``nurse_schedules`` table, unique on (nurse_id, schedule_date)."""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def _execute(self, query: Any, operation: str) -> list[dict[str, Any]]:
        try:
            response = await query.execute()
        except Exception as exc:
            logger.error(f"Supabase {operation} on '{settings.schedules_table}' failed: {exc}")
            raise ServiceError(f"Schedule store {operation} failed: {exc}", operation=operation) from exc
        return list(response.data or [])

    def _table(self) -> Any:
        return self.client.table(settings.schedules_table)

    async def get(self, worker_id: str, schedule_date: date) -> Optional[Schedule]:
        rows = await self._execute(
            self._table().select("*").eq("nurse_id", worker_id).eq("schedule_date", schedule_date.isoformat()).limit(1),
            "load_schedule",
        )
        return schedule_from_row(rows[0]) if rows else None

    async def save(self, schedule: Schedule) -> Schedule:
        rows = await self._execute(
            self._table().upsert(schedule_to_row(schedule), on_conflict="nurse_id,schedule_date"),
            "save_schedule",
        )
        if rows and rows[0].get("id") is not None:
            schedule.schedule_id = str(rows[0]["id"])
        return schedule

    async def list_for_worker(self, worker_id: str, start: date, end: date) -> list[Schedule]:
        rows = await self._execute(
            self._table()
            .select("*")
            .eq("nurse_id", worker_id)
            .gte("schedule_date", start.isoformat())
            .lte("schedule_date", end.isoformat())
            .order("schedule_date"),
            "list_schedules",
        )
        return [schedule_from_row(row) for row in rows]

    async def list_for_date(self, schedule_date: date) -> list[Schedule]:
        rows = await self._execute(
            self._table().select("*").eq("schedule_date", schedule_date.isoformat()),
            "list_schedules",
        )
        return [schedule_from_row(row) for row in rows]

    async def update_status(self, schedule_id: str, status: str) -> Schedule:
        status = validate_status(status)
        rows = await self._execute(
            self._table().update({"status": status}).eq("id", schedule_id),
            "update_status",
        )
        if not rows:
            raise NotFoundError(f"Schedule {schedule_id} not found", operation="update_status")
        return schedule_from_row(rows[0])


async def get_schedule_store() -> ScheduleStore:
    """Return the Supabase store when configured, else the file store."""
    client = await get_supabase_client()
    if client is not None:
        return SupabaseScheduleStore(client)
    return FileScheduleStore()
