"""Worker and stop directories, database first with a CSV fallback."""

from __future__ import annotations

import csv
import functools
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, TypeVar

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import Stop, Worker, normalize_coordinates
from ..models.outcome import NotFoundError, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerDirectory(Protocol):
    async def list_workers(self) -> list[Worker]: ...

    async def get_worker(self, worker_id: Optional[str] = None) -> Worker: ...

    async def list_stops(self, worker_id: str, limit: Optional[int] = None) -> list[Stop]: ...


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_bool(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y"}


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def worker_from_row(row: dict[str, Any]) -> Worker:
    coordinates = normalize_coordinates(_coerce_float(row.get("latitude")), _coerce_float(row.get("longitude")))
    return Worker(
        worker_id=str(row["id"]).strip(),
        name=(_text(row.get("name")) or ""),
        latitude=coordinates[0] if coordinates else None,
        longitude=coordinates[1] if coordinates else None,
        field_staff=_coerce_bool(row.get("field_staff")),
    )


def stop_from_row(row: dict[str, Any]) -> Stop:
    coordinates = normalize_coordinates(_coerce_float(row.get("latitude")), _coerce_float(row.get("longitude")))
    duration = _coerce_float(row.get("duration"))
    return Stop(
        stop_id=str(row["id"]).strip(),
        worker_id=_text(row.get("nurse_id")),
        name=(_text(row.get("name")) or ""),
        address=(_text(row.get("address")) or ""),
        city=_text(row.get("city")),
        state=_text(row.get("state")),
        zip=_text(row.get("zip")),
        phone=_text(row.get("phone")),
        time=_text(row.get("time")),
        duration=int(duration) if duration is not None else 0,
        latitude=coordinates[0] if coordinates else None,
        longitude=coordinates[1] if coordinates else None,
    )


def _sort_workers(workers: list[Worker]) -> list[Worker]:
    return sorted(workers, key=lambda worker: worker.name.lower())


class SupabaseDirectory:
    """Directory backed by the ``nurses`` and ``patients`` tables."""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def _select(self, table: str, operation: str, **filters: Any) -> list[dict[str, Any]]:
        limit = filters.pop("limit", None)
        try:
            query = self.client.table(table).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            if limit is not None:
                query = query.limit(limit)
            response = await query.execute()
        except Exception as exc:
            logger.error(f"Supabase query on '{table}' failed: {exc}")
            raise ServiceError(f"Failed to read {table}: {exc}", operation=operation) from exc
        return list(response.data or [])

    @staticmethod
    def _convert(rows: list[dict[str, Any]], parse: Callable[[dict[str, Any]], T], table: str, operation: str) -> list[T]:
        try:
            return [parse(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            logger.error(f"Malformed row in '{table}': {exc}")
            raise ServiceError(f"Failed to parse {table} row: {exc}", operation=operation) from exc

    async def list_workers(self) -> list[Worker]:
        rows = await self._select(settings.workers_table, "list_workers")
        return _sort_workers(self._convert(rows, worker_from_row, settings.workers_table, "list_workers"))

    async def get_worker(self, worker_id: Optional[str] = None) -> Worker:
        if worker_id is None:
            rows = await self._select(settings.workers_table, "load_worker", limit=1)
            if not rows:
                raise NotFoundError("No workers found", operation="load_worker")
            return self._convert(rows[:1], worker_from_row, settings.workers_table, "load_worker")[0]
        rows = await self._select(settings.workers_table, "load_worker", id=worker_id)
        if not rows:
            raise NotFoundError(f"Worker {worker_id} not found", operation="load_worker", worker_id=worker_id)
        return self._convert(rows[:1], worker_from_row, settings.workers_table, "load_worker")[0]

    async def list_stops(self, worker_id: str, limit: Optional[int] = None) -> list[Stop]:
        rows = await self._select(
            settings.stops_table,
            "load_stops",
            nurse_id=worker_id,
            limit=limit or settings.stop_listing_limit,
        )
        return self._convert(rows, stop_from_row, settings.stops_table, "load_stops")


@functools.lru_cache(maxsize=4)
def load_worker_rows(source: Path) -> tuple[Worker, ...]:
    """Load workers from a CSV file with an ``id,name,latitude,longitude,field_staff`` header."""
    if not source.exists():
        raise FileNotFoundError(f"Worker file not found: {source}")
    with source.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Worker file '{source}' is missing a header row.")
        return tuple(worker_from_row(row) for row in reader if (row.get("id") or "").strip())


@functools.lru_cache(maxsize=4)
def load_stop_rows(source: Path) -> tuple[Stop, ...]:
    """Load stops from a CSV file keyed to workers by ``nurse_id``."""
    if not source.exists():
        raise FileNotFoundError(f"Stop file not found: {source}")
    with source.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Stop file '{source}' is missing a header row.")
        return tuple(stop_from_row(row) for row in reader if (row.get("id") or "").strip())


def clear_directory_cache() -> None:
    load_worker_rows.cache_clear()
    load_stop_rows.cache_clear()


class CsvDirectory:
    """Read-only directory over local CSV files."""

    def __init__(self, workers_file: Path | None = None, stops_file: Path | None = None) -> None:
        self.workers_file = workers_file or settings.workers_file
        self.stops_file = stops_file or settings.stops_file

    def _workers(self) -> tuple[Worker, ...]:
        try:
            return load_worker_rows(self.workers_file)
        except (OSError, ValueError) as exc:
            raise ServiceError(f"Failed to read workers: {exc}", operation="list_workers") from exc

    def _stops(self) -> tuple[Stop, ...]:
        try:
            return load_stop_rows(self.stops_file)
        except (OSError, ValueError) as exc:
            raise ServiceError(f"Failed to read stops: {exc}", operation="load_stops") from exc

    async def list_workers(self) -> list[Worker]:
        return _sort_workers(list(self._workers()))

    async def get_worker(self, worker_id: Optional[str] = None) -> Worker:
        workers = self._workers()
        if worker_id is None:
            if not workers:
                raise NotFoundError("No workers found", operation="load_worker")
            return workers[0]
        for worker in workers:
            if worker.worker_id == worker_id:
                return worker
        raise NotFoundError(f"Worker {worker_id} not found", operation="load_worker", worker_id=worker_id)

    async def list_stops(self, worker_id: str, limit: Optional[int] = None) -> list[Stop]:
        limit = limit or settings.stop_listing_limit
        stops = [stop for stop in self._stops() if stop.worker_id == worker_id]
        return stops[:limit]


async def get_directory() -> WorkerDirectory:
    """Return the Supabase directory when configured, else the CSV directory."""
    client = await get_supabase_client()
    if client is not None:
        return SupabaseDirectory(client)
    return CsvDirectory()


async def list_field_workers(directory: WorkerDirectory) -> list[Worker]:
    """Workers shown to the dispatcher: those with coordinates not marked as office staff."""
    workers = await directory.list_workers()
    return [worker for worker in workers if worker.is_field_staff]
