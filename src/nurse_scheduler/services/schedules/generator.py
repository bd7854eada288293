"""Schedule generation: route a worker's stops and persist the result."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ...config import settings
from ...data.directory import WorkerDirectory
from ...models.domain import Schedule, Worker
from ...models.outcome import ItineraryError, Outcome
from ...persistence.schedules import ScheduleStore, encode_route_geometry
from ..routing.builder import build_route
from ..routing.osrm_client import OSRMClient

logger = logging.getLogger(__name__)

STAGE = "generate_schedule"


def estimate_travel_minutes(distance_m: float, speed_kmh: float | None = None) -> int:
    """Whole minutes needed to cover the distance at a constant average speed."""
    speed = speed_kmh or settings.schedule_speed_kmh
    return int(distance_m / 1000.0 / speed * 60.0)


@dataclass(slots=True)
class BatchGenerationReport:
    schedule_date: date
    generated: list[Schedule] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


class ScheduleGenerator:
    """Builds and saves a schedule for one worker and date."""

    def __init__(
        self,
        directory: WorkerDirectory,
        store: ScheduleStore,
        routing_client: Optional[OSRMClient] = None,
    ) -> None:
        self.directory = directory
        self.store = store
        self.routing_client = routing_client

    async def _empty(self, worker_id: str, schedule_date: date, warnings: list[str]) -> Outcome[Schedule]:
        schedule = Schedule(
            worker_id=worker_id,
            schedule_date=schedule_date,
            total_distance_m=0.0,
            total_travel_time_min=0,
            visit_order=[],
            route_geometry="[]",
            status="EMPTY",
            generated_on=date.today(),
        )
        saved = await self.store.save(schedule)
        logger.info(f"Saved empty schedule for worker {worker_id} on {schedule_date}")
        return Outcome.success(STAGE, saved, warnings)

    async def generate(self, worker_id: str, schedule_date: date) -> Outcome[Schedule]:
        """Generate and persist a schedule, overwriting any stored one for the date.

        A worker without a start coordinate starts from the configured default
        origin. A worker with no routable stops gets an EMPTY schedule.
        """
        warnings: list[str] = []
        try:
            worker = await self.directory.get_worker(worker_id)
            stops = await self.directory.list_stops(worker_id)

            origin = worker.coordinates
            if origin is None:
                origin = settings.default_origin
                warnings.append(
                    f"Worker {worker.name or worker_id} has no start location; "
                    f"using the default origin {origin[0]}, {origin[1]}"
                )

            waypoints = [(f"worker:{worker.worker_id}", origin)]
            waypoints.extend((stop.stop_id, stop.coordinates) for stop in stops)

            if not any(stop.coordinates for stop in stops):
                if stops:
                    warnings.append(f"None of the {len(stops)} stop(s) have coordinates")
                return await self._empty(worker_id, schedule_date, warnings)

            route_outcome = await build_route(waypoints, client=self.routing_client, roundtrip=True)
            warnings.extend(route_outcome.warnings)
            if route_outcome.error is not None:
                return Outcome.failure(STAGE, _with_worker(route_outcome.error, worker), warnings)
            route = route_outcome.unwrap()

            schedule = Schedule(
                worker_id=worker_id,
                schedule_date=schedule_date,
                total_distance_m=route.distance_meters,
                total_travel_time_min=estimate_travel_minutes(route.distance_meters),
                visit_order=list(route.visit_order),
                route_geometry=encode_route_geometry(route.path),
                status="GENERATED",
                generated_on=date.today(),
            )
            saved = await self.store.save(schedule)
        except ItineraryError as exc:
            if exc.worker_id is None:
                exc.worker_id = worker_id
            logger.error(f"Schedule generation failed for worker {worker_id} on {schedule_date}: {exc}")
            return Outcome.failure(STAGE, exc, warnings)

        logger.info(
            f"Generated schedule for worker {worker_id} on {schedule_date}: "
            f"{len(saved.visit_order)} stops, {saved.total_distance_m:.0f} m"
        )
        return Outcome.success(STAGE, saved, warnings)

    async def generate_all(self, schedule_date: date) -> BatchGenerationReport:
        """Generate schedules for every worker, one at a time, recording failures per worker."""
        report = BatchGenerationReport(schedule_date=schedule_date)
        workers = await self.directory.list_workers()
        for worker in workers:
            outcome = await self.generate(worker.worker_id, schedule_date)
            if outcome.ok:
                report.generated.append(outcome.unwrap())
            else:
                report.failures[worker.worker_id] = outcome.error.message  # type: ignore[union-attr]
        logger.info(
            f"Generated {len(report.generated)} schedules for {schedule_date}, {len(report.failures)} failed"
        )
        return report


def _with_worker(error: ItineraryError, worker: Worker) -> ItineraryError:
    if error.worker_id is None:
        error.worker_id = worker.worker_id
    return error
