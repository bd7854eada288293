"""Fetch-or-generate reconciliation of persisted schedules."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Optional

from ...models.domain import LatLon, Schedule
from ...models.outcome import CorruptStateError, ItineraryError, NotFoundError, Outcome
from ...persistence.schedules import ScheduleStore, decode_route_geometry

logger = logging.getLogger(__name__)

STAGE = "reconcile_schedule"

GenerateFn = Callable[[str, date], Awaitable[Outcome[Schedule]]]


class ReconcileState(str, Enum):
    UNKNOWN = "unknown"
    LOADED = "loaded"
    GENERATING = "generating"
    FAILED = "failed"


@dataclass(slots=True)
class ScheduleView:
    """A stored schedule with its geometry decoded."""

    schedule: Schedule
    path: list[LatLon]
    distance_meters: float
    # True when this reconcile call produced the schedule
    generated: bool = False


class ScheduleReconciler:
    """Reads a (worker, date) schedule, generating it once when absent or unreadable.

    ``states`` keeps the last state reached for each key. Generation failures
    are reported, never retried.
    """

    def __init__(self, store: ScheduleStore, generate: GenerateFn) -> None:
        self.store = store
        self.generate = generate
        self.states: dict[tuple[str, date], ReconcileState] = {}

    async def _load(self, worker_id: str, schedule_date: date) -> Optional[ScheduleView]:
        schedule = await self.store.get(worker_id, schedule_date)
        if schedule is None:
            return None
        path = decode_route_geometry(schedule.route_geometry)
        return ScheduleView(schedule=schedule, path=path, distance_meters=schedule.total_distance_m)

    def _fail(
        self, key: tuple[str, date], error: ItineraryError, warnings: list[str]
    ) -> Outcome[ScheduleView]:
        self.states[key] = ReconcileState.FAILED
        if error.worker_id is None:
            error.worker_id = key[0]
        logger.error(f"Schedule reconciliation failed for worker {key[0]} on {key[1]}: {error}")
        return Outcome.failure(STAGE, error, warnings)

    async def reconcile(self, worker_id: str, schedule_date: date) -> Outcome[ScheduleView]:
        key = (worker_id, schedule_date)
        self.states[key] = ReconcileState.UNKNOWN
        warnings: list[str] = []

        try:
            view = await self._load(worker_id, schedule_date)
        except CorruptStateError as exc:
            logger.warning(f"Stored schedule for worker {worker_id} on {schedule_date} is unreadable: {exc}")
            warnings.append(f"Stored schedule was unreadable and has been regenerated ({exc.message})")
            view = None
        except ItineraryError as exc:
            return self._fail(key, exc, warnings)

        if view is not None:
            self.states[key] = ReconcileState.LOADED
            return Outcome.success(STAGE, view, warnings)

        self.states[key] = ReconcileState.GENERATING
        logger.info(f"No usable schedule for worker {worker_id} on {schedule_date}, generating")
        generated = await self.generate(worker_id, schedule_date)
        warnings.extend(generated.warnings)
        if not generated.ok:
            return self._fail(key, generated.error, warnings)  # type: ignore[arg-type]

        try:
            view = await self._load(worker_id, schedule_date)
        except ItineraryError as exc:
            return self._fail(key, exc, warnings)
        if view is None:
            return self._fail(
                key,
                NotFoundError(
                    f"Schedule for worker {worker_id} on {schedule_date} was generated but could not be read back",
                    operation=STAGE,
                ),
                warnings,
            )

        view.generated = True
        self.states[key] = ReconcileState.LOADED
        return Outcome.success(STAGE, view, warnings)

    def state_of(self, worker_id: str, schedule_date: date) -> ReconcileState:
        return self.states.get((worker_id, schedule_date), ReconcileState.UNKNOWN)
