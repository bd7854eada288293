"""Active worker and included stops, kept consistent across worker switches."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from ...config import settings
from ...data.directory import WorkerDirectory
from ...models.domain import LatLon, Stop, Worker
from ...models.outcome import InvalidInputError, ItineraryError, Outcome
from ..routing.builder import STAGE as ROUTE_STAGE
from ..routing.builder import Waypoint, build_route, exclusion_warning
from ..routing.models import RouteResult
from ..routing.osrm_client import OSRMClient
from ..schedules.reconciler import ScheduleReconciler, ScheduleView
from .summary import SelectionSummary, summarize

logger = logging.getLogger(__name__)

Listener = Callable[["SelectionState"], None]


@dataclass(slots=True)
class SelectionState:
    worker_id: Optional[str] = None
    worker: Optional[Worker] = None
    stops: list[Stop] = field(default_factory=list)
    # ordered subset of the loaded stop ids
    included: list[str] = field(default_factory=list)
    route: Optional[RouteResult] = None
    schedule: Optional[ScheduleView] = None
    warnings: list[str] = field(default_factory=list)
    # replaced by every route calculation
    route_warnings: list[str] = field(default_factory=list)
    error: Optional[ItineraryError] = None

    def included_stops(self) -> list[Stop]:
        by_id = {stop.stop_id: stop for stop in self.stops}
        return [by_id[stop_id] for stop_id in self.included if stop_id in by_id]

    def summary(self) -> SelectionSummary:
        distance = self.route.distance_meters if self.route else 0.0
        return summarize(self.included_stops(), distance)


@dataclass(slots=True)
class SelectionOutcome:
    """Per-stage outcomes of one select_worker call."""

    worker_id: str
    stages: list[Outcome[Any]] = field(default_factory=list)
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return not self.discarded and all(stage.ok for stage in self.stages)

    def stage(self, name: str) -> Optional[Outcome[Any]]:
        for outcome in self.stages:
            if outcome.stage == name:
                return outcome
        return None


class SelectionManager:
    """Owns the selection and runs the load_worker, load_stops, reconcile_schedule pipeline.

    Every select_worker call takes a new sequence number. A call whose
    sequence is no longer the latest drops its results instead of applying
    them. Route calculations are guarded the same way by a selection version
    that changes on every worker switch and stop toggle.
    """

    def __init__(
        self,
        directory: WorkerDirectory,
        reconciler: ScheduleReconciler,
        routing_client: Optional[OSRMClient] = None,
        schedule_date: Optional[date] = None,
        stop_limit: Optional[int] = None,
        listener: Optional[Listener] = None,
    ) -> None:
        self.directory = directory
        self.reconciler = reconciler
        self.routing_client = routing_client
        self.schedule_date = schedule_date or date.today()
        self.stop_limit = stop_limit or settings.stop_listing_limit
        self.listener = listener
        self.state = SelectionState()
        self._sequence = 0
        self._version = 0

    def _notify(self) -> None:
        if self.listener is not None:
            self.listener(self.state)

    def _is_current(self, token: int) -> bool:
        return token == self._sequence

    async def _stage(self, name: str, pending: Awaitable[Any]) -> Outcome[Any]:
        try:
            value = await pending
        except ItineraryError as exc:
            return Outcome.failure(name, exc)
        return Outcome.success(name, value)

    def _discard(self, outcome: SelectionOutcome, stage: str) -> SelectionOutcome:
        logger.warning(
            f"Discarding stale {stage} result for worker {outcome.worker_id}; "
            f"worker {self.state.worker_id} is now selected"
        )
        outcome.discarded = True
        return outcome

    def _stop_with_error(self, outcome: SelectionOutcome, stage: Outcome[Any]) -> SelectionOutcome:
        outcome.stages.append(stage)
        self.state.error = stage.error
        logger.error(f"Stage {stage.stage} failed for worker {outcome.worker_id}: {stage.error}")
        self._notify()
        return outcome

    async def select_worker(self, worker_id: str) -> SelectionOutcome:
        """Switch to a worker and repopulate its stops and schedule."""
        self._sequence += 1
        self._version += 1
        token = self._sequence
        self.state = SelectionState(worker_id=worker_id)
        self._notify()
        outcome = SelectionOutcome(worker_id=worker_id)

        loaded = await self._stage("load_worker", self.directory.get_worker(worker_id))
        if not self._is_current(token):
            return self._discard(outcome, "load_worker")
        if not loaded.ok:
            return self._stop_with_error(outcome, loaded)
        outcome.stages.append(loaded)
        self.state.worker = loaded.value
        if loaded.value.coordinates is None:
            self.state.warnings.append(f"Worker {loaded.value.name or worker_id} has no start location")

        stops = await self._stage("load_stops", self.directory.list_stops(worker_id, self.stop_limit))
        if not self._is_current(token):
            return self._discard(outcome, "load_stops")
        if not stops.ok:
            return self._stop_with_error(outcome, stops)
        self.state.stops = list(stops.value)
        self.state.included = [stop.stop_id for stop in self.state.stops]
        missing = sum(1 for stop in self.state.stops if stop.coordinates is None)
        if missing:
            stops.warnings.append(
                f"{missing} patient(s) cannot be shown on the map due to missing coordinates"
            )
        outcome.stages.append(stops)
        self.state.warnings.extend(stops.warnings)
        logger.info(f"Loaded {len(self.state.stops)} stops for worker {worker_id}")
        self._notify()

        reconciled = await self.reconciler.reconcile(worker_id, self.schedule_date)
        if not self._is_current(token):
            return self._discard(outcome, "reconcile_schedule")
        outcome.stages.append(reconciled)
        self.state.warnings.extend(reconciled.warnings)
        if reconciled.ok:
            view = reconciled.unwrap()
            self.state.schedule = view
            self.state.route = RouteResult(
                path=list(view.path),
                distance_meters=view.distance_meters,
                visit_order=list(view.schedule.visit_order),
            )
        else:
            self.state.error = reconciled.error
        self._notify()
        return outcome

    def toggle_stop(self, stop_id: str) -> bool:
        """Flip a stop's membership in the included set; unknown ids are ignored.

        Returns True when the selection changed. Any route is cleared because
        it no longer matches the selected coordinates.
        """
        loaded_ids = [stop.stop_id for stop in self.state.stops]
        if stop_id not in loaded_ids:
            return False
        included = set(self.state.included)
        if stop_id in included:
            included.remove(stop_id)
        else:
            included.add(stop_id)
        self.state.included = [item for item in loaded_ids if item in included]
        self.state.route = None
        self.state.route_warnings = []
        self._version += 1
        self._notify()
        return True

    def selected_waypoints(self) -> list[Waypoint]:
        """Worker origin followed by every included stop, coordinates or not."""
        waypoints: list[Waypoint] = []
        if self.state.worker is not None:
            waypoints.append((f"worker:{self.state.worker.worker_id}", self.state.worker.coordinates))
        waypoints.extend((stop.stop_id, stop.coordinates) for stop in self.state.included_stops())
        return waypoints

    def selected_coordinates(self) -> list[LatLon]:
        return [coordinates for _, coordinates in self.selected_waypoints() if coordinates is not None]

    async def calculate_route(self) -> Outcome[RouteResult]:
        """Route the current selection; the result is dropped if the selection changed meanwhile."""
        if self.state.worker is None:
            return Outcome.failure(
                ROUTE_STAGE,
                InvalidInputError("No worker is selected", operation=ROUTE_STAGE),
            )

        version = self._version
        worker_id = self.state.worker.worker_id
        outcome = await build_route(self.selected_waypoints(), client=self.routing_client)
        if version != self._version:
            logger.warning(f"Discarding route for worker {worker_id}; the selection changed")
            outcome.warnings.append("Selection changed before the route arrived; result discarded")
            return outcome

        if outcome.ok:
            route = outcome.value
            self.state.route = route
            # the per-patient notice replaces the engine-level exclusion notice
            dropped = exclusion_warning(route.excluded) if route.excluded else None
            self.state.route_warnings = [warning for warning in outcome.warnings if warning != dropped]
            excluded = [label for label in route.excluded if not label.startswith("worker:")]
            if excluded:
                self.state.route_warnings.append(
                    f"Route calculated, but {len(excluded)} patient(s) were excluded due to missing coordinates"
                )
        else:
            self.state.route_warnings = list(outcome.warnings)
            if outcome.error.worker_id is None:
                outcome.error.worker_id = worker_id
            self.state.error = outcome.error
        self._notify()
        return outcome
