"""Schedule endpoints: fetch-or-generate, forced generation, listings and status."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.domain import Schedule
from ...models.outcome import CorruptStateError
from ...persistence.schedules import ScheduleStore, decode_route_geometry
from ...schemas.schedules import (
    GenerateAllResponse,
    ScheduleListResponse,
    ScheduleModel,
    ScheduleResponse,
    StatusUpdateRequest,
)
from ...services.schedules.generator import ScheduleGenerator
from ...services.schedules.reconciler import ReconcileState, ScheduleReconciler
from ..dependencies import generator_dependency, reconciler_dependency, schedule_store_dependency
from ..errors import unwrap_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedules"])


def schedule_to_model(schedule: Schedule, path: Optional[list] = None) -> ScheduleModel:
    if path is None:
        try:
            path = decode_route_geometry(schedule.route_geometry)
        except CorruptStateError as exc:
            logger.warning(f"Listing schedule {schedule.schedule_id} without geometry: {exc}")
            path = []
    return ScheduleModel(
        id=schedule.schedule_id,
        nurse_id=schedule.worker_id,
        schedule_date=schedule.schedule_date,
        total_distance=schedule.total_distance_m,
        total_travel_time=schedule.total_travel_time_min,
        patient_visit_order=list(schedule.visit_order),
        route_coordinates=[[lat, lon] for lat, lon in path],
        status=schedule.status,
        generated_date=schedule.generated_on,
    )


@router.get("/schedule", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
async def get_schedule(
    nurse_id: str = Query(...),
    schedule_date: Optional[date] = Query(None, alias="date"),
    reconciler: ScheduleReconciler = Depends(reconciler_dependency),
) -> ScheduleResponse:
    """Return the stored schedule, generating it first when absent or unreadable."""
    schedule_date = schedule_date or date.today()
    outcome = await reconciler.reconcile(nurse_id, schedule_date)
    view = unwrap_or_raise(outcome)
    return ScheduleResponse(
        schedule=schedule_to_model(view.schedule, view.path),
        generated=view.generated,
        state=reconciler.state_of(nurse_id, schedule_date).value,
        warnings=outcome.warnings,
    )


@router.post("/schedule/generate", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
async def generate_schedule(
    nurse_id: str = Query(...),
    schedule_date: Optional[date] = Query(None, alias="date"),
    generator: ScheduleGenerator = Depends(generator_dependency),
) -> ScheduleResponse:
    """Regenerate a schedule, replacing any stored one for the date."""
    outcome = await generator.generate(nurse_id, schedule_date or date.today())
    schedule = unwrap_or_raise(outcome)
    return ScheduleResponse(
        schedule=schedule_to_model(schedule),
        generated=True,
        state=ReconcileState.LOADED.value,
        warnings=outcome.warnings,
    )


@router.get("/schedules/date", response_model=ScheduleListResponse, status_code=status.HTTP_200_OK)
async def schedules_for_date(
    schedule_date: date = Query(..., alias="date"),
    store: ScheduleStore = Depends(schedule_store_dependency),
) -> ScheduleListResponse:
    schedules = await store.list_for_date(schedule_date)
    return ScheduleListResponse(schedules=[schedule_to_model(item) for item in schedules])


@router.get("/schedules/{nurse_id}/range", response_model=ScheduleListResponse, status_code=status.HTTP_200_OK)
async def schedules_for_range(
    nurse_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    store: ScheduleStore = Depends(schedule_store_dependency),
) -> ScheduleListResponse:
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )
    schedules = await store.list_for_worker(nurse_id, start_date, end_date)
    return ScheduleListResponse(schedules=[schedule_to_model(item) for item in schedules])


@router.put("/schedules/{schedule_id}/status", response_model=ScheduleModel, status_code=status.HTTP_200_OK)
async def update_schedule_status(
    schedule_id: str,
    payload: StatusUpdateRequest,
    store: ScheduleStore = Depends(schedule_store_dependency),
) -> ScheduleModel:
    schedule = await store.update_status(schedule_id, payload.status)
    return schedule_to_model(schedule)


@router.post("/schedules/generate-all", response_model=GenerateAllResponse, status_code=status.HTTP_200_OK)
async def generate_all_schedules(
    schedule_date: Optional[date] = Query(None, alias="date"),
    generator: ScheduleGenerator = Depends(generator_dependency),
) -> GenerateAllResponse:
    report = await generator.generate_all(schedule_date or date.today())
    return GenerateAllResponse(
        schedule_date=report.schedule_date,
        generated=len(report.generated),
        failures=report.failures,
    )
