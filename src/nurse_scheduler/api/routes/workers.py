"""Worker and stop directory endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...data.directory import WorkerDirectory, list_field_workers
from ...models.domain import Stop, Worker
from ...schemas.workers import StopCoordinatePreviewResponse, StopModel, WorkerModel
from ...services.geocoding.nominatim_client import NominatimClient
from ...services.geocoding.service import resolve_missing_stop_coordinates
from ..dependencies import directory_dependency, geocoder_dependency
from ..errors import unwrap_or_raise

router = APIRouter(tags=["workers"])


def worker_to_model(worker: Worker) -> WorkerModel:
    return WorkerModel(
        id=worker.worker_id,
        name=worker.name,
        latitude=worker.latitude,
        longitude=worker.longitude,
        field_staff=worker.field_staff,
    )


def stop_to_model(stop: Stop) -> StopModel:
    return StopModel(
        id=stop.stop_id,
        nurse_id=stop.worker_id,
        name=stop.name,
        address=stop.address,
        city=stop.city,
        state=stop.state,
        zip=stop.zip,
        phone=stop.phone,
        time=stop.time,
        duration=stop.duration,
        latitude=stop.latitude,
        longitude=stop.longitude,
    )


@router.get("/nurses", response_model=List[WorkerModel], status_code=status.HTTP_200_OK)
async def list_nurses(
    field_only: bool = Query(False, description="Only workers with a start location not marked as office staff."),
    directory: WorkerDirectory = Depends(directory_dependency),
) -> List[WorkerModel]:
    workers = await list_field_workers(directory) if field_only else await directory.list_workers()
    return [worker_to_model(worker) for worker in workers]


@router.get("/nurse", response_model=WorkerModel, status_code=status.HTTP_200_OK)
async def get_nurse(
    nurse_id: Optional[str] = Query(None, alias="id"),
    directory: WorkerDirectory = Depends(directory_dependency),
) -> WorkerModel:
    """Fetch one worker, or the first worker when no id is given."""
    return worker_to_model(await directory.get_worker(nurse_id))


@router.get("/patients", response_model=List[StopModel], status_code=status.HTTP_200_OK)
async def list_patients(
    nurse_id: str = Query(...),
    limit: int = Query(settings.stop_listing_limit, ge=1),
    directory: WorkerDirectory = Depends(directory_dependency),
) -> List[StopModel]:
    stops = await directory.list_stops(nurse_id, limit)
    return [stop_to_model(stop) for stop in stops]


@router.post(
    "/patients/geocode-missing",
    response_model=StopCoordinatePreviewResponse,
    status_code=status.HTTP_200_OK,
)
async def geocode_missing_patients(
    nurse_id: str = Query(...),
    directory: WorkerDirectory = Depends(directory_dependency),
    geocoder: NominatimClient = Depends(geocoder_dependency),
) -> StopCoordinatePreviewResponse:
    """Resolve coordinates for a worker's stops that lack them, without saving."""
    stops = await directory.list_stops(nurse_id)
    outcome = await resolve_missing_stop_coordinates(stops, client=geocoder)
    updated = unwrap_or_raise(outcome)
    resolved = sum(1 for before, after in zip(stops, updated) if before.coordinates is None and after.coordinates)
    return StopCoordinatePreviewResponse(
        nurse_id=nurse_id,
        resolved=resolved,
        patients=[stop_to_model(stop) for stop in updated],
        warnings=outcome.warnings,
    )
