"""FastAPI dependency providers for collaborators and services."""

from __future__ import annotations

from fastapi import Depends

from ..data.directory import WorkerDirectory, get_directory
from ..persistence.schedules import ScheduleStore, get_schedule_store
from ..services.geocoding.nominatim_client import NominatimClient
from ..services.routing.osrm_client import OSRMClient
from ..services.schedules.generator import ScheduleGenerator
from ..services.schedules.reconciler import ScheduleReconciler


async def directory_dependency() -> WorkerDirectory:
    return await get_directory()


async def schedule_store_dependency() -> ScheduleStore:
    return await get_schedule_store()


def routing_client_dependency() -> OSRMClient:
    return OSRMClient()


def geocoder_dependency() -> NominatimClient:
    return NominatimClient()


def generator_dependency(
    directory: WorkerDirectory = Depends(directory_dependency),
    store: ScheduleStore = Depends(schedule_store_dependency),
    routing_client: OSRMClient = Depends(routing_client_dependency),
) -> ScheduleGenerator:
    return ScheduleGenerator(directory, store, routing_client)


def reconciler_dependency(
    store: ScheduleStore = Depends(schedule_store_dependency),
    generator: ScheduleGenerator = Depends(generator_dependency),
) -> ScheduleReconciler:
    return ScheduleReconciler(store, generator.generate)
