"""Map view endpoint: runs the selection pipeline and projects it to GeoJSON."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...data.directory import WorkerDirectory
from ...schemas.map import MapViewResponse, SummaryModel
from ...services.projection import GeoJSONProjection, MapContext
from ...services.routing.osrm_client import OSRMClient
from ...services.schedules.reconciler import ScheduleReconciler
from ...services.selection.manager import SelectionManager
from ..dependencies import directory_dependency, reconciler_dependency, routing_client_dependency
from ..errors import to_http_exception

router = APIRouter(tags=["map"])


@router.get("/map/{nurse_id}", response_model=MapViewResponse, status_code=status.HTTP_200_OK)
async def map_view(
    nurse_id: str,
    schedule_date: Optional[date] = Query(None, alias="date"),
    exclude: List[str] = Query([], description="Stop ids to leave out of the selection."),
    recalculate: bool = Query(False, description="Route the selection instead of showing the stored schedule."),
    directory: WorkerDirectory = Depends(directory_dependency),
    reconciler: ScheduleReconciler = Depends(reconciler_dependency),
    routing_client: OSRMClient = Depends(routing_client_dependency),
) -> MapViewResponse:
    context = MapContext()
    manager = SelectionManager(
        directory,
        reconciler,
        routing_client=routing_client,
        schedule_date=schedule_date,
        listener=context.render_selection,
    )
    selected = await manager.select_worker(nurse_id)
    # without a worker and its stops there is nothing to draw
    for name in ("load_worker", "load_stops"):
        stage = selected.stage(name)
        if stage is not None and stage.error is not None:
            raise to_http_exception(stage.error)

    for stop_id in dict.fromkeys(exclude):
        if stop_id in manager.state.included:
            manager.toggle_stop(stop_id)
    stages = {stage.stage: stage.ok for stage in selected.stages}
    if recalculate or exclude:
        route = await manager.calculate_route()
        stages[route.stage] = route.ok

    state = manager.state
    summary = state.summary()
    return MapViewResponse(
        nurse_id=nurse_id,
        included=list(state.included),
        summary=SummaryModel(
            stop_count=summary.stop_count,
            distance_km=summary.distance_km,
            drive_time=summary.drive_time,
            visit_minutes=summary.visit_minutes,
            work_time=summary.work_time,
        ),
        geojson=GeoJSONProjection().to_feature_collection(context.layers),
        stages=stages,
        warnings=state.warnings + state.route_warnings,
        error=state.error.to_dict() if state.error else None,
    )
