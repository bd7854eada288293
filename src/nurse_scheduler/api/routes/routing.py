"""Ad-hoc routing endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...schemas.routing import RouteRequest, RouteResponse
from ...services.routing.builder import request_route
from ...services.routing.osrm_client import OSRMClient
from ..dependencies import routing_client_dependency
from ..errors import unwrap_or_raise

router = APIRouter(tags=["routing"])


@router.post("/route", response_model=RouteResponse, status_code=status.HTTP_200_OK)
async def calculate_route(
    payload: RouteRequest,
    client: OSRMClient = Depends(routing_client_dependency),
) -> RouteResponse:
    points = [tuple(point) if point is not None else None for point in payload.points]
    outcome = await request_route(points, client=client, roundtrip=payload.roundtrip)
    route = unwrap_or_raise(outcome)
    return RouteResponse(
        path=[[lat, lon] for lat, lon in route.path],
        distance_meters=route.distance_meters,
        duration_seconds=route.duration_seconds,
        visit_order=route.visit_order,
        excluded=route.excluded,
        warnings=outcome.warnings,
    )
