"""Route request assembly: waypoint filtering and optimized trip requests."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ...config import settings
from ...models.domain import LatLon
from ...models.outcome import InvalidInputError, ItineraryError, Outcome, ServiceError
from ..geospatial import distance_m
from .models import RouteResult, WaypointSet
from .osrm_client import OSRMClient, decode_polyline

logger = logging.getLogger(__name__)

STAGE = "calculate_route"

Waypoint = tuple[str, Optional[LatLon]]


def collect_waypoints(waypoints: Sequence[Waypoint]) -> WaypointSet:
    """Drop waypoints without coordinates, keeping the caller's order."""
    labels: list[str] = []
    points: list[LatLon] = []
    excluded: list[str] = []
    for label, coordinates in waypoints:
        if coordinates is None:
            excluded.append(label)
            continue
        labels.append(label)
        points.append((float(coordinates[0]), float(coordinates[1])))
    return WaypointSet(labels=labels, points=points, excluded=excluded)


def exclusion_warning(excluded: Sequence[str]) -> str:
    return (
        f"{len(excluded)} waypoint(s) excluded from the route due to missing coordinates: "
        f"{', '.join(excluded)}"
    )


def parse_trip_response(
    data: dict[str, Any],
    waypoint_set: WaypointSet,
    snap_tolerance_m: float,
) -> tuple[RouteResult, list[str]]:
    """Turn an OSRM trip payload into a RouteResult plus snapping warnings.

    Raises ServiceError when the payload does not have the expected shape.
    """
    warnings: list[str] = []
    try:
        trips = data["trips"]
        waypoints = data["waypoints"]
        if len(trips) != 1:
            raise ServiceError(
                f"Routing engine split the request into {len(trips)} disconnected trips",
                operation="osrm_trip",
            )
        if len(waypoints) != len(waypoint_set.points):
            raise ValueError(
                f"expected {len(waypoint_set.points)} waypoints, got {len(waypoints)}"
            )
        trip = trips[0]
        path = decode_polyline(trip["geometry"])
        distance = float(trip["distance"])
        duration = float(trip["duration"]) if trip.get("duration") is not None else None

        order = sorted(range(len(waypoints)), key=lambda i: int(waypoints[i]["waypoint_index"]))
        snapped: list[LatLon] = []
        for index in order:
            lon, lat = waypoints[index]["location"]
            snapped_point = (float(lat), float(lon))
            snapped.append(snapped_point)
            snap_distance = waypoints[index].get("distance")
            if snap_distance is None:
                snap_distance = distance_m(waypoint_set.points[index], snapped_point)
            if float(snap_distance) > snap_tolerance_m:
                warnings.append(
                    f"Waypoint '{waypoint_set.labels[index]}' snapped {float(snap_distance):.0f} m "
                    f"from its input location"
                )
    except ServiceError:
        raise
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ServiceError(
            f"Routing engine returned an unparsable response: {exc}",
            operation="osrm_trip",
        ) from exc

    if distance < 0:
        raise ServiceError("Routing engine returned a negative distance", operation="osrm_trip")

    # source=first keeps the origin at position 0
    visit_order = [waypoint_set.labels[index] for index in order[1:]]
    result = RouteResult(
        path=path,
        distance_meters=distance,
        duration_seconds=duration,
        visit_order=visit_order,
        snapped_waypoints=snapped,
        excluded=list(waypoint_set.excluded),
    )
    return result, warnings


async def build_route(
    waypoints: Sequence[Waypoint],
    client: OSRMClient | None = None,
    roundtrip: bool | None = None,
    snap_tolerance_m: float | None = None,
) -> Outcome[RouteResult]:
    """Request an optimized route for the waypoints that have coordinates.

    The first routable waypoint is the origin. Waypoints without coordinates
    are excluded with a warning; fewer than two routable points is an
    InvalidInputError.
    """
    waypoint_set = collect_waypoints(waypoints)
    warnings: list[str] = []
    if waypoint_set.excluded:
        warnings.append(exclusion_warning(waypoint_set.excluded))
        logger.warning(
            f"Excluding {len(waypoint_set.excluded)} of {len(waypoints)} waypoints without coordinates"
        )

    if len(waypoint_set.points) < 2:
        error = InvalidInputError(
            f"At least two points with coordinates are required to calculate a route "
            f"({len(waypoint_set.points)} available).",
            operation=STAGE,
            context={"excluded": waypoint_set.excluded},
        )
        return Outcome.failure(STAGE, error, warnings)

    osrm = client or OSRMClient()
    tolerance = settings.snap_tolerance_meters if snap_tolerance_m is None else snap_tolerance_m
    try:
        data = await osrm.trip(waypoint_set.points, roundtrip=roundtrip)
        result, snap_warnings = parse_trip_response(data, waypoint_set, tolerance)
    except ItineraryError as exc:
        logger.error(f"Route calculation failed for {len(waypoint_set.points)} points: {exc}")
        return Outcome.failure(STAGE, exc, warnings)

    logger.info(
        f"Route calculated through {len(waypoint_set.points)} points: "
        f"{result.distance_meters:.0f} m, {len(result.path)} path coordinates"
    )
    return Outcome.success(STAGE, result, warnings + snap_warnings)


async def request_route(
    points: Sequence[Optional[LatLon]],
    client: OSRMClient | None = None,
    roundtrip: bool | None = None,
) -> Outcome[RouteResult]:
    """Raw-coordinate variant of build_route; labels are input positions."""
    waypoints = [(f"point_{index}", point) for index, point in enumerate(points)]
    return await build_route(waypoints, client=client, roundtrip=roundtrip)
