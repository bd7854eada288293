"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ...models.domain import LatLon


@dataclass(slots=True)
class WaypointSet:
    """Waypoints that can be sent to the engine, in caller order."""

    labels: List[str]
    points: List[LatLon]
    excluded: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RouteResult:
    path: List[LatLon]
    distance_meters: float
    duration_seconds: float | None = None
    # labels of the waypoints after the origin, in the engine's visiting order
    visit_order: List[str] = field(default_factory=list)
    snapped_waypoints: List[LatLon] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
