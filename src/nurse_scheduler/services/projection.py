"""Map projection of the selection into renderable layers and GeoJSON."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..config import settings
from ..models.domain import LatLon
from .geospatial import bounding_box
from .selection.manager import SelectionState

WORKER_COLOR = "#3388ff"
STOP_COLOR = "#e0003e"
ROUTE_COLOR = "#0000c1"


@dataclass(slots=True, frozen=True)
class Marker:
    marker_id: str
    kind: str  # "worker" or "stop"
    position: LatLon
    label: str
    popup: str


@dataclass(slots=True)
class MapLayers:
    worker_marker: Optional[Marker] = None
    stop_markers: List[Marker] = field(default_factory=list)
    route_line: List[LatLon] = field(default_factory=list)
    bounds: Optional[tuple[LatLon, LatLon]] = None
    distance_meters: Optional[float] = None
    center: LatLon = (settings.map_center_latitude, settings.map_center_longitude)
    zoom: int = settings.map_default_zoom

    @property
    def markers(self) -> List[Marker]:
        return ([self.worker_marker] if self.worker_marker else []) + list(self.stop_markers)


def project_selection(state: SelectionState) -> MapLayers:
    """Build the full layer set for the current selection.

    Only included stops with coordinates get markers. Bounds cover every
    marker, falling back to the route when there are none.
    """
    layers = MapLayers()
    worker = state.worker
    if worker is not None and worker.coordinates is not None:
        layers.worker_marker = Marker(
            marker_id=f"worker:{worker.worker_id}",
            kind="worker",
            position=worker.coordinates,
            label=worker.name,
            popup=f"<strong>{worker.name}</strong><br>Starting Location",
        )

    for stop in state.included_stops():
        if stop.coordinates is None:
            continue
        layers.stop_markers.append(
            Marker(
                marker_id=stop.stop_id,
                kind="stop",
                position=stop.coordinates,
                label=stop.name,
                popup=(
                    f"<strong>{stop.name}</strong><br>"
                    f"{stop.address}<br>"
                    f"Visit Time: {stop.time or ''}<br>"
                    f"Duration: {stop.duration} min"
                ),
            )
        )

    if state.route is not None:
        layers.route_line = list(state.route.path)
        layers.distance_meters = state.route.distance_meters

    points = [marker.position for marker in layers.markers] or layers.route_line
    layers.bounds = bounding_box(points)
    return layers


class MapRenderer(Protocol):
    def clear(self) -> None: ...

    def draw(self, layers: MapLayers) -> None: ...


class MapContext:
    """Owns the layers currently on screen; every render replaces all of them."""

    def __init__(self, renderer: Optional[MapRenderer] = None) -> None:
        self.renderer = renderer
        self.layers = MapLayers()
        self.render_count = 0

    def render(self, layers: MapLayers) -> None:
        if self.renderer is not None:
            self.renderer.clear()
            self.renderer.draw(layers)
        self.layers = layers
        self.render_count += 1

    def render_selection(self, state: SelectionState) -> None:
        self.render(project_selection(state))


class GeoJSONProjection:
    """Renders layers as a GeoJSON FeatureCollection for the web client."""

    @staticmethod
    def _marker_feature(marker: Marker) -> Dict[str, Any]:
        lat, lon = marker.position
        return {
            "type": "Feature",
            "id": marker.marker_id,
            "geometry": {"type": "Point", "coordinates": [lon, lat]},
            "properties": {
                "kind": marker.kind,
                "name": marker.label,
                "popup": marker.popup,
                "color": WORKER_COLOR if marker.kind == "worker" else STOP_COLOR,
            },
        }

    def to_feature_collection(self, layers: MapLayers) -> Dict[str, Any]:
        features: List[Dict[str, Any]] = [self._marker_feature(marker) for marker in layers.markers]
        if len(layers.route_line) >= 2:
            features.append(
                {
                    "type": "Feature",
                    "id": "route",
                    "geometry": {
                        "type": "LineString",
                        # GeoJSON uses lon,lat order
                        "coordinates": [[lon, lat] for lat, lon in layers.route_line],
                    },
                    "properties": {
                        "kind": "route",
                        "distance_meters": layers.distance_meters,
                        "color": ROUTE_COLOR,
                    },
                }
            )

        collection: Dict[str, Any] = {"type": "FeatureCollection", "features": features}
        if layers.bounds is not None:
            (south, west), (north, east) = layers.bounds
            collection["bbox"] = [west, south, east, north]
        collection["properties"] = {
            "center": list(layers.center),
            "zoom": layers.zoom,
        }
        return collection
