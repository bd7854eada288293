"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import MultiPoint

from ..models.domain import LatLon

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_m(a: LatLon, b: LatLon) -> float:
    return haversine_km(a[0], a[1], b[0], b[1]) * 1000.0


def bounding_box(points: Sequence[LatLon]) -> tuple[LatLon, LatLon] | None:
    """Return ((south, west), (north, east)) around the points, or None when empty."""

    if not points:
        return None
    # shapely works in x/y, i.e. lon/lat
    min_lon, min_lat, max_lon, max_lat = MultiPoint([(lon, lat) for lat, lon in points]).bounds
    return ((min_lat, min_lon), (max_lat, max_lon))
