"""Domain models for workers, stops, geocoding results and schedules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

LatLon = tuple[float, float]


@dataclass(slots=True, frozen=True)
class Worker:
    """A mobile staff member with an optional home/start coordinate."""

    worker_id: str
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    field_staff: Optional[bool] = None

    @property
    def coordinates(self) -> LatLon | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def is_field_staff(self) -> bool:
        """Field staff are workers with a start coordinate not explicitly marked otherwise."""
        return self.coordinates is not None and self.field_staff in (None, True)


@dataclass(slots=True, frozen=True)
class Stop:
    """A patient visit assigned to one worker."""

    stop_id: str
    worker_id: Optional[str]
    name: str
    address: str = ""
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None
    time: Optional[str] = None
    duration: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def coordinates(self) -> LatLon | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def full_address(self) -> str:
        parts = [self.address, self.city, " ".join(p for p in (self.state, self.zip) if p)]
        return ", ".join(part.strip() for part in parts if part and part.strip())


@dataclass(slots=True, frozen=True)
class GeocodeResult:
    address: str
    coordinates: LatLon
    display_name: str


@dataclass(slots=True)
class Schedule:
    """Persisted route for a worker on one date."""

    worker_id: str
    schedule_date: date
    total_distance_m: float
    total_travel_time_min: int
    visit_order: list[str] = field(default_factory=list)
    # JSON text of [[lat, lon], ...] exactly as persisted
    route_geometry: str = "[]"
    status: str = "GENERATED"
    generated_on: Optional[date] = None
    schedule_id: Optional[str] = None


def normalize_coordinates(latitude: Optional[float], longitude: Optional[float]) -> LatLon | None:
    """Treat absent, out-of-range and (0, 0) placeholder coordinates as missing."""
    if latitude is None or longitude is None:
        return None
    if latitude == 0 and longitude == 0:
        return None
    if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
        return None
    return (latitude, longitude)
