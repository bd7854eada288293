"""Dispatcher-facing totals for the current selection."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from ...config import settings
from ...models.domain import Stop


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_minutes(minutes: int) -> str:
    """Render minutes as ``"45 min"`` or ``"2 hr 5 min"``."""
    if minutes < 60:
        return f"{minutes} min"
    return f"{minutes // 60} hr {minutes % 60} min"


def drive_minutes(distance_m: float, speed_kmh: float | None = None) -> float:
    speed = speed_kmh or settings.display_speed_kmh
    return distance_m / 1000.0 / speed * 60.0


def total_visit_minutes(stops: Iterable[Stop]) -> int:
    return sum(stop.duration or 0 for stop in stops)


@dataclass(slots=True, frozen=True)
class SelectionSummary:
    stop_count: int
    distance_km: float
    drive_time: str
    visit_minutes: int
    work_time: str


def summarize(stops: list[Stop], distance_m: float) -> SelectionSummary:
    drive = drive_minutes(distance_m)
    visits = total_visit_minutes(stops)
    return SelectionSummary(
        stop_count=len(stops),
        distance_km=round(distance_m / 1000.0, 2),
        drive_time=format_minutes(_round_half_up(drive)),
        visit_minutes=visits,
        work_time=format_minutes(_round_half_up(drive + visits)),
    )
