"""Ad-hoc route request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class RouteRequest(BaseModel):
    points: List[Optional[List[float]]] = Field(
        ...,
        description="Ordered [lat, lon] pairs; the first is the origin. Null entries are excluded.",
    )
    roundtrip: Optional[bool] = None

    @field_validator("points")
    @classmethod
    def _check_pairs(cls, value: List[Optional[List[float]]]) -> List[Optional[List[float]]]:
        for point in value:
            if point is not None and len(point) != 2:
                raise ValueError("Each point must be a [lat, lon] pair")
        return value


class RouteResponse(BaseModel):
    path: List[List[float]]
    distance_meters: float
    duration_seconds: Optional[float] = None
    visit_order: List[str] = []
    excluded: List[str] = []
    warnings: List[str] = []
