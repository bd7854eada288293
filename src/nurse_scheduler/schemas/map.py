"""Map view schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class SummaryModel(BaseModel):
    stop_count: int
    distance_km: float
    drive_time: str
    visit_minutes: int
    work_time: str


class MapViewResponse(BaseModel):
    nurse_id: str
    included: List[str]
    summary: SummaryModel
    geojson: Dict[str, Any]
    stages: Dict[str, bool]
    warnings: List[str] = []
    error: Optional[Dict[str, Any]] = None
