"""Schedule request/response schemas."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ScheduleModel(BaseModel):
    id: Optional[str] = None
    nurse_id: str
    schedule_date: date
    total_distance: float = Field(..., description="Total route distance in meters.")
    total_travel_time: int = Field(..., description="Estimated travel time in minutes.")
    patient_visit_order: List[str]
    route_coordinates: List[List[float]] = Field(default_factory=list, description="Route path as [lat, lon] pairs.")
    status: str
    generated_date: Optional[date] = None


class ScheduleResponse(BaseModel):
    schedule: ScheduleModel
    generated: bool = False
    state: str
    warnings: List[str] = []


class ScheduleListResponse(BaseModel):
    schedules: List[ScheduleModel]


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1)


class GenerateAllResponse(BaseModel):
    schedule_date: date
    generated: int
    failures: Dict[str, str] = Field(default_factory=dict)
