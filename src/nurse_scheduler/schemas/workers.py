"""Worker and stop schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class WorkerModel(BaseModel):
    id: str
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    field_staff: Optional[bool] = None


class StopModel(BaseModel):
    id: str
    nurse_id: Optional[str] = None
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


class StopCoordinatePreviewResponse(BaseModel):
    """Stops with coordinates resolved from their addresses. Nothing is saved."""

    nurse_id: str
    resolved: int
    patients: List[StopModel]
    warnings: List[str] = []
