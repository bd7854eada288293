"""Geocoding request/response schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1)


class BatchGeocodeRequest(BaseModel):
    addresses: List[str] = Field(..., min_length=1)


class ReverseGeocodeRequest(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class GeocodeResponse(BaseModel):
    address: str
    latitude: float
    longitude: float
    display_name: str


class BatchGeocodeResponse(BaseModel):
    results: List[GeocodeResponse]
