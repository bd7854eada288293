"""Geocoding endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.domain import GeocodeResult
from ...schemas.geocoding import (
    BatchGeocodeRequest,
    BatchGeocodeResponse,
    GeocodeRequest,
    GeocodeResponse,
    ReverseGeocodeRequest,
)
from ...services.geocoding.nominatim_client import NominatimClient
from ...services.geocoding.service import resolve_address, resolve_addresses, reverse_geocode
from ..dependencies import geocoder_dependency
from ..errors import unwrap_or_raise

router = APIRouter(tags=["geocoding"])


def _to_response(result: GeocodeResult) -> GeocodeResponse:
    return GeocodeResponse(
        address=result.address,
        latitude=result.coordinates[0],
        longitude=result.coordinates[1],
        display_name=result.display_name,
    )


@router.post("/geocode", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
async def geocode(
    payload: GeocodeRequest,
    client: NominatimClient = Depends(geocoder_dependency),
) -> GeocodeResponse:
    return _to_response(unwrap_or_raise(await resolve_address(payload.address, client)))


@router.post("/geocode/batch", response_model=BatchGeocodeResponse, status_code=status.HTTP_200_OK)
async def geocode_batch(
    payload: BatchGeocodeRequest,
    client: NominatimClient = Depends(geocoder_dependency),
) -> BatchGeocodeResponse:
    """Resolve every address; one failure fails the request and names each failed address."""
    results = unwrap_or_raise(await resolve_addresses(payload.addresses, client))
    return BatchGeocodeResponse(results=[_to_response(result) for result in results])


@router.post("/reverse-geocode", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
async def reverse(
    payload: ReverseGeocodeRequest,
    client: NominatimClient = Depends(geocoder_dependency),
) -> GeocodeResponse:
    return _to_response(unwrap_or_raise(await reverse_geocode(payload.latitude, payload.longitude, client)))
