"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...db.supabase import get_supabase_client
from ...services.geocoding import nominatim_client
from ...services.geocoding.nominatim_client import NominatimClient
from ...services.routing import osrm_client
from ...services.routing.osrm_client import OSRMClient
from ..dependencies import geocoder_dependency, routing_client_dependency

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
async def health_osrm(client: OSRMClient = Depends(routing_client_dependency)) -> dict:
    """Check OSRM service health."""
    healthy = await osrm_client.check_health(client)
    return {"service": "osrm", "healthy": healthy, "base_url": client.base_url}


@router.get("/health/geocoder", status_code=status.HTTP_200_OK)
async def health_geocoder(client: NominatimClient = Depends(geocoder_dependency)) -> dict:
    """Check Nominatim service health."""
    healthy = await nominatim_client.check_health(client)
    return {"service": "nominatim", "healthy": healthy, "base_url": client.base_url}


@router.get("/health/database", status_code=status.HTTP_200_OK)
async def health_database() -> dict:
    """Report whether the Supabase backend is configured; file storage is used otherwise."""
    supabase = await get_supabase_client()
    if supabase is None:
        return {
            "configured": False,
            "message": "Supabase not configured. Set NS_SUPABASE_URL and NS_SUPABASE_KEY environment variables.",
        }
    return {"configured": True}
