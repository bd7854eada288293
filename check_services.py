#!/usr/bin/env python3
"""Verify that the configured OSRM and Nominatim services are reachable."""

import asyncio
import sys

from nurse_scheduler.config import settings
from nurse_scheduler.models.outcome import ItineraryError
from nurse_scheduler.services.geocoding import nominatim_client
from nurse_scheduler.services.geocoding.nominatim_client import NominatimClient
from nurse_scheduler.services.routing import osrm_client
from nurse_scheduler.services.routing.builder import request_route


async def check_osrm() -> bool:
    print("1. Checking OSRM...")
    print(f"   Base URL: {settings.osrm_base_url} (profile: {settings.osrm_profile})")
    if not await osrm_client.check_health():
        print("   [ERROR] OSRM service is not responding")
        return False
    outcome = await request_route([settings.default_origin, settings.map_center])
    if not outcome.ok:
        print(f"   [ERROR] Trip request failed: {outcome.error.message}")
        return False
    route = outcome.unwrap()
    print(f"   [OK] Trip request returned {len(route.path)} path points, {route.distance_meters:.0f} m")
    return True


async def check_nominatim() -> bool:
    print("2. Checking Nominatim...")
    print(f"   Base URL: {settings.nominatim_base_url}")
    client = NominatimClient()
    if not await nominatim_client.check_health(client):
        print("   [ERROR] Nominatim service is not responding")
        return False
    lat, lon = settings.default_origin
    try:
        result = await client.reverse(lat, lon)
    except ItineraryError as exc:
        print(f"   [ERROR] Reverse lookup failed: {exc.message}")
        return False
    print(f"   [OK] {lat}, {lon} -> {result.display_name}")
    return True


async def main() -> int:
    print("=" * 60)
    print("External Service Check")
    print("=" * 60)
    results = [await check_osrm(), await check_nominatim()]
    print("=" * 60)
    if all(results):
        print("[SUCCESS] All services are reachable")
        return 0
    print("[FAILED] One or more services are unavailable")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
