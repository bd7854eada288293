"""Coordinate resolution for single addresses, batches and stop lists."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Sequence

from ...models.domain import GeocodeResult, Stop
from ...models.outcome import BatchGeocodingError, ItineraryError, Outcome
from .nominatim_client import NominatimClient

logger = logging.getLogger(__name__)


async def resolve_address(address: str, client: NominatimClient | None = None) -> Outcome[GeocodeResult]:
    geocoder = client or NominatimClient()
    try:
        result = await geocoder.search(address)
    except ItineraryError as exc:
        logger.info(f"Geocoding failed for '{address}': {exc}")
        return Outcome.failure("geocode", exc)
    return Outcome.success("geocode", result)


async def reverse_geocode(
    latitude: float, longitude: float, client: NominatimClient | None = None
) -> Outcome[GeocodeResult]:
    geocoder = client or NominatimClient()
    try:
        result = await geocoder.reverse(latitude, longitude)
    except ItineraryError as exc:
        return Outcome.failure("reverse_geocode", exc)
    return Outcome.success("reverse_geocode", result)


async def resolve_addresses(
    addresses: Sequence[str], client: NominatimClient | None = None
) -> Outcome[list[GeocodeResult]]:
    """Resolve all addresses concurrently; any failure fails the whole batch.

    Results keep the input order. The error lists every failed address.
    """
    geocoder = client or NominatimClient()
    results = await asyncio.gather(
        *(geocoder.search(address) for address in addresses),
        return_exceptions=True,
    )

    failures: list[tuple[str, ItineraryError]] = []
    resolved: list[GeocodeResult] = []
    for address, result in zip(addresses, results):
        if isinstance(result, ItineraryError):
            failures.append((address, result))
        elif isinstance(result, BaseException):
            raise result
        else:
            resolved.append(result)

    if failures:
        error = BatchGeocodingError(failures)
        logger.warning(error.message)
        return Outcome.failure("geocode_batch", error)

    logger.info(f"Geocoded {len(resolved)} addresses")
    return Outcome.success("geocode_batch", resolved)


async def resolve_missing_stop_coordinates(
    stops: Sequence[Stop], client: NominatimClient | None = None
) -> Outcome[list[Stop]]:
    """Fill coordinates for stops that lack them from their addresses.

    Returns copies; the stop directory is never written. Stops that already
    have coordinates are returned unchanged.
    """
    missing = [stop for stop in stops if stop.coordinates is None]
    if not missing:
        return Outcome.success("geocode_stops", list(stops))

    batch = await resolve_addresses([stop.full_address for stop in missing], client=client)
    if not batch.ok:
        return Outcome.failure("geocode_stops", batch.error)  # type: ignore[arg-type]

    filled = {
        stop.stop_id: dataclasses.replace(
            stop, latitude=result.coordinates[0], longitude=result.coordinates[1]
        )
        for stop, result in zip(missing, batch.value or [])
    }
    updated = [filled.get(stop.stop_id, stop) for stop in stops]
    return Outcome.success(
        "geocode_stops",
        updated,
        [f"Resolved coordinates for {len(filled)} stop(s) from their addresses"],
    )
