"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from ...config import settings
from ...models.domain import LatLon
from ...models.outcome import InvalidInputError, ServiceError

logger = logging.getLogger(__name__)


class OSRMClient:
    """Async OSRM adapter for the trip (optimized order) and route (fixed order) services.

    Requests are never retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    async def _get_json(self, service: str, coordinates: Sequence[LatLon], params: dict[str, str]) -> dict:
        # OSRM expects "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        url = f"{self.base_url}/{service}/v1/{self.profile}/{coordinate_str}"

        async with self._get_client() as client:
            try:
                response = await client.get(url, params=params)
            except httpx.TimeoutException as exc:
                logger.warning(f"OSRM {service} request timed out: {exc}")
                raise ServiceError(
                    f"OSRM {service} request timed out after {self.timeout:.0f}s",
                    operation=f"osrm_{service}",
                ) from exc
            except httpx.HTTPError as exc:
                raise ServiceError(
                    f"Failed to connect to OSRM service at {self.base_url}: {exc}",
                    operation=f"osrm_{service}",
                ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ServiceError(
                f"OSRM {service} returned an unparsable response (HTTP {response.status_code})",
                operation=f"osrm_{service}",
            ) from exc

        # OSRM reports errors as {"code": "...", "message": "..."}, also on HTTP 400
        if not isinstance(data, dict) or data.get("code") != "Ok":
            code = data.get("code") if isinstance(data, dict) else None
            message = data.get("message") if isinstance(data, dict) else None
            raise ServiceError(
                f"OSRM {service} request failed: {message or code or f'HTTP {response.status_code}'}",
                operation=f"osrm_{service}",
                context={"code": code, "status_code": response.status_code},
            )
        return data

    async def trip(self, coordinates: Sequence[LatLon], roundtrip: bool | None = None) -> dict:
        """Request an optimized visiting order starting at the first coordinate.

        Returns the raw OSRM trip payload with ``trips`` and ``waypoints``.
        """
        if len(coordinates) < 2:
            raise InvalidInputError(
                "At least two coordinates are required for OSRM trip.",
                operation="osrm_trip",
            )
        roundtrip = settings.route_roundtrip if roundtrip is None else roundtrip
        params = {
            "source": "first",
            "roundtrip": "true" if roundtrip else "false",
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
        }
        # OSRM only supports open trips with both ends fixed
        if not roundtrip:
            params["destination"] = "last"
        return await self._get_json("trip", coordinates, params)

    async def route(self, coordinates: Sequence[LatLon]) -> dict:
        """Get route geometry through the coordinates in the given order."""
        if len(coordinates) < 2:
            raise InvalidInputError(
                "At least two coordinates are required for OSRM route.",
                operation="osrm_route",
            )
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
        }
        return await self._get_json("route", coordinates, params)


def decode_polyline(polyline: str) -> list[LatLon]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM uses Google's polyline encoding format (precision 5) for geometry.
    Raises ValueError on a truncated or malformed string.
    """
    coordinates: list[LatLon] = []
    index = 0
    lat = 0
    lon = 0

    def _next_value() -> int:
        nonlocal index
        shift = 0
        result = 0
        while True:
            if index >= len(polyline):
                raise ValueError("Polyline ended in the middle of a value")
            b = ord(polyline[index]) - 63
            index += 1
            if b < 0:
                raise ValueError(f"Invalid polyline character at position {index - 1}")
            result |= (b & 0x1F) << shift
            shift += 5
            if b < 0x20:
                break
        return ~(result >> 1) if (result & 1) else (result >> 1)

    while index < len(polyline):
        lat += _next_value()
        lon += _next_value()
        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


async def check_health(client: OSRMClient | None = None) -> bool:
    """Check OSRM reachability with a minimal two-point route request."""
    osrm = client or OSRMClient()
    test_coords = [(33.9137, -98.4934), (33.9383, -98.5329)]
    try:
        data: dict[str, Any] = await osrm.route(test_coords)
    except ServiceError as exc:
        logger.debug(f"OSRM health check failed: {exc}")
        return False
    return bool(data.get("routes"))
