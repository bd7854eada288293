"""HTTP client for a Nominatim geocoding server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...models.domain import GeocodeResult
from ...models.outcome import InvalidInputError, NotFoundError, ServiceError

logger = logging.getLogger(__name__)


class NominatimClient:
    """Async Nominatim adapter for forward and reverse lookups. Never retries."""

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("Nominatim base URL is not configured.")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def _get_json(self, path: str, params: dict[str, Any], *, address: str, operation: str) -> Any:
        async with self._get_client() as client:
            try:
                response = await client.get(f"{self.base_url}{path}", params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise ServiceError(
                    f"Geocoder returned HTTP {exc.response.status_code} for '{address}'",
                    operation=operation,
                    address=address,
                ) from exc
            except httpx.HTTPError as exc:
                raise ServiceError(
                    f"Problem with geocoding request for '{address}': {exc}",
                    operation=operation,
                    address=address,
                ) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError(
                f"Error parsing geocoder response for '{address}': {exc}",
                operation=operation,
                address=address,
            ) from exc

    async def search(self, address: str) -> GeocodeResult:
        """Resolve a free-form address to its best match."""
        query = (address or "").strip()
        if not query:
            raise InvalidInputError("Address is required", operation="geocode")

        data = await self._get_json(
            "/search",
            {"q": query, "format": "json", "limit": 1},
            address=query,
            operation="geocode",
        )
        if not isinstance(data, list):
            raise ServiceError(
                f"Unexpected geocoder response for '{query}'",
                operation="geocode",
                address=query,
            )
        if not data:
            raise NotFoundError(f"No results found for address: {query}", operation="geocode", address=query)

        return _parse_location(data[0], query, operation="geocode")

    async def reverse(self, latitude: float, longitude: float) -> GeocodeResult:
        """Find the address nearest to a coordinate."""
        label = f"{latitude},{longitude}"
        if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
            raise InvalidInputError(f"Coordinates out of range: {label}", operation="reverse_geocode")

        data = await self._get_json(
            "/reverse",
            {"lat": latitude, "lon": longitude, "format": "json"},
            address=label,
            operation="reverse_geocode",
        )
        if not isinstance(data, dict):
            raise ServiceError(
                f"Unexpected geocoder response for {label}",
                operation="reverse_geocode",
                address=label,
            )
        if "error" in data:
            raise NotFoundError(
                f"No address found for coordinates {label}",
                operation="reverse_geocode",
                address=label,
            )
        return _parse_location(data, label, operation="reverse_geocode")


def _parse_location(location: dict[str, Any], address: str, *, operation: str) -> GeocodeResult:
    try:
        coordinates = (float(location["lat"]), float(location["lon"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ServiceError(
            f"Error parsing geocoder response for '{address}': {exc}",
            operation=operation,
            address=address,
        ) from exc
    return GeocodeResult(
        address=address,
        coordinates=coordinates,
        display_name=str(location.get("display_name") or address),
    )


async def check_health(client: NominatimClient | None = None) -> bool:
    """Check that the geocoder answers its status endpoint."""
    geocoder = client or NominatimClient()
    try:
        async with geocoder._get_client() as http:
            response = await http.get(f"{geocoder.base_url}/status", params={"format": "json"})
        return response.status_code == 200
    except httpx.HTTPError as exc:
        logger.debug(f"Geocoder health check failed: {exc}")
        return False
