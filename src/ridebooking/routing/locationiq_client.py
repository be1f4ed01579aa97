import logging

import httpx
import polyline

from ridebooking.core.exceptions import (
    MalformedProviderResponse,
    NetworkError,
    ProviderAuthError,
    ProviderRateLimited,
    ProviderRequestError,
    ProviderTimeout,
    ProviderUnavailable,
    RouteNotFound,
)
from ridebooking.geo.coordinates import Coordinate
from ridebooking.routing.models import ProviderRoute, RouteProfile

logger = logging.getLogger(__name__)


def decode_polyline(encoded: str, precision: int = 5) -> tuple[tuple[float, float], ...]:
    """Decode polyline string to a tuple of (lat, lon) pairs."""
    coords = polyline.decode(encoded, precision)
    return tuple((lat, lon) for lat, lon in coords)


class LocationIQClient:
    """Directions provider backed by the OSRM-compatible LocationIQ API."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: RouteProfile = RouteProfile.DRIVING,
    ) -> ProviderRoute:
        """Get route between two coordinates."""
        if not self.api_key:
            raise ProviderAuthError("Directions API key not configured")

        # Coordinate order in the path is lon,lat
        url = (
            f"{self.base_url}/directions/{profile.value}/"
            f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
        )
        params = {
            "key": self.api_key,
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
            "alternatives": "false",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise ProviderTimeout(f"Request timed out after {self.timeout}s") from e
        except httpx.NetworkError as e:
            raise NetworkError(f"Network error: {e}") from e

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedProviderResponse("Directions response is not valid JSON") from e

        if data.get("code") == "NoRoute":
            raise RouteNotFound("No route found between the selected locations")

        routes = data.get("routes") or []
        if not routes:
            raise MalformedProviderResponse("No routes found in directions response")

        route = routes[0]
        distance = float(route.get("distance") or 0)
        duration = float(route.get("duration") or 0)
        if distance <= 0:
            raise MalformedProviderResponse("Directions response has no usable distance")

        encoded = route.get("geometry")
        geometry = decode_polyline(encoded) if isinstance(encoded, str) and encoded else None

        return ProviderRoute(
            distance_meters=distance,
            duration_seconds=duration,
            geometry=geometry,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 404:
            raise RouteNotFound("No route found between the selected locations")
        if status == 429:
            raise ProviderRateLimited("Rate limit exceeded", {"status": status})
        if status in (401, 403):
            raise ProviderAuthError("Invalid API key or access denied", {"status": status})
        if status >= 500:
            raise ProviderUnavailable(f"Directions server error: {status}", {"status": status})
        raise ProviderRequestError(f"Directions request rejected: {status}", {"status": status})
