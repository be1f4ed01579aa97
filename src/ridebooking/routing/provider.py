"""Directions provider protocol consumed by the route resolver."""

from typing import Protocol

from ridebooking.geo.coordinates import Coordinate
from ridebooking.routing.models import ProviderRoute, RouteProfile


class DirectionsProvider(Protocol):
    """Anything that can answer a single origin/destination routing request.

    Implementations raise the provider exceptions from
    ``ridebooking.core.exceptions`` (``ProviderRateLimited``,
    ``ProviderUnavailable``, ``ProviderTimeout``, ``NetworkError``,
    ``ProviderAuthError``, ``ProviderRequestError``, ``RouteNotFound``) so the
    resolver can classify failures without knowing the transport.
    """

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: RouteProfile,
    ) -> ProviderRoute: ...
