"""Route resolution against an external directions provider."""

from .cache import CacheSweeper, RouteCache
from .locationiq_client import LocationIQClient
from .models import ErrorClass, ProviderRoute, RouteProfile, RouteQuery, RouteResult
from .resolver import CancellationToken, RouteResolver

__all__ = [
    "CacheSweeper",
    "CancellationToken",
    "ErrorClass",
    "LocationIQClient",
    "ProviderRoute",
    "RouteCache",
    "RouteProfile",
    "RouteQuery",
    "RouteResolver",
    "RouteResult",
]
