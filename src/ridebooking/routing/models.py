"""Route query and result types shared by the resolver and its callers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ridebooking.core.exceptions import (
    NetworkError,
    ProviderAuthError,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnavailable,
)
from ridebooking.geo.coordinates import QUANTIZE_PLACES, Coordinate


class RouteProfile(str, Enum):
    DRIVING = "driving"
    CYCLING = "cycling"
    WALKING = "walking"


class ErrorClass(str, Enum):
    """Why the provider could not answer, carried on estimate results."""

    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    SERVER = "server"
    UNKNOWN = "unknown"


def classify_error(error: BaseException) -> ErrorClass:
    """Map a provider failure onto its ErrorClass."""
    if isinstance(error, ProviderRateLimited):
        return ErrorClass.RATE_LIMIT
    if isinstance(error, ProviderTimeout):
        return ErrorClass.TIMEOUT
    if isinstance(error, NetworkError):
        return ErrorClass.NETWORK
    if isinstance(error, ProviderAuthError):
        return ErrorClass.AUTH
    if isinstance(error, ProviderUnavailable):
        return ErrorClass.SERVER
    return ErrorClass.UNKNOWN


class RouteQuery(BaseModel):
    """An origin/destination pair to resolve."""

    model_config = ConfigDict(frozen=True)

    origin: Coordinate
    destination: Coordinate
    profile: RouteProfile = RouteProfile.DRIVING

    def cache_key(self) -> str:
        """Key shared by all queries that quantize to the same points."""
        origin = self.origin.quantized(QUANTIZE_PLACES)
        destination = self.destination.quantized(QUANTIZE_PLACES)
        return f"{self.profile.value}:{origin}-{destination}"


class ProviderRoute(BaseModel):
    """Raw answer from a directions provider."""

    distance_meters: float
    duration_seconds: float
    geometry: tuple[tuple[float, float], ...] | None = None


class RouteResult(BaseModel):
    """Resolved distance and duration for a RouteQuery.

    ``is_estimate`` is True when the numbers come from the great-circle
    fallback rather than the provider; ``error_class`` then says why.
    """

    model_config = ConfigDict(frozen=True)

    distance_km: float = Field(gt=0)
    duration_min: int = Field(ge=1)
    geometry: tuple[tuple[float, float], ...] | None = None
    is_estimate: bool = False
    error_class: ErrorClass | None = None
    cached: bool = False
