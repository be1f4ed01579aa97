"""Resolve travel distance and duration for an origin/destination pair.

Resolution order: geo checks, cache, join an in-flight request for the
same key, provider call with retry, haversine estimate.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from ridebooking.core.exceptions import (
    BookingError,
    ProviderTimeout,
    ResolutionCancelled,
    RouteNotFound,
)
from ridebooking.core.retry import RetryPolicy, SleepFunc, with_retry
from ridebooking.geo.distance import haversine_distance_km
from ridebooking.geo.validator import BoundingBox, GeoValidator
from ridebooking.routing.cache import InFlight, RouteCache
from ridebooking.routing.models import (
    ErrorClass,
    ProviderRoute,
    RouteProfile,
    RouteQuery,
    RouteResult,
    classify_error,
)
from ridebooking.routing.provider import DirectionsProvider

logger = logging.getLogger(__name__)

MIN_DISTANCE_KM = 0.01

DEFAULT_FALLBACK_SPEEDS: dict[RouteProfile, float] = {
    RouteProfile.DRIVING: 25.0,
    RouteProfile.CYCLING: 15.0,
    RouteProfile.WALKING: 5.0,
}


class CancellationToken:
    """Lets a caller abandon a pending resolve() without cancelling its task."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class RouteResolver:
    def __init__(
        self,
        provider: DirectionsProvider,
        cache: RouteCache,
        validator: GeoValidator,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = 10.0,
        fallback_speeds: Mapping[RouteProfile, float] | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.provider = provider
        self.cache = cache
        self.validator = validator
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_seconds = timeout_seconds
        self.fallback_speeds = {**DEFAULT_FALLBACK_SPEEDS, **(fallback_speeds or {})}
        self._sleep = sleep
        self.provider_calls = 0

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        provider: DirectionsProvider,
        cache: RouteCache | None = None,
    ) -> "RouteResolver":
        """Build a resolver from the application Settings."""
        routing = settings.routing
        if cache is None:
            cache = RouteCache(
                ttl_seconds=routing.cache_ttl_seconds,
                max_size=routing.cache_max_size,
            )
        return cls(
            provider=provider,
            cache=cache,
            validator=GeoValidator(BoundingBox.from_settings(settings.geofence)),
            retry_policy=RetryPolicy(
                max_attempts=routing.max_attempts,
                delays=tuple(routing.retry_delays),
            ),
            timeout_seconds=routing.timeout_seconds,
            fallback_speeds={
                RouteProfile.DRIVING: routing.driving_speed_kmh,
                RouteProfile.CYCLING: routing.cycling_speed_kmh,
                RouteProfile.WALKING: routing.walking_speed_kmh,
            },
        )

    async def resolve(
        self,
        query: RouteQuery,
        cancel: CancellationToken | None = None,
    ) -> RouteResult:
        """Resolve query to a RouteResult.

        Raises:
            InvalidCoordinates: an endpoint is not a valid coordinate
            ServiceAreaRestricted: an endpoint is outside the geo-fence
            RouteNotFound: the provider reports there is no route
            ResolutionCancelled: cancel was triggered before the result arrived
        """
        for coord in (query.origin, query.destination):
            self.validator.validate(coord)
        for coord in (query.origin, query.destination):
            self.validator.ensure_serviceable(coord)

        if cancel is not None and cancel.cancelled:
            raise ResolutionCancelled("Route resolution cancelled before start")

        key = query.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Route cache hit for {key}", extra={"route_key": key})
            return cached

        flight = self.cache.get_in_flight(key)
        if flight is None:
            task = asyncio.create_task(self._resolve_uncached(query, key))
            flight = InFlight(key=key, task=task)
            self.cache.register_in_flight(flight)
        else:
            logger.debug(f"Joining in-flight route resolution for {key}", extra={"route_key": key})

        flight.waiters += 1
        try:
            return await self._wait(flight, cancel)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                logger.info(
                    f"All callers detached from {key}, cancelling provider request",
                    extra={"route_key": key},
                )
                flight.task.cancel()
                self.cache.release_in_flight(key, flight.task)

    async def _wait(self, flight: InFlight, cancel: CancellationToken | None) -> RouteResult:
        if cancel is None:
            # Shielded so one caller's task cancellation leaves other waiters alone.
            return await asyncio.shield(flight.task)

        cancel_wait = asyncio.create_task(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {flight.task, cancel_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_wait.cancel()

        if flight.task in done:
            return flight.task.result()
        raise ResolutionCancelled(f"Route resolution for {flight.key} cancelled by caller")

    async def _resolve_uncached(self, query: RouteQuery, key: str) -> RouteResult:
        task = asyncio.current_task()
        try:
            try:
                route = await self._fetch(query, key)
                result = self._to_result(route)
            except RouteNotFound:
                logger.info(f"Provider reports no route for {key}", extra={"route_key": key})
                raise
            except Exception as e:
                error_class = classify_error(e)
                if isinstance(e, BookingError):
                    logger.warning(
                        f"Directions unavailable for {key} ({error_class.value}), "
                        f"using estimate: {e}",
                        extra={"route_key": key},
                    )
                else:
                    logger.exception(
                        f"Unexpected directions failure for {key}, using estimate",
                        extra={"route_key": key},
                    )
                result = self.estimate(query, error_class)

            self.cache.put(key, result)
            return result
        finally:
            if task is not None:
                self.cache.release_in_flight(key, task)

    async def _fetch(self, query: RouteQuery, key: str) -> ProviderRoute:
        async def attempt() -> ProviderRoute:
            self.provider_calls += 1
            try:
                return await asyncio.wait_for(
                    self.provider.get_route(query.origin, query.destination, query.profile),
                    timeout=self.timeout_seconds,
                )
            except TimeoutError as e:
                raise ProviderTimeout(
                    f"Directions request timed out after {self.timeout_seconds}s"
                ) from e

        return await with_retry(
            attempt,
            self.retry_policy,
            operation_name=f"Directions request {key}",
            sleep=self._sleep,
        )

    @staticmethod
    def _to_result(route: ProviderRoute) -> RouteResult:
        distance_km = max(round(route.distance_meters / 1000, 2), MIN_DISTANCE_KM)
        duration_min = max(1, round(route.duration_seconds / 60))
        return RouteResult(
            distance_km=distance_km,
            duration_min=duration_min,
            geometry=route.geometry,
            is_estimate=False,
        )

    def estimate(self, query: RouteQuery, error_class: ErrorClass | None = None) -> RouteResult:
        """Straight-line estimate used when the provider cannot answer."""
        origin, destination = query.origin, query.destination
        distance = haversine_distance_km(origin.lat, origin.lon, destination.lat, destination.lon)
        speed = self.fallback_speeds[query.profile]
        return RouteResult(
            distance_km=max(round(distance, 3), MIN_DISTANCE_KM),
            duration_min=max(1, round(distance / speed * 60)),
            geometry=(origin.as_tuple(), destination.as_tuple()),
            is_estimate=True,
            error_class=error_class,
        )

    def stats(self) -> dict[str, Any]:
        stats = self.cache.get_cache_stats()
        stats["provider_calls"] = self.provider_calls
        return stats
