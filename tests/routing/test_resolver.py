import asyncio
import math

import pytest

from ridebooking.core.exceptions import (
    InvalidCoordinates,
    MalformedProviderResponse,
    NetworkError,
    ProviderAuthError,
    ProviderRateLimited,
    ProviderUnavailable,
    ResolutionCancelled,
    RouteNotFound,
    ServiceAreaRestricted,
)
from ridebooking.core.retry import RetryPolicy
from ridebooking.geo.coordinates import Coordinate
from ridebooking.geo.distance import haversine_distance_km
from ridebooking.routing.models import ErrorClass, ProviderRoute, RouteProfile, RouteQuery
from ridebooking.routing.resolver import CancellationToken, RouteResolver
from ridebooking.settings import Settings
from tests.factories import DROP, OUTSIDE, PICKUP


@pytest.fixture
def query() -> RouteQuery:
    return RouteQuery(origin=PICKUP, destination=DROP)


async def _spin(times: int = 10) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.mark.unit
class TestResolve:
    async def test_resolves_via_provider(self, resolver, provider, query):
        result = await resolver.resolve(query)

        assert provider.calls == 1
        assert result.distance_km == pytest.approx(12.345, abs=0.01)
        assert result.duration_min == 25
        assert result.is_estimate is False
        assert result.cached is False
        assert result.geometry

    async def test_short_route_clamped_to_minimums(self, resolver, provider, query):
        provider.outcomes = [ProviderRoute(distance_meters=3.0, duration_seconds=10.0)]

        result = await resolver.resolve(query)

        assert result.distance_km == 0.01
        assert result.duration_min == 1

    async def test_second_call_served_from_cache(self, resolver, provider, query):
        await resolver.resolve(query)
        result = await resolver.resolve(query)

        assert provider.calls == 1
        assert result.cached is True

    async def test_cached_geometry_cannot_be_modified(self, resolver, query):
        first = await resolver.resolve(query)

        assert isinstance(first.geometry, tuple)
        with pytest.raises(AttributeError):
            first.geometry.append((0.0, 0.0))

        second = await resolver.resolve(query)
        assert second.cached is True
        assert second.geometry == ((24.8607, 67.0011), (24.9180, 67.0971))

    async def test_expired_entry_refetched(self, resolver, provider, query, clock):
        await resolver.resolve(query)
        clock.advance(300)

        result = await resolver.resolve(query)

        assert provider.calls == 2
        assert result.cached is False

    async def test_nearby_points_share_cache_key(self, resolver, provider):
        first = RouteQuery(origin=PICKUP, destination=DROP)
        second = RouteQuery(
            origin=Coordinate(lat=PICKUP.lat + 0.00001, lon=PICKUP.lon),
            destination=DROP,
        )

        await resolver.resolve(first)
        await resolver.resolve(second)

        assert provider.calls == 1

    async def test_profiles_cached_separately(self, resolver, provider):
        await resolver.resolve(RouteQuery(origin=PICKUP, destination=DROP))
        await resolver.resolve(
            RouteQuery(origin=PICKUP, destination=DROP, profile=RouteProfile.CYCLING)
        )

        assert provider.calls == 2

    async def test_stats(self, resolver, query):
        await resolver.resolve(query)
        await resolver.resolve(query)

        stats = resolver.stats()

        assert stats["provider_calls"] == 1
        assert stats["hits"] == 1
        assert stats["cache_size"] == 1


@pytest.mark.unit
class TestValidation:
    async def test_outside_service_area(self, resolver, provider):
        with pytest.raises(ServiceAreaRestricted):
            await resolver.resolve(RouteQuery(origin=PICKUP, destination=OUTSIDE))
        assert provider.calls == 0

    async def test_invalid_coordinates(self, resolver, provider):
        broken = Coordinate.model_construct(lat=math.nan, lon=67.0)

        with pytest.raises(InvalidCoordinates):
            await resolver.resolve(RouteQuery(origin=broken, destination=DROP))
        assert provider.calls == 0

    async def test_invalid_checked_before_service_area(self, resolver):
        broken = Coordinate.model_construct(lat=200.0, lon=67.0)

        with pytest.raises(InvalidCoordinates):
            await resolver.resolve(RouteQuery(origin=OUTSIDE, destination=broken))


@pytest.mark.unit
class TestFallback:
    async def test_retries_then_falls_back_to_haversine(
        self, resolver, provider, query, sleep_recorder
    ):
        provider.outcomes = [ProviderUnavailable("503")] * 3

        result = await resolver.resolve(query)

        expected = haversine_distance_km(PICKUP.lat, PICKUP.lon, DROP.lat, DROP.lon)
        assert provider.calls == 3
        assert sleep_recorder.delays == [1.0, 2.0]
        assert result.is_estimate is True
        assert result.error_class == ErrorClass.SERVER
        assert result.distance_km == pytest.approx(expected, abs=1e-3)
        assert result.duration_min == max(1, round(expected / 25.0 * 60))
        assert result.geometry == (PICKUP.as_tuple(), DROP.as_tuple())

    async def test_recovers_on_retry(self, resolver, provider, query):
        provider.outcomes = [NetworkError("reset")]

        result = await resolver.resolve(query)

        assert provider.calls == 2
        assert result.is_estimate is False

    async def test_auth_error_not_retried(self, resolver, provider, query, sleep_recorder):
        provider.outcomes = [ProviderAuthError("bad key")]

        result = await resolver.resolve(query)

        assert provider.calls == 1
        assert sleep_recorder.delays == []
        assert result.is_estimate is True
        assert result.error_class == ErrorClass.AUTH

    async def test_rate_limit_classified(self, resolver, provider, query):
        provider.outcomes = [ProviderRateLimited("429")] * 3

        result = await resolver.resolve(query)

        assert result.error_class == ErrorClass.RATE_LIMIT

    async def test_malformed_response_falls_back(self, resolver, provider, query):
        provider.outcomes = [MalformedProviderResponse("no routes")] * 3

        result = await resolver.resolve(query)

        assert result.is_estimate is True

    async def test_unexpected_error_falls_back(self, resolver, provider, query):
        provider.outcomes = [RuntimeError("boom")]

        result = await resolver.resolve(query)

        assert provider.calls == 1
        assert result.is_estimate is True
        assert result.error_class == ErrorClass.UNKNOWN

    async def test_estimate_is_cached(self, resolver, provider, query):
        provider.outcomes = [ProviderAuthError("bad key")]

        await resolver.resolve(query)
        result = await resolver.resolve(query)

        assert provider.calls == 1
        assert result.cached is True
        assert result.is_estimate is True

    async def test_timeout_falls_back(self, provider, route_cache, geo_validator, query):
        provider.gate = asyncio.Event()
        resolver = RouteResolver(
            provider=provider,
            cache=route_cache,
            validator=geo_validator,
            retry_policy=RetryPolicy(max_attempts=2, delays=(0.0,)),
            timeout_seconds=0.01,
        )

        result = await resolver.resolve(query)

        assert provider.calls == 2
        assert provider.cancelled == 2
        assert result.error_class == ErrorClass.TIMEOUT

    async def test_identical_endpoints(self, resolver, provider):
        provider.outcomes = [ProviderAuthError("bad key")]

        result = await resolver.resolve(RouteQuery(origin=PICKUP, destination=PICKUP))

        assert result.distance_km == 0.01
        assert result.duration_min == 1

    async def test_cycling_uses_cycling_speed(self, resolver, provider):
        provider.outcomes = [ProviderAuthError("bad key")]
        query = RouteQuery(origin=PICKUP, destination=DROP, profile=RouteProfile.CYCLING)

        result = await resolver.resolve(query)

        expected = haversine_distance_km(PICKUP.lat, PICKUP.lon, DROP.lat, DROP.lon)
        assert result.duration_min == max(1, round(expected / 15.0 * 60))


@pytest.mark.unit
class TestRouteNotFound:
    async def test_propagates(self, resolver, provider, query):
        provider.outcomes = [RouteNotFound("no route")]

        with pytest.raises(RouteNotFound):
            await resolver.resolve(query)

    async def test_not_cached(self, resolver, provider, query):
        provider.outcomes = [RouteNotFound("no route")]

        with pytest.raises(RouteNotFound):
            await resolver.resolve(query)
        result = await resolver.resolve(query)

        assert provider.calls == 2
        assert result.is_estimate is False

    async def test_not_retried(self, resolver, provider, query, sleep_recorder):
        provider.outcomes = [RouteNotFound("no route")]

        with pytest.raises(RouteNotFound):
            await resolver.resolve(query)

        assert provider.calls == 1
        assert sleep_recorder.delays == []


@pytest.mark.unit
class TestCoalescing:
    async def test_concurrent_identical_queries_share_one_call(self, resolver, provider, query):
        provider.gate = asyncio.Event()
        tasks = [asyncio.create_task(resolver.resolve(query)) for _ in range(10)]

        await provider.started.wait()
        provider.gate.set()
        results = await asyncio.gather(*tasks)

        assert provider.calls == 1
        assert len({(r.distance_km, r.duration_min) for r in results}) == 1
        assert resolver.cache.in_flight_count == 0

    async def test_failure_shared_by_all_waiters(self, resolver, provider, query):
        provider.gate = asyncio.Event()
        provider.outcomes = [RouteNotFound("no route")]
        tasks = [asyncio.create_task(resolver.resolve(query)) for _ in range(3)]

        await provider.started.wait()
        provider.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert provider.calls == 1
        assert all(isinstance(r, RouteNotFound) for r in results)

    async def test_different_keys_not_coalesced(self, resolver, provider):
        other = Coordinate(lat=24.9, lon=67.05)

        await asyncio.gather(
            resolver.resolve(RouteQuery(origin=PICKUP, destination=DROP)),
            resolver.resolve(RouteQuery(origin=PICKUP, destination=other)),
        )

        assert provider.calls == 2


@pytest.mark.unit
class TestCancellation:
    async def test_pre_cancelled_token(self, resolver, provider, query):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ResolutionCancelled):
            await resolver.resolve(query, cancel=token)
        assert provider.calls == 0

    async def test_token_cancel_leaves_other_waiters_intact(self, resolver, provider, query):
        provider.gate = asyncio.Event()
        token = CancellationToken()
        cancelled = asyncio.create_task(resolver.resolve(query, cancel=token))
        survivor = asyncio.create_task(resolver.resolve(query))

        await provider.started.wait()
        token.cancel()
        with pytest.raises(ResolutionCancelled):
            await cancelled

        provider.gate.set()
        result = await survivor

        assert provider.calls == 1
        assert provider.cancelled == 0
        assert result.is_estimate is False

    async def test_task_cancel_leaves_other_waiters_intact(self, resolver, provider, query):
        provider.gate = asyncio.Event()
        cancelled = asyncio.create_task(resolver.resolve(query))
        survivor = asyncio.create_task(resolver.resolve(query))

        await provider.started.wait()
        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled

        provider.gate.set()
        result = await survivor

        assert provider.calls == 1
        assert result.distance_km > 0

    async def test_last_waiter_leaving_cancels_request(self, resolver, provider, query):
        provider.gate = asyncio.Event()
        token = CancellationToken()
        task = asyncio.create_task(resolver.resolve(query, cancel=token))

        await provider.started.wait()
        token.cancel()
        with pytest.raises(ResolutionCancelled):
            await task
        await _spin()

        assert provider.cancelled == 1
        assert resolver.cache.in_flight_count == 0
        assert len(resolver.cache) == 0

    async def test_cancelled_outcome_never_cached(self, resolver, provider, query):
        provider.gate = asyncio.Event()
        token = CancellationToken()
        task = asyncio.create_task(resolver.resolve(query, cancel=token))
        await provider.started.wait()
        token.cancel()
        with pytest.raises(ResolutionCancelled):
            await task
        await _spin()

        provider.gate = None
        result = await resolver.resolve(query)

        assert provider.calls == 2
        assert result.cached is False
        assert result.is_estimate is False

    async def test_token_after_completion_has_no_effect(self, resolver, query):
        token = CancellationToken()

        result = await resolver.resolve(query, cancel=token)
        token.cancel()

        assert result.distance_km > 0


@pytest.mark.unit
class TestFromSettings:
    def test_builds_from_settings(self, provider):
        settings = Settings()

        resolver = RouteResolver.from_settings(settings, provider)

        assert resolver.timeout_seconds == settings.routing.timeout_seconds
        assert resolver.retry_policy.max_attempts == settings.routing.max_attempts
        assert resolver.cache.ttl_seconds == settings.routing.cache_ttl_seconds
        assert resolver.fallback_speeds[RouteProfile.WALKING] == settings.routing.walking_speed_kmh
