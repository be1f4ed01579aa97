import asyncio

import pytest

from ridebooking.core.retry import RetryPolicy
from ridebooking.db.database import init_database
from ridebooking.geo.validator import BoundingBox, GeoValidator
from ridebooking.rides.lifecycle import RideLifecycle
from ridebooking.rides.service import RideService
from ridebooking.routing.cache import RouteCache
from ridebooking.routing.models import ProviderRoute
from ridebooking.routing.resolver import RouteResolver


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep; records delays and yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeProvider:
    """Directions provider returning queued outcomes.

    Each call pops the next outcome; exceptions are raised, routes are
    returned. When the queue is empty the default route is returned. If
    ``gate`` is set, every call waits on it first.
    """

    def __init__(self, default: ProviderRoute | None = None):
        self.default = default or ProviderRoute(
            distance_meters=12_345.0,
            duration_seconds=1_500.0,
            geometry=((24.8607, 67.0011), (24.9180, 67.0971)),
        )
        self.outcomes: list[ProviderRoute | Exception] = []
        self.calls = 0
        self.started = asyncio.Event()
        self.cancelled = 0
        self.gate: asyncio.Event | None = None

    async def get_route(self, origin, destination, profile):
        self.calls += 1
        self.started.set()
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def service_area() -> BoundingBox:
    return BoundingBox(north=37.1, south=23.6, east=77.8, west=60.9)


@pytest.fixture
def geo_validator(service_area: BoundingBox) -> GeoValidator:
    return GeoValidator(service_area)


@pytest.fixture
def route_cache(clock: FakeClock) -> RouteCache:
    return RouteCache(ttl_seconds=300, max_size=50, clock=clock)


@pytest.fixture
def resolver(
    provider: FakeProvider,
    route_cache: RouteCache,
    geo_validator: GeoValidator,
    sleep_recorder: SleepRecorder,
) -> RouteResolver:
    return RouteResolver(
        provider=provider,
        cache=route_cache,
        validator=geo_validator,
        retry_policy=RetryPolicy(max_attempts=3, delays=(1.0, 2.0, 4.0)),
        timeout_seconds=5.0,
        sleep=sleep_recorder,
    )


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    return init_database(":memory:")


@pytest.fixture
def temp_sqlite_db(tmp_path):
    return tmp_path / "rides.db"


@pytest.fixture
def lifecycle() -> RideLifecycle:
    return RideLifecycle()


@pytest.fixture
def ride_service(session_factory, lifecycle: RideLifecycle) -> RideService:
    return RideService(session_factory, lifecycle)
