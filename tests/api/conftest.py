import pytest
from fastapi.testclient import TestClient

from ridebooking.api.app import create_app
from ridebooking.booking.service import BookingService
from ridebooking.pricing.fare import FareCalculator
from ridebooking.pricing.vehicles import default_vehicle_profiles
from ridebooking.routing.cache import CacheSweeper


@pytest.fixture
def booking_service(resolver, ride_service) -> BookingService:
    return BookingService(
        resolver=resolver,
        fare_calculator=FareCalculator(),
        ride_service=ride_service,
        vehicle_profiles=default_vehicle_profiles(),
    )


@pytest.fixture
def sweeper(route_cache) -> CacheSweeper:
    return CacheSweeper(route_cache, interval_seconds=60)


@pytest.fixture
def test_client(booking_service, ride_service, resolver, sweeper):
    app = create_app(booking_service, ride_service, resolver, sweeper=sweeper)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def location_body():
    def build(lat: float, lon: float, address: str = "Saddar, Zaibunnisa Street") -> dict:
        return {"address": address, "city": "Karachi", "coordinates": {"lat": lat, "lon": lon}}

    return build


@pytest.fixture
def book_body(location_body):
    return {
        "passenger_id": "passenger-1",
        "pickup": location_body(24.8607, 67.0011),
        "drop": location_body(24.9180, 67.0971, "Gulshan-e-Iqbal Block 13"),
        "vehicle_type": "bike",
        "payment_method": "cash",
    }


@pytest.fixture
def vehicle_body():
    return {"type": "bike", "make": "Honda", "model": "CD 70", "plate": "kha-1234", "capacity": 1}
