"""Ride booking service entry point.

Wires settings, logging, persistence, routing and pricing together and
serves the booking API with uvicorn.
"""

import logging

import uvicorn
from fastapi import FastAPI

from ridebooking.api.app import create_app
from ridebooking.booking.service import BookingService
from ridebooking.booking_logging import setup_logging
from ridebooking.db.database import init_database
from ridebooking.pricing.fare import FareCalculator
from ridebooking.rides.lifecycle import RideLifecycle
from ridebooking.rides.service import RideService
from ridebooking.routing.cache import CacheSweeper, RouteCache
from ridebooking.routing.locationiq_client import LocationIQClient
from ridebooking.routing.resolver import RouteResolver
from ridebooking.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_app(settings: Settings) -> FastAPI:
    """Construct every service from settings and return the API app."""
    session_factory = init_database(settings.database.path)
    logger.info(f"Ride database ready at {settings.database.path}")

    provider = LocationIQClient(
        settings.routing.base_url,
        settings.routing.api_key,
        timeout=settings.routing.timeout_seconds,
    )
    if not settings.routing.api_key:
        logger.warning("ROUTING_API_KEY is not set, every route will be a straight-line estimate")
    logger.info(f"Directions provider configured: {settings.routing.base_url}")

    cache = RouteCache(
        ttl_seconds=settings.routing.cache_ttl_seconds,
        max_size=settings.routing.cache_max_size,
    )
    resolver = RouteResolver.from_settings(settings, provider, cache=cache)
    sweeper = CacheSweeper(cache, interval_seconds=settings.routing.sweep_interval_seconds)

    ride_service = RideService(session_factory, RideLifecycle())
    booking_service = BookingService(
        resolver=resolver,
        fare_calculator=FareCalculator(settings.pricing.currency_decimals),
        ride_service=ride_service,
        vehicle_profiles=settings.pricing.vehicle_profiles,
    )

    return create_app(
        booking_service=booking_service,
        ride_service=ride_service,
        resolver=resolver,
        sweeper=sweeper,
        currency_decimals=settings.pricing.currency_decimals,
    )


def main() -> None:
    settings = get_settings()
    setup_logging(
        level=settings.logging.level,
        json_output=settings.logging.format == "json",
        environment=settings.logging.environment,
    )

    logger.info("Starting ride booking service...")
    app = build_app(settings)
    uvicorn.run(app, host=settings.api.host, port=settings.api.port, log_config=None)


if __name__ == "__main__":
    main()
