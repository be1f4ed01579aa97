"""FastAPI application factory for the booking API."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ridebooking import __version__
from ridebooking.api.models.errors import ErrorResponse
from ridebooking.api.routes import health, rides
from ridebooking.booking.service import BookingService
from ridebooking.core.exceptions import (
    BookingError,
    FatalError,
    NotFoundError,
    ResolutionCancelled,
    RouteNotFound,
    ServiceAreaRestricted,
    StateError,
    ValidationError,
)
from ridebooking.rides.service import RideService
from ridebooking.routing.cache import CacheSweeper
from ridebooking.routing.resolver import RouteResolver

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins.
STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (ValidationError, 400),
    (ServiceAreaRestricted, 422),
    (RouteNotFound, 404),
    (NotFoundError, 404),
    (StateError, 409),
    (ResolutionCancelled, 503),
    (FatalError, 500),
)


def status_for(error: BookingError) -> int:
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return 500


async def booking_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, BookingError)
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({code}): {exc}")
    body = ErrorResponse(error=type(exc).__name__, message=exc.message, details=exc.details)
    return JSONResponse(status_code=code, content=jsonable_encoder(body.model_dump()))


def _without_context(error: Any) -> dict[str, Any]:
    return {key: value for key, value in dict(error).items() if key != "ctx"}


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    body = ErrorResponse(
        error="ValidationError",
        message="Validation failed",
        details={"errors": [_without_context(err) for err in exc.errors()]},
    )
    return JSONResponse(status_code=400, content=jsonable_encoder(body.model_dump()))


def create_app(
    booking_service: BookingService,
    ride_service: RideService,
    resolver: RouteResolver,
    sweeper: CacheSweeper | None = None,
    currency_decimals: int = 0,
) -> FastAPI:
    """Create FastAPI application with injected dependencies.

    Args:
        booking_service: quoting and booking entry point
        ride_service: ride reads and lifecycle mutations
        resolver: route resolver, exposed for routing statistics
        sweeper: route cache sweeper started and stopped with the app (optional)
        currency_decimals: decimals used for fare display strings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        """Manage application startup and shutdown."""
        if sweeper is not None:
            await sweeper.start()
        yield
        if sweeper is not None:
            await sweeper.stop()

    app = FastAPI(
        title="Ride Booking API",
        version=__version__,
        description="Quote, book and track rides",
        lifespan=lifespan,
    )

    # Set core dependencies immediately (not in lifespan) so they're available for testing
    app.state.booking_service = booking_service
    app.state.ride_service = ride_service
    app.state.resolver = resolver
    app.state.sweeper = sweeper
    app.state.currency_decimals = currency_decimals

    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(rides.router, prefix="/rides", tags=["rides"])
    app.include_router(health.router, tags=["health"])

    return app
