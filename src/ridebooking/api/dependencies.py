"""FastAPI dependency injection providers."""

from typing import Annotated, Any

from fastapi import Depends, Request

from ridebooking.booking.service import BookingService
from ridebooking.rides.service import RideService
from ridebooking.routing.resolver import RouteResolver


def get_booking_service(request: Request) -> BookingService:
    """Retrieve BookingService from app state."""
    return request.app.state.booking_service


def get_ride_service(request: Request) -> RideService:
    """Retrieve RideService from app state."""
    return request.app.state.ride_service


def get_resolver(request: Request) -> RouteResolver:
    return request.app.state.resolver


def get_sweeper(request: Request) -> Any:
    return request.app.state.sweeper


def get_currency_decimals(request: Request) -> int:
    return request.app.state.currency_decimals


BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
RideServiceDep = Annotated[RideService, Depends(get_ride_service)]
ResolverDep = Annotated[RouteResolver, Depends(get_resolver)]
SweeperDep = Annotated[Any, Depends(get_sweeper)]
CurrencyDecimalsDep = Annotated[int, Depends(get_currency_decimals)]
