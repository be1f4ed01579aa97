from fastapi import APIRouter, Query, status

from ridebooking.api.dependencies import BookingServiceDep, CurrencyDecimalsDep, RideServiceDep
from ridebooking.api.models.rides import (
    AcceptRideRequest,
    BookRideRequest,
    CancelRideRequest,
    QuoteRequest,
    QuoteResponse,
    RateRideRequest,
    RideListResponse,
    RideResponse,
    to_ride_response,
)
from ridebooking.booking_logging import log_context, log_ride_context
from ridebooking.geo.coordinates import Coordinate
from ridebooking.pricing.fare import format_pkr
from ridebooking.rides.models import Ride, RideStatus

router = APIRouter()


def _list_response(rides: list[Ride], decimals: int) -> RideListResponse:
    return RideListResponse(
        rides=[to_ride_response(r, decimals) for r in rides],
        count=len(rides),
    )


@router.post("/quote", response_model=QuoteResponse)
async def quote_ride(
    body: QuoteRequest,
    booking: BookingServiceDep,
    decimals: CurrencyDecimalsDep,
) -> QuoteResponse:
    """Resolve the route and price it for every vehicle class."""
    pickup = Coordinate.from_values(body.pickup.lat, body.pickup.lon)
    drop = Coordinate.from_values(body.drop.lat, body.drop.lon)
    quote = await booking.quote(pickup, drop, body.profile)
    return QuoteResponse(
        route=quote.route,
        fares=quote.fares,
        display={vid: format_pkr(f.total, decimals) for vid, f in quote.fares.items()},
    )


@router.post("", response_model=RideResponse, status_code=status.HTTP_201_CREATED)
async def book_ride(
    body: BookRideRequest,
    booking: BookingServiceDep,
    decimals: CurrencyDecimalsDep,
) -> RideResponse:
    with log_context(passenger_id=body.passenger_id):
        ride = await booking.book(
            passenger_id=body.passenger_id,
            pickup=body.pickup,
            drop=body.drop,
            vehicle_id=body.vehicle_type.value,
            payment_method=body.payment_method,
        )
    return to_ride_response(ride, decimals)


@router.get("/nearby", response_model=RideListResponse)
def nearby_rides(
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
    lat: float = Query(),
    lon: float = Query(),
    max_distance_m: float = Query(default=5000.0, gt=0, le=50_000),
    limit: int = Query(default=50, ge=1, le=200),
) -> RideListResponse:
    """Pending rides near a driver, nearest first."""
    point = Coordinate.from_values(lat, lon)
    found = rides.nearby_pending_rides(point.lat, point.lon, max_distance_m, limit)
    return _list_response(found, decimals)


@router.get("/passenger/{passenger_id}", response_model=RideListResponse)
def passenger_rides(
    passenger_id: str,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
    ride_status: RideStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
) -> RideListResponse:
    return _list_response(rides.list_passenger_rides(passenger_id, ride_status, limit), decimals)


@router.get("/driver/{driver_id}", response_model=RideListResponse)
def driver_rides(
    driver_id: str,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
    ride_status: RideStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
) -> RideListResponse:
    return _list_response(rides.list_driver_rides(driver_id, ride_status, limit), decimals)


@router.get("/passenger/{passenger_id}/active", response_model=RideResponse | None)
def passenger_active_ride(
    passenger_id: str,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
) -> RideResponse | None:
    ride = rides.active_ride_for_passenger(passenger_id)
    return to_ride_response(ride, decimals) if ride else None


@router.get("/driver/{driver_id}/active", response_model=RideResponse | None)
def driver_active_ride(
    driver_id: str,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
) -> RideResponse | None:
    ride = rides.active_ride_for_driver(driver_id)
    return to_ride_response(ride, decimals) if ride else None


@router.get("/{ride_id}", response_model=RideResponse)
def get_ride(ride_id: str, rides: RideServiceDep, decimals: CurrencyDecimalsDep) -> RideResponse:
    return to_ride_response(rides.get_ride(ride_id), decimals)


@router.put("/{ride_id}/accept", response_model=RideResponse)
def accept_ride(
    ride_id: str,
    body: AcceptRideRequest,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
) -> RideResponse:
    with log_ride_context(ride_id, driver_id=body.driver_id):
        ride = rides.accept_ride(ride_id, body.driver_id, body.vehicle)
    return to_ride_response(ride, decimals)


@router.put("/{ride_id}/start", response_model=RideResponse)
def start_ride(ride_id: str, rides: RideServiceDep, decimals: CurrencyDecimalsDep) -> RideResponse:
    with log_ride_context(ride_id):
        ride = rides.start_ride(ride_id)
    return to_ride_response(ride, decimals)


@router.put("/{ride_id}/complete", response_model=RideResponse)
def complete_ride(
    ride_id: str, rides: RideServiceDep, decimals: CurrencyDecimalsDep
) -> RideResponse:
    with log_ride_context(ride_id):
        ride = rides.complete_ride(ride_id)
    return to_ride_response(ride, decimals)


@router.put("/{ride_id}/cancel", response_model=RideResponse)
def cancel_ride(
    ride_id: str,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
    body: CancelRideRequest | None = None,
) -> RideResponse:
    with log_ride_context(ride_id):
        ride = rides.cancel_ride(ride_id, reason=body.reason if body else None)
    return to_ride_response(ride, decimals)


@router.put("/{ride_id}/rate", response_model=RideResponse)
def rate_ride(
    ride_id: str,
    body: RateRideRequest,
    rides: RideServiceDep,
    decimals: CurrencyDecimalsDep,
) -> RideResponse:
    with log_ride_context(ride_id):
        ride = rides.rate_ride(ride_id, body.by, body.rating)
    return to_ride_response(ride, decimals)
