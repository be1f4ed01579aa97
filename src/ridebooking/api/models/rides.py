"""Request and response models for the rides API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ridebooking.pricing.fare import FareBreakdown, format_pkr
from ridebooking.rides.models import (
    Location,
    PaymentMethod,
    Ride,
    RideStatus,
    VehicleSnapshot,
    VehicleType,
)
from ridebooking.routing.models import RouteProfile, RouteResult


class PointBody(BaseModel):
    lat: float
    lon: float


class QuoteRequest(BaseModel):
    pickup: PointBody
    drop: PointBody
    profile: RouteProfile = RouteProfile.DRIVING


class QuoteResponse(BaseModel):
    route: RouteResult
    fares: dict[str, FareBreakdown]
    display: dict[str, str] = Field(default_factory=dict)


class BookRideRequest(BaseModel):
    passenger_id: str = Field(min_length=1)
    pickup: Location
    drop: Location
    vehicle_type: VehicleType = VehicleType.BIKE
    payment_method: PaymentMethod


class AcceptRideRequest(BaseModel):
    driver_id: str = Field(min_length=1)
    vehicle: VehicleSnapshot | None = None


class CancelRideRequest(BaseModel):
    reason: str | None = None


class RateRideRequest(BaseModel):
    by: Literal["passenger", "driver"]
    rating: int


class RideResponse(BaseModel):
    id: str
    passenger_id: str
    driver_id: str | None
    vehicle: VehicleSnapshot | None
    vehicle_type: VehicleType
    pickup: Location
    drop: Location
    fare: float
    fare_display: str
    distance_km: float
    duration_min: int
    payment_method: PaymentMethod
    status: RideStatus
    progress_percentage: int
    started_at: datetime | None
    completed_at: datetime | None
    cancellation_reason: str | None
    passenger_rating: int | None
    driver_rating: int | None
    version: int
    created_at: datetime
    updated_at: datetime


class RideListResponse(BaseModel):
    rides: list[RideResponse]
    count: int


def to_ride_response(ride: Ride, currency_decimals: int = 0) -> RideResponse:
    return RideResponse(
        **ride.model_dump(),
        fare_display=format_pkr(ride.fare, currency_decimals),
        progress_percentage=ride.progress_percentage,
    )
