"""Ride entity, its status enum and the transition table."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ridebooking.geo.coordinates import Coordinate

MAX_CANCELLATION_REASON_LENGTH = 500
DEFAULT_CANCELLATION_REASON = "No reason provided"


class RideStatus(str, Enum):
    """Ride lifecycle states."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    WALLET = "wallet"
    CARD = "card"


class VehicleType(str, Enum):
    BIKE = "bike"
    CAR = "car"
    RICKSHAW = "rickshaw"


VALID_TRANSITIONS: dict[RideStatus, frozenset[RideStatus]] = {
    RideStatus.PENDING: frozenset({RideStatus.ACCEPTED, RideStatus.CANCELLED}),
    RideStatus.ACCEPTED: frozenset({RideStatus.IN_PROGRESS, RideStatus.CANCELLED}),
    RideStatus.IN_PROGRESS: frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED}),
    RideStatus.COMPLETED: frozenset(),
    RideStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({RideStatus.PENDING, RideStatus.ACCEPTED, RideStatus.IN_PROGRESS})
DRIVER_ACTIVE_STATUSES = frozenset({RideStatus.ACCEPTED, RideStatus.IN_PROGRESS})

_PROGRESS = {
    RideStatus.PENDING: 0,
    RideStatus.ACCEPTED: 25,
    RideStatus.IN_PROGRESS: 50,
    RideStatus.COMPLETED: 100,
    RideStatus.CANCELLED: 0,
}


def can_transition(current: RideStatus, target: RideStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


class Location(BaseModel):
    """Pickup or drop point, frozen once embedded in a ride."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(min_length=5)
    city: str = Field(min_length=2)
    coordinates: Coordinate

    @field_validator("address", "city", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class VehicleSnapshot(BaseModel):
    """Driver's vehicle, copied onto the ride when the driver is assigned."""

    model_config = ConfigDict(frozen=True)

    type: VehicleType | None = None
    make: str | None = None
    model: str | None = None
    plate: str | None = None
    capacity: int | None = Field(default=None, ge=1)

    @field_validator("plate")
    @classmethod
    def upper_plate(cls, v: str | None) -> str | None:
        return v.upper() if v else v


class Ride(BaseModel):
    """A booked ride. Mutated only through RideLifecycle."""

    id: str
    passenger_id: str
    driver_id: str | None = None
    vehicle: VehicleSnapshot | None = None
    vehicle_type: VehicleType = VehicleType.BIKE
    pickup: Location
    drop: Location
    fare: float = Field(ge=0)
    distance_km: float = Field(gt=0.1)
    duration_min: int = Field(ge=1)
    payment_method: PaymentMethod
    status: RideStatus = RideStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancellation_reason: str | None = Field(default=None, max_length=MAX_CANCELLATION_REASON_LENGTH)
    passenger_rating: int | None = Field(default=None, ge=1, le=5)
    driver_rating: int | None = Field(default=None, ge=1, le=5)
    version: int = 0
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def progress_percentage(self) -> int:
        return _PROGRESS[self.status]

    def ride_duration_minutes(self) -> int | None:
        """Actual minutes between start and completion, if both happened."""
        if self.started_at and self.completed_at:
            return round((self.completed_at - self.started_at).total_seconds() / 60)
        return None
