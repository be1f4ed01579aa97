"""Ride lifecycle: creation, driver assignment, status transitions, ratings.

Every status change goes through ``transition``, which checks the explicit
VALID_TRANSITIONS table with the previous and next status side by side.
"""

import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError

from ridebooking.core.exceptions import (
    InvalidRideData,
    InvalidStatusTransition,
    InvariantViolation,
    MissingVehicleInfo,
    RatingNotAllowed,
)
from ridebooking.db.utils import utc_now
from ridebooking.rides.models import (
    DEFAULT_CANCELLATION_REASON,
    MAX_CANCELLATION_REASON_LENGTH,
    Location,
    PaymentMethod,
    Ride,
    RideStatus,
    VehicleSnapshot,
    VehicleType,
    can_transition,
)

logger = logging.getLogger(__name__)

MIN_DISTANCE_KM = 0.1
MIN_DURATION_MIN = 1

RatingBy = Literal["passenger", "driver"]


def _new_ride_id() -> str:
    return uuid.uuid4().hex


class RideLifecycle:
    """Validates and applies ride mutations. Holds no per-ride state."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_ride_id,
    ):
        self.clock = clock
        self.id_factory = id_factory

    def create(
        self,
        passenger_id: str,
        pickup: Location,
        drop: Location,
        fare: float,
        distance_km: float,
        duration_min: int,
        payment_method: PaymentMethod | str,
        vehicle_type: VehicleType | str = VehicleType.BIKE,
    ) -> Ride:
        """Create a pending ride with frozen fare, distance and duration."""
        errors: list[dict[str, Any]] = []

        if not passenger_id:
            errors.append({"field": "passenger_id", "message": "Passenger id is required"})
        if not _is_number(fare) or not math.isfinite(fare) or fare < 0:
            errors.append({"field": "fare", "message": "Fare must be a non-negative number"})
        if (
            not _is_number(distance_km)
            or not math.isfinite(distance_km)
            or distance_km <= MIN_DISTANCE_KM
        ):
            errors.append(
                {"field": "distance_km", "message": f"Distance must exceed {MIN_DISTANCE_KM} km"}
            )
        if not _is_integral(duration_min) or duration_min < MIN_DURATION_MIN:
            errors.append(
                {"field": "duration_min", "message": "Duration must be a positive integer"}
            )
        try:
            payment = PaymentMethod(payment_method)
        except ValueError:
            payment = None
            errors.append(
                {
                    "field": "payment_method",
                    "message": "Payment method must be one of: cash, wallet, card",
                }
            )
        try:
            vehicle = VehicleType(vehicle_type)
        except ValueError:
            vehicle = None
            errors.append({"field": "vehicle_type", "message": f"Unknown vehicle type {vehicle_type}"})

        if errors:
            raise InvalidRideData("Validation failed", {"errors": errors})

        now = self.clock()
        try:
            ride = Ride(
                id=self.id_factory(),
                passenger_id=passenger_id,
                pickup=pickup,
                drop=drop,
                fare=fare,
                distance_km=distance_km,
                duration_min=int(duration_min),
                payment_method=payment,
                vehicle_type=vehicle,
                status=RideStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as e:
            errors = e.errors(include_url=False, include_context=False)
            raise InvalidRideData("Validation failed", {"errors": errors}) from e

        logger.info(
            f"Ride {ride.id} created for passenger {passenger_id}",
            extra={"ride_id": ride.id, "passenger_id": passenger_id},
        )
        return ride

    def assign_driver(
        self,
        ride: Ride,
        driver_id: str,
        vehicle: VehicleSnapshot | dict[str, Any] | None,
    ) -> Ride:
        """Attach driver and vehicle snapshot. The vehicle type is mandatory."""
        if isinstance(vehicle, dict):
            try:
                vehicle = VehicleSnapshot(**vehicle)
            except PydanticValidationError as e:
                errors = e.errors(include_url=False, include_context=False)
                raise InvalidRideData("Invalid vehicle information", {"errors": errors}) from e
        if vehicle is None or vehicle.type is None:
            raise MissingVehicleInfo(
                "Vehicle information must be provided when driver is assigned",
                {"ride_id": ride.id, "driver_id": driver_id},
            )
        if not driver_id:
            raise InvalidRideData("Driver id is required", {"ride_id": ride.id})

        ride.driver_id = driver_id
        ride.vehicle = vehicle
        ride.updated_at = self.clock()
        return ride

    def transition(
        self,
        ride: Ride,
        target: RideStatus | str,
        reason: str | None = None,
    ) -> Ride:
        """Move ride to target status, applying the status's side effects."""
        try:
            target = RideStatus(target)
        except ValueError as e:
            raise InvalidStatusTransition(ride.status.value, str(target)) from e

        previous = ride.status
        if not can_transition(previous, target):
            raise InvalidStatusTransition(previous.value, target.value)

        if reason is not None and target != RideStatus.CANCELLED:
            raise InvalidRideData("Cancellation reason can only be set when ride is cancelled")

        now = self.clock()

        if target == RideStatus.CANCELLED:
            reason = (reason or "").strip()
            if len(reason) > MAX_CANCELLATION_REASON_LENGTH:
                raise InvalidRideData(
                    f"Cancellation reason cannot exceed {MAX_CANCELLATION_REASON_LENGTH} characters"
                )
            if not reason:
                logger.warning(
                    f"Ride {ride.id} cancelled without a reason",
                    extra={"ride_id": ride.id},
                )
                reason = DEFAULT_CANCELLATION_REASON
            ride.cancellation_reason = reason

        if target == RideStatus.IN_PROGRESS and ride.started_at is None:
            ride.started_at = now

        if target == RideStatus.COMPLETED and ride.completed_at is None:
            if ride.started_at is not None and now < ride.started_at:
                raise InvariantViolation(
                    f"Ride {ride.id} would complete before it started",
                    {"started_at": ride.started_at.isoformat(), "completed_at": now.isoformat()},
                )
            ride.completed_at = now

        ride.status = target
        ride.updated_at = now

        logger.info(
            f"Ride {ride.id} transitioned {previous.value} -> {target.value}",
            extra={"ride_id": ride.id, "driver_id": ride.driver_id},
        )
        return ride

    def rate(self, ride: Ride, by: RatingBy, rating: int) -> Ride:
        """Record the passenger's or the driver's rating of a completed ride."""
        if by not in ("passenger", "driver"):
            raise InvalidRideData(f"Unknown rating source {by!r}")
        if not _is_integral(rating) or not 1 <= rating <= 5:
            raise InvalidRideData("Rating must be an integer between 1 and 5")
        if ride.status != RideStatus.COMPLETED:
            raise RatingNotAllowed(
                f"Ride {ride.id} is {ride.status.value} and cannot be rated",
                {"ride_id": ride.id, "status": ride.status.value},
            )

        if by == "passenger":
            ride.passenger_rating = int(rating)
        else:
            ride.driver_rating = int(rating)
        ride.updated_at = self.clock()
        return ride


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()
