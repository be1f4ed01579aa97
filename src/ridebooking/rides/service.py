"""Ride operations backed by the repository with optimistic versioning.

Each mutation reads the ride, applies a RideLifecycle operation in memory and
writes it back only if the stored version is still the one that was read.
"""

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from ridebooking.core.exceptions import (
    ActiveRideConflict,
    InvalidRideData,
    RideNotFound,
    StaleRideState,
)
from ridebooking.db.repositories import RideRepository
from ridebooking.db.transaction import transaction
from ridebooking.rides.lifecycle import RatingBy, RideLifecycle
from ridebooking.rides.models import (
    Location,
    PaymentMethod,
    Ride,
    RideStatus,
    VehicleSnapshot,
    VehicleType,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]
Mutation = Callable[[Ride], Ride]


class RideService:
    def __init__(self, session_factory: SessionFactory, lifecycle: RideLifecycle | None = None):
        self.session_factory = session_factory
        self.lifecycle = lifecycle or RideLifecycle()

    def create_ride(
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
        """Create a pending ride. A passenger may hold one active ride at a time."""
        ride = self.lifecycle.create(
            passenger_id=passenger_id,
            pickup=pickup,
            drop=drop,
            fare=fare,
            distance_km=distance_km,
            duration_min=duration_min,
            payment_method=payment_method,
            vehicle_type=vehicle_type,
        )
        with self.session_factory() as session, transaction(session):
            repo = RideRepository(session)
            active = repo.find_active_by_passenger(passenger_id)
            if active is not None:
                raise ActiveRideConflict(
                    f"Passenger {passenger_id} already has an active ride",
                    {"passenger_id": passenger_id, "ride_id": active.id},
                )
            repo.add(ride)
        return ride

    def get_ride(self, ride_id: str) -> Ride:
        with self.session_factory() as session:
            ride = RideRepository(session).get(ride_id)
        if ride is None:
            raise RideNotFound(f"Ride {ride_id} not found", {"ride_id": ride_id})
        return ride

    def accept_ride(
        self,
        ride_id: str,
        driver_id: str,
        vehicle: VehicleSnapshot | dict[str, Any] | None,
        expected_status: RideStatus | str | None = RideStatus.PENDING,
    ) -> Ride:
        """Assign a driver and move the ride to accepted."""

        def accept(ride: Ride) -> Ride:
            self.lifecycle.assign_driver(ride, driver_id, vehicle)
            return self.lifecycle.transition(ride, RideStatus.ACCEPTED)

        def ensure_driver_free(repo: RideRepository) -> None:
            active = repo.find_active_by_driver(driver_id)
            if active is not None and active.id != ride_id:
                raise ActiveRideConflict(
                    f"Driver {driver_id} already has an active ride",
                    {"driver_id": driver_id, "ride_id": active.id},
                )

        return self._mutate(ride_id, accept, expected_status, precheck=ensure_driver_free)

    def start_ride(self, ride_id: str, expected_status: RideStatus | str | None = None) -> Ride:
        return self.transition(ride_id, RideStatus.IN_PROGRESS, expected_status)

    def complete_ride(self, ride_id: str, expected_status: RideStatus | str | None = None) -> Ride:
        return self.transition(ride_id, RideStatus.COMPLETED, expected_status)

    def cancel_ride(
        self,
        ride_id: str,
        reason: str | None = None,
        expected_status: RideStatus | str | None = None,
    ) -> Ride:
        return self.transition(ride_id, RideStatus.CANCELLED, expected_status, reason=reason)

    def transition(
        self,
        ride_id: str,
        target: RideStatus | str,
        expected_status: RideStatus | str | None = None,
        reason: str | None = None,
    ) -> Ride:
        return self._mutate(
            ride_id,
            lambda ride: self.lifecycle.transition(ride, target, reason),
            expected_status,
        )

    def rate_ride(self, ride_id: str, by: RatingBy, rating: int) -> Ride:
        return self._mutate(ride_id, lambda ride: self.lifecycle.rate(ride, by, rating), None)

    def list_passenger_rides(
        self, passenger_id: str, status: RideStatus | str | None = None, limit: int = 50
    ) -> list[Ride]:
        with self.session_factory() as session:
            return RideRepository(session).list_by_passenger(passenger_id, status, limit)

    def list_driver_rides(
        self, driver_id: str, status: RideStatus | str | None = None, limit: int = 50
    ) -> list[Ride]:
        with self.session_factory() as session:
            return RideRepository(session).list_by_driver(driver_id, status, limit)

    def active_ride_for_driver(self, driver_id: str) -> Ride | None:
        with self.session_factory() as session:
            return RideRepository(session).find_active_by_driver(driver_id)

    def active_ride_for_passenger(self, passenger_id: str) -> Ride | None:
        with self.session_factory() as session:
            return RideRepository(session).find_active_by_passenger(passenger_id)

    def nearby_pending_rides(
        self,
        lat: float,
        lon: float,
        max_distance_m: float = 5000.0,
        limit: int = 50,
    ) -> list[Ride]:
        with self.session_factory() as session:
            return RideRepository(session).find_nearby_pending(lat, lon, max_distance_m, limit)

    def _mutate(
        self,
        ride_id: str,
        mutation: Mutation,
        expected_status: RideStatus | str | None,
        precheck: Callable[[RideRepository], None] | None = None,
    ) -> Ride:
        with self.session_factory() as session, transaction(session):
            repo = RideRepository(session)
            ride = repo.get(ride_id)
            if ride is None:
                raise RideNotFound(f"Ride {ride_id} not found", {"ride_id": ride_id})

            expected = _expected_status(expected_status)
            if expected is not None and ride.status != expected:
                raise StaleRideState(
                    f"Ride {ride_id} is {ride.status.value}, expected {expected.value}",
                    {"ride_id": ride_id, "status": ride.status.value},
                )
            if precheck is not None:
                precheck(repo)

            read_version = ride.version
            ride = mutation(ride)
            if not repo.save(ride, expected_version=read_version):
                logger.warning(
                    f"Ride {ride_id} changed concurrently (version {read_version})",
                    extra={"ride_id": ride_id},
                )
                raise StaleRideState(
                    f"Ride {ride_id} was modified concurrently",
                    {"ride_id": ride_id, "expected_version": read_version},
                )
        return ride


def _expected_status(value: RideStatus | str | None) -> RideStatus | None:
    if value is None:
        return None
    try:
        return RideStatus(value)
    except ValueError as e:
        raise InvalidRideData(
            f"Unknown ride status {value!r}",
            {"expected_status": str(value), "allowed": [s.value for s in RideStatus]},
        ) from e
