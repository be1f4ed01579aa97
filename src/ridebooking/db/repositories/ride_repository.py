"""Ride repository with optimistic version checks on every update."""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ridebooking.geo.coordinates import Coordinate
from ridebooking.geo.distance import bounding_deltas, haversine_distance_m
from ridebooking.rides.models import (
    ACTIVE_STATUSES,
    DRIVER_ACTIVE_STATUSES,
    Location,
    PaymentMethod,
    RideStatus,
    VehicleSnapshot,
    VehicleType,
)
from ridebooking.rides.models import Ride as RideDomain

from ..schema import Ride
from ..utils import as_naive_utc, utc_now

DEFAULT_LIST_LIMIT = 50
DEFAULT_NEARBY_RADIUS_M = 5000.0


class RideRepository:
    """Repository for ride CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, ride: RideDomain) -> None:
        """Insert a new ride row."""
        self.session.add(Ride(**self._to_row(ride)))

    def get(self, ride_id: str) -> RideDomain | None:
        """Get ride by ID, returning domain model."""
        row = self.session.get(Ride, ride_id)
        if row is None:
            return None
        return self._to_domain(row)

    def save(self, ride: RideDomain, expected_version: int) -> bool:
        """Write ride back if its stored version still equals expected_version.

        Returns False when another writer got there first. On success the
        domain object's version is bumped to match the stored row.
        """
        values = self._to_row(ride)
        values.pop("id")
        values.pop("created_at")
        values["version"] = expected_version + 1
        values["updated_at"] = as_naive_utc(ride.updated_at) or utc_now()

        stmt = (
            update(Ride)
            .where(Ride.id == ride.id, Ride.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            return False

        # Keep any identity-map copy in line with the row just written.
        cached = self.session.get(Ride, ride.id)
        if cached is not None:
            self.session.refresh(cached)
        ride.version = expected_version + 1
        return True

    def list_by_passenger(
        self,
        passenger_id: str,
        status: RideStatus | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[RideDomain]:
        """List a passenger's rides, newest first."""
        stmt = select(Ride).where(Ride.passenger_id == passenger_id)
        if status is not None:
            stmt = stmt.where(Ride.status == RideStatus(status).value)
        stmt = stmt.order_by(Ride.created_at.desc()).limit(limit)
        return [self._to_domain(r) for r in self.session.execute(stmt).scalars().all()]

    def list_by_driver(
        self,
        driver_id: str,
        status: RideStatus | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[RideDomain]:
        """List a driver's rides, newest first."""
        stmt = select(Ride).where(Ride.driver_id == driver_id)
        if status is not None:
            stmt = stmt.where(Ride.status == RideStatus(status).value)
        stmt = stmt.order_by(Ride.created_at.desc()).limit(limit)
        return [self._to_domain(r) for r in self.session.execute(stmt).scalars().all()]

    def find_active_by_passenger(self, passenger_id: str) -> RideDomain | None:
        stmt = (
            select(Ride)
            .where(
                Ride.passenger_id == passenger_id,
                Ride.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            .order_by(Ride.created_at.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalars().first()
        return self._to_domain(row) if row is not None else None

    def find_active_by_driver(self, driver_id: str) -> RideDomain | None:
        stmt = (
            select(Ride)
            .where(
                Ride.driver_id == driver_id,
                Ride.status.in_([s.value for s in DRIVER_ACTIVE_STATUSES]),
            )
            .order_by(Ride.created_at.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalars().first()
        return self._to_domain(row) if row is not None else None

    def find_nearby_pending(
        self,
        lat: float,
        lon: float,
        max_distance_m: float = DEFAULT_NEARBY_RADIUS_M,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[RideDomain]:
        """Pending rides whose pickup lies within max_distance_m, nearest first.

        A bounding box narrows candidates in SQL; the exact great-circle
        distance is checked in Python.
        """
        dlat, dlon = bounding_deltas(lat, max_distance_m)
        stmt = select(Ride).where(
            Ride.status == RideStatus.PENDING.value,
            Ride.pickup_lat.between(lat - dlat, lat + dlat),
            Ride.pickup_lon.between(lon - dlon, lon + dlon),
        )
        candidates: list[tuple[float, Ride]] = []
        for row in self.session.execute(stmt).scalars().all():
            distance = haversine_distance_m(lat, lon, row.pickup_lat, row.pickup_lon)
            if distance <= max_distance_m:
                candidates.append((distance, row))
        candidates.sort(key=lambda pair: pair[0])
        return [self._to_domain(row) for _, row in candidates[:limit]]

    def _to_row(self, ride: RideDomain) -> dict:
        vehicle = ride.vehicle
        return {
            "id": ride.id,
            "passenger_id": ride.passenger_id,
            "driver_id": ride.driver_id,
            "vehicle_type": ride.vehicle_type.value,
            "vehicle_kind": vehicle.type.value if vehicle and vehicle.type else None,
            "vehicle_make": vehicle.make if vehicle else None,
            "vehicle_model": vehicle.model if vehicle else None,
            "vehicle_plate": vehicle.plate if vehicle else None,
            "vehicle_capacity": vehicle.capacity if vehicle else None,
            "pickup_address": ride.pickup.address,
            "pickup_city": ride.pickup.city,
            "pickup_lat": ride.pickup.coordinates.lat,
            "pickup_lon": ride.pickup.coordinates.lon,
            "drop_address": ride.drop.address,
            "drop_city": ride.drop.city,
            "drop_lat": ride.drop.coordinates.lat,
            "drop_lon": ride.drop.coordinates.lon,
            "fare": ride.fare,
            "distance_km": ride.distance_km,
            "duration_min": ride.duration_min,
            "payment_method": ride.payment_method.value,
            "status": ride.status.value,
            "started_at": as_naive_utc(ride.started_at),
            "completed_at": as_naive_utc(ride.completed_at),
            "cancellation_reason": ride.cancellation_reason,
            "passenger_rating": ride.passenger_rating,
            "driver_rating": ride.driver_rating,
            "version": ride.version,
            "created_at": as_naive_utc(ride.created_at),
            "updated_at": as_naive_utc(ride.updated_at),
        }

    def _to_domain(self, row: Ride) -> RideDomain:
        """Convert ORM model to domain model."""
        vehicle = None
        if row.driver_id is not None and row.vehicle_kind is not None:
            vehicle = VehicleSnapshot(
                type=VehicleType(row.vehicle_kind),
                make=row.vehicle_make,
                model=row.vehicle_model,
                plate=row.vehicle_plate,
                capacity=row.vehicle_capacity,
            )
        return RideDomain(
            id=row.id,
            passenger_id=row.passenger_id,
            driver_id=row.driver_id,
            vehicle=vehicle,
            vehicle_type=VehicleType(row.vehicle_type),
            pickup=Location(
                address=row.pickup_address,
                city=row.pickup_city,
                coordinates=Coordinate(lat=row.pickup_lat, lon=row.pickup_lon),
            ),
            drop=Location(
                address=row.drop_address,
                city=row.drop_city,
                coordinates=Coordinate(lat=row.drop_lat, lon=row.drop_lon),
            ),
            fare=row.fare,
            distance_km=row.distance_km,
            duration_min=row.duration_min,
            payment_method=PaymentMethod(row.payment_method),
            status=RideStatus(row.status),
            started_at=row.started_at,
            completed_at=row.completed_at,
            cancellation_reason=row.cancellation_reason,
            passenger_rating=row.passenger_rating,
            driver_rating=row.driver_rating,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
