"""Quote and book rides: resolve the route, price it, create the ride."""

import asyncio
import logging
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from ridebooking.core.exceptions import InvalidRideData
from ridebooking.geo.coordinates import Coordinate
from ridebooking.pricing.fare import FareBreakdown, FareCalculator
from ridebooking.pricing.vehicles import VehicleProfile
from ridebooking.rides.models import Location, PaymentMethod, Ride, VehicleType
from ridebooking.rides.service import RideService
from ridebooking.routing.models import RouteProfile, RouteQuery, RouteResult
from ridebooking.routing.resolver import CancellationToken, RouteResolver

logger = logging.getLogger(__name__)


class Quote(BaseModel):
    """A resolved route with a fare for every vehicle class."""

    model_config = ConfigDict(frozen=True)

    route: RouteResult
    fares: dict[str, FareBreakdown]


class BookingService:
    def __init__(
        self,
        resolver: RouteResolver,
        fare_calculator: FareCalculator,
        ride_service: RideService,
        vehicle_profiles: Mapping[str, VehicleProfile],
    ):
        self.resolver = resolver
        self.fare_calculator = fare_calculator
        self.ride_service = ride_service
        self.vehicle_profiles = dict(vehicle_profiles)

    async def quote(
        self,
        pickup: Coordinate,
        drop: Coordinate,
        profile: RouteProfile = RouteProfile.DRIVING,
        cancel: CancellationToken | None = None,
    ) -> Quote:
        route = await self.resolver.resolve(
            RouteQuery(origin=pickup, destination=drop, profile=profile),
            cancel=cancel,
        )
        fares = self.fare_calculator.quote_all(
            route.distance_km,
            route.duration_min,
            self.vehicle_profiles,
            is_estimate=route.is_estimate,
        )
        return Quote(route=route, fares=fares)

    async def book(
        self,
        passenger_id: str,
        pickup: Location,
        drop: Location,
        vehicle_id: str,
        payment_method: PaymentMethod | str,
        cancel: CancellationToken | None = None,
    ) -> Ride:
        """Book a ride with the fare, distance and duration frozen at this moment."""
        profile = self.vehicle_profiles.get(vehicle_id)
        if profile is None:
            raise InvalidRideData(
                f"Unknown vehicle type {vehicle_id!r}",
                {"vehicle_id": vehicle_id, "available": sorted(self.vehicle_profiles)},
            )

        route = await self.resolver.resolve(
            RouteQuery(origin=pickup.coordinates, destination=drop.coordinates),
            cancel=cancel,
        )
        fare = self.fare_calculator.quote(
            route.distance_km,
            route.duration_min,
            profile,
            is_estimate=route.is_estimate,
        )
        if route.is_estimate:
            logger.warning(
                f"Booking for passenger {passenger_id} priced from an estimated route",
                extra={"passenger_id": passenger_id},
            )

        # Ride creation does blocking SQLite I/O; keep it off the event loop
        return await asyncio.to_thread(
            self.ride_service.create_ride,
            passenger_id=passenger_id,
            pickup=pickup,
            drop=drop,
            fare=fare.total,
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            payment_method=payment_method,
            vehicle_type=_vehicle_type_for(profile),
        )


def _vehicle_type_for(profile: VehicleProfile) -> VehicleType:
    try:
        return VehicleType(profile.id)
    except ValueError as e:
        raise InvalidRideData(
            f"Vehicle profile {profile.id!r} has no matching vehicle type",
            {"vehicle_id": profile.id},
        ) from e
