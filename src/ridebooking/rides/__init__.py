"""Ride entity and lifecycle state machine.

``RideService`` lives in ``ridebooking.rides.service`` and is imported from
there, since it depends on the persistence layer.
"""

from .lifecycle import RideLifecycle
from .models import (
    VALID_TRANSITIONS,
    Location,
    PaymentMethod,
    Ride,
    RideStatus,
    VehicleSnapshot,
    VehicleType,
)

__all__ = [
    "VALID_TRANSITIONS",
    "Location",
    "PaymentMethod",
    "Ride",
    "RideStatus",
    "VehicleSnapshot",
    "VehicleType",
    "RideLifecycle",
]
