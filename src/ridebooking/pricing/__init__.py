"""Fare quoting."""

from .fare import FareBreakdown, FareCalculator, format_pkr, round_currency
from .vehicles import VehicleProfile, default_vehicle_profiles

__all__ = [
    "FareBreakdown",
    "FareCalculator",
    "VehicleProfile",
    "default_vehicle_profiles",
    "format_pkr",
    "round_currency",
]
