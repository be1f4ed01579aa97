import math
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

from ridebooking.pricing.vehicles import VehicleProfile


class FareBreakdown(BaseModel):
    """Detailed breakdown of fare components for one vehicle class."""

    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    base: float = Field(ge=0)
    distance_charge: float = Field(ge=0)
    time_charge: float = Field(ge=0)
    surge_multiplier: float = Field(default=1.0, ge=1.0)
    total: float = Field(ge=0)
    is_estimate: bool = False


def round_currency(amount: float, decimals: int = 0) -> float:
    """Round half-up to the currency's smallest unit."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_pkr(amount: float, decimals: int = 0) -> str:
    """Format an amount for display, e.g. ``PKR 1,234``."""
    if amount is None or not math.isfinite(amount):
        amount = 0
    return f"PKR {amount:,.{decimals}f}"


class FareCalculator:
    """Turns distance, duration and a vehicle profile into a fare.

    Holds no mutable state, so one instance can be shared freely.
    Fares are computed once at booking time from the resolved route and
    frozen into the ride.
    """

    def __init__(self, currency_decimals: int = 0):
        self.currency_decimals = currency_decimals

    def quote(
        self,
        distance_km: float,
        duration_min: float | None,
        profile: VehicleProfile,
        *,
        include_surge: bool = False,
        surge_multiplier: float = 1.0,
        is_estimate: bool = False,
    ) -> FareBreakdown:
        """Quote a single vehicle profile.

        A non-positive or non-finite distance yields a zero estimate instead
        of raising, so one bad input cannot fail a whole batch of quotes.
        When ``duration_min`` is None it is derived from the profile's
        average speed.
        """
        if surge_multiplier < 1.0 or not math.isfinite(surge_multiplier):
            raise ValueError("Surge multiplier must be >= 1.0")

        if not _is_positive_number(distance_km):
            return FareBreakdown(
                vehicle_id=profile.id,
                base=0.0,
                distance_charge=0.0,
                time_charge=0.0,
                total=0.0,
                is_estimate=True,
            )

        if duration_min is None or not _is_positive_number(duration_min):
            duration_min = round(distance_km / profile.avg_speed_kmh * 60)

        base = profile.base_fare
        distance_charge = profile.per_km_rate * distance_km
        time_charge = profile.per_min_rate * duration_min

        total = max(profile.min_fare, base + distance_charge + time_charge)
        multiplier = surge_multiplier if include_surge else 1.0
        total *= multiplier

        decimals = self.currency_decimals
        return FareBreakdown(
            vehicle_id=profile.id,
            base=round_currency(base, decimals),
            distance_charge=round_currency(distance_charge, decimals),
            time_charge=round_currency(time_charge, decimals),
            surge_multiplier=multiplier,
            total=round_currency(total, decimals),
            is_estimate=is_estimate,
        )

    def quote_all(
        self,
        distance_km: float,
        duration_min: float | None,
        profiles: Mapping[str, VehicleProfile] | Iterable[VehicleProfile],
        *,
        include_surge: bool = False,
        surge_multiplier: float = 1.0,
        is_estimate: bool = False,
    ) -> dict[str, FareBreakdown]:
        """Quote every profile, keyed by vehicle id."""
        if isinstance(profiles, Mapping):
            profiles = profiles.values()
        return {
            profile.id: self.quote(
                distance_km,
                duration_min,
                profile,
                include_surge=include_surge,
                surge_multiplier=surge_multiplier,
                is_estimate=is_estimate,
            )
            for profile in profiles
        }


def _is_positive_number(value: float) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except TypeError:
        return False
