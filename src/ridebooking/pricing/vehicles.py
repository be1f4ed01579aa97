"""Vehicle classes offered for booking and their tariff configuration."""

from pydantic import BaseModel, ConfigDict, Field


class VehicleProfile(BaseModel):
    """Pricing and capacity configuration for one vehicle class."""

    id: str
    name: str
    base_fare: float = Field(ge=0)
    per_km_rate: float = Field(ge=0)
    per_min_rate: float = Field(ge=0)
    min_fare: float = Field(default=0.0, ge=0)
    capacity: int = Field(default=1, ge=1)
    avg_speed_kmh: float = Field(default=25.0, gt=0)
    allows_restricted_mode: bool = True

    model_config = ConfigDict(frozen=True)


def default_vehicle_profiles() -> dict[str, VehicleProfile]:
    return {
        "bike": VehicleProfile(
            id="bike",
            name="Bike",
            base_fare=80,
            per_km_rate=15,
            per_min_rate=3,
            min_fare=50,
            capacity=1,
            avg_speed_kmh=25,
        ),
        "rickshaw": VehicleProfile(
            id="rickshaw",
            name="Rickshaw",
            base_fare=100,
            per_km_rate=18,
            per_min_rate=4,
            min_fare=50,
            capacity=3,
            avg_speed_kmh=20,
        ),
        "car": VehicleProfile(
            id="car",
            name="Car",
            base_fare=150,
            per_km_rate=25,
            per_min_rate=5,
            min_fare=50,
            capacity=4,
            avg_speed_kmh=30,
        ),
    }
