from typing import Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ridebooking.core.exceptions import ConfigurationError
from ridebooking.pricing.vehicles import VehicleProfile, default_vehicle_profiles


class LoggingSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class GeoFenceSettings(BaseSettings):
    """Service-area bounding box. Defaults cover Pakistan."""

    north: float = Field(default=37.1, ge=-90.0, le=90.0)
    south: float = Field(default=23.6, ge=-90.0, le=90.0)
    east: float = Field(default=77.8, ge=-180.0, le=180.0)
    west: float = Field(default=60.9, ge=-180.0, le=180.0)

    model_config = SettingsConfigDict(env_prefix="GEOFENCE_")

    @model_validator(mode="after")
    def validate_box(self) -> "GeoFenceSettings":
        if self.south > self.north:
            raise ValueError(f"south ({self.south}) must not exceed north ({self.north})")
        if self.west > self.east:
            raise ValueError(f"west ({self.west}) must not exceed east ({self.east})")
        return self


class RoutingSettings(BaseSettings):
    base_url: str = "https://us1.locationiq.com/v1"
    api_key: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0, le=60.0)

    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_max_size: int = Field(default=50, ge=1)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)

    # Retry schedule
    max_attempts: int = Field(default=3, ge=2, le=3)
    retry_delays: tuple[float, ...] = (1.0, 2.0, 4.0)

    # Fallback estimate speeds in km/h
    driving_speed_kmh: float = Field(default=25.0, gt=0)
    cycling_speed_kmh: float = Field(default=15.0, gt=0)
    walking_speed_kmh: float = Field(default=5.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="ROUTING_")

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Directions base URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("retry_delays")
    @classmethod
    def validate_delays(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if not v or any(d < 0 for d in v):
            raise ValueError("retry_delays must be a non-empty list of non-negative seconds")
        return v


class PricingSettings(BaseSettings):
    currency: str = "PKR"
    currency_decimals: int = Field(default=0, ge=0, le=4)
    vehicle_profiles: dict[str, VehicleProfile] = Field(default_factory=default_vehicle_profiles)

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    @field_validator("vehicle_profiles")
    @classmethod
    def validate_profiles(cls, v: dict[str, VehicleProfile]) -> dict[str, VehicleProfile]:
        if not v:
            raise ValueError("At least one vehicle profile must be configured")
        for key, profile in v.items():
            if key != profile.id:
                raise ValueError(f"Vehicle profile key {key!r} does not match id {profile.id!r}")
        return v


class DatabaseSettings(BaseSettings):
    path: str = "data/rides.db"

    model_config = SettingsConfigDict(env_prefix="DB_")


class APISettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    model_config = SettingsConfigDict(env_prefix="API_")


class Settings(BaseSettings):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    geofence: GeoFenceSettings = Field(default_factory=GeoFenceSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    api: APISettings = Field(default_factory=APISettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        ConfigurationError: a variable is missing or fails validation
    """
    try:
        return Settings()
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise ConfigurationError(
            f"Invalid configuration ({e.error_count()} errors)",
            {"errors": errors},
        ) from e
