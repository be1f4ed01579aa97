"""Immutable latitude/longitude value type."""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ridebooking.core.exceptions import InvalidCoordinates

QUANTIZE_PLACES = 4  # ~11 m at the equator


class Coordinate(BaseModel):
    """A point on the globe. Both components must be finite."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)

    @field_validator("lat", "lon")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("coordinate must be a finite number")
        return v

    @classmethod
    def from_values(cls, lat: Any, lon: Any) -> "Coordinate":
        """Build a Coordinate from raw input, raising InvalidCoordinates."""
        try:
            return cls(lat=lat, lon=lon)
        except PydanticValidationError as e:
            raise InvalidCoordinates(
                f"Invalid coordinates ({lat}, {lon})",
                {
                    "lat": str(lat),
                    "lon": str(lon),
                    "errors": e.errors(include_url=False, include_context=False, include_input=False),
                },
            ) from e

    def quantized(self, places: int = QUANTIZE_PLACES) -> "Coordinate":
        return Coordinate(lat=round(self.lat, places), lon=round(self.lon, places))

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lon)

    def __str__(self) -> str:
        return f"{self.lat:.{QUANTIZE_PLACES}f},{self.lon:.{QUANTIZE_PLACES}f}"
