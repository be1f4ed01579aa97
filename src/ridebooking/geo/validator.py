"""Coordinate well-formedness and service-area (geo-fence) checks."""

import logging
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ridebooking.core.exceptions import InvalidCoordinates, ServiceAreaRestricted
from ridebooking.geo.coordinates import Coordinate

logger = logging.getLogger(__name__)


class BoundingBox(BaseModel):
    """Axis-aligned lat/lon rectangle. Edges are inclusive."""

    model_config = ConfigDict(frozen=True)

    north: float = Field(ge=-90.0, le=90.0)
    south: float = Field(ge=-90.0, le=90.0)
    east: float = Field(ge=-180.0, le=180.0)
    west: float = Field(ge=-180.0, le=180.0)

    @model_validator(mode="after")
    def validate_edges(self) -> "BoundingBox":
        if self.south > self.north:
            raise ValueError("south edge must not exceed north edge")
        if self.west > self.east:
            raise ValueError("west edge must not exceed east edge")
        return self

    def contains(self, coord: Coordinate) -> bool:
        return self.south <= coord.lat <= self.north and self.west <= coord.lon <= self.east

    @classmethod
    def from_settings(cls, settings: Any) -> "BoundingBox":
        return cls(
            north=settings.north,
            south=settings.south,
            east=settings.east,
            west=settings.west,
        )


class GeoValidator:
    """Gates coordinates before any routing work is done.

    The service area is configuration, so the same validator serves any
    region whose boundary can be expressed as a bounding box.
    """

    def __init__(self, service_area: BoundingBox):
        self.service_area = service_area

    def validate(self, coord: Any) -> Coordinate:
        """Return coord as a Coordinate or raise InvalidCoordinates."""
        if isinstance(coord, Coordinate):
            # Constructed models are already range-checked; guard against
            # model_construct() bypassing validation.
            if not (math.isfinite(coord.lat) and math.isfinite(coord.lon)):
                raise InvalidCoordinates(f"Non-finite coordinates ({coord.lat}, {coord.lon})")
            if not (-90.0 <= coord.lat <= 90.0 and -180.0 <= coord.lon <= 180.0):
                raise InvalidCoordinates(f"Coordinates out of range ({coord.lat}, {coord.lon})")
            return coord
        if coord is None:
            raise InvalidCoordinates("Coordinates are required")
        if isinstance(coord, dict):
            return Coordinate.from_values(coord.get("lat"), coord.get("lon"))
        if isinstance(coord, (tuple, list)) and len(coord) == 2:
            return Coordinate.from_values(coord[0], coord[1])
        raise InvalidCoordinates(f"Unsupported coordinate value: {coord!r}")

    def within_service_area(self, coord: Coordinate) -> bool:
        return self.service_area.contains(coord)

    def ensure_serviceable(self, coord: Coordinate) -> None:
        if not self.within_service_area(coord):
            logger.info(f"Coordinate {coord} is outside the service area")
            raise ServiceAreaRestricted(
                f"Location ({coord.lat}, {coord.lon}) is outside the service area",
                {"lat": coord.lat, "lon": coord.lon},
            )
