"""Repository layer for ride persistence."""

from .ride_repository import RideRepository

__all__ = ["RideRepository"]
