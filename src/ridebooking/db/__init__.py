"""Ride persistence on SQLite via SQLAlchemy."""

from .database import init_database
from .schema import Base, BookingMetadata, Ride
from .transaction import transaction

__all__ = [
    "init_database",
    "Base",
    "BookingMetadata",
    "Ride",
    "transaction",
]
