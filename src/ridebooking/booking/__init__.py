"""Quoting and booking on top of routing, pricing and rides."""

from .service import BookingService, Quote

__all__ = ["BookingService", "Quote"]
