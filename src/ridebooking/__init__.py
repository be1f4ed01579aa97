"""Ride booking core: route resolution, fare quoting and ride lifecycle."""

__version__ = "0.1.0"
