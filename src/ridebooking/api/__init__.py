"""HTTP API for quoting, booking and tracking rides."""

from .app import create_app

__all__ = ["create_app"]
