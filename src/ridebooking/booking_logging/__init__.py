"""Structured logging for the booking service."""

from .context import ContextFilter, LogContext, log_context, log_ride_context
from .filters import DefaultCorrelationFilter, PIIFilter
from .formatters import DevFormatter, JSONFormatter
from .setup import setup_logging

__all__ = [
    "ContextFilter",
    "DefaultCorrelationFilter",
    "DevFormatter",
    "JSONFormatter",
    "LogContext",
    "PIIFilter",
    "log_context",
    "log_ride_context",
    "setup_logging",
]
