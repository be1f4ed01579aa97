"""Per-task logging context for adding fields to log records.

Backed by a ContextVar so that each asyncio task (and each request
handled by FastAPI) sees only the fields it set itself.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_context: ContextVar[dict[str, Any] | None] = ContextVar("booking_log_context", default=None)


class LogContext:
    """Accessors for the current logging context fields."""

    @classmethod
    def set(cls, **kwargs: Any) -> None:
        _context.set({**cls.get(), **kwargs})

    @classmethod
    def get(cls) -> dict[str, Any]:
        return dict(_context.get() or {})

    @classmethod
    def clear(cls) -> None:
        _context.set(None)


class ContextFilter(logging.Filter):
    """Injects LogContext fields into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get().items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Set logging context fields for the enclosed block.

    Nested blocks add to the outer fields; the outer fields are restored
    on exit. ContextFilter must be attached to the handler (see
    setup_logging).
    """
    token = _context.set({**LogContext.get(), **kwargs})
    try:
        yield
    finally:
        _context.reset(token)


@contextmanager
def log_ride_context(ride_id: str, **kwargs: Any) -> Iterator[None]:
    """Convenience context manager for operations on one ride."""
    correlation_id = kwargs.pop("correlation_id", ride_id)
    with log_context(ride_id=ride_id, correlation_id=correlation_id, **kwargs):
        yield
