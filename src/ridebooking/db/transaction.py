"""Explicit transaction boundaries for ride writes."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit on success, roll back on any exception.

    Example:
        with transaction(session):
            repo.save(ride, expected_version=3)
        # committed here, or rolled back if save raised
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
