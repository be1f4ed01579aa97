"""Database engine initialization and connection management."""

from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .schema import Base, BookingMetadata

SCHEMA_VERSION = "1.0.0"


def _use_immediate_transactions(engine: Engine) -> None:
    """Start every transaction with BEGIN IMMEDIATE.

    The write lock is then taken before the first read, so a check such as
    "passenger has no active ride" and the insert that follows it cannot
    interleave with another connection doing the same.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection: Any, connection_record: Any) -> None:
        # pysqlite would otherwise emit its own deferred BEGIN before writes
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_database(db_path: str) -> sessionmaker[Any]:
    """Initialize database and return session factory.

    ``":memory:"`` creates a single shared in-memory database, used by tests.
    File databases serialize transactions through SQLite's write lock.
    """
    if db_path == ":memory:":
        engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        # Ensure parent directory exists
        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        _use_immediate_transactions(engine)
    Base.metadata.create_all(engine)

    session_maker = sessionmaker(bind=engine, expire_on_commit=False)

    with session_maker() as session:
        schema_version = session.query(BookingMetadata).filter_by(key="schema_version").first()
        if not schema_version:
            schema_version = BookingMetadata(key="schema_version", value=SCHEMA_VERSION)
            session.add(schema_version)
            session.commit()

    return session_maker
