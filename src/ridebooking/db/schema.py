"""SQLAlchemy ORM models for ride persistence."""

from datetime import datetime

from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .utils import utc_now


class Base(DeclarativeBase):
    pass


class Ride(Base):
    __tablename__ = "rides"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    passenger_id: Mapped[str] = mapped_column(String, nullable=False)
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)

    vehicle_type: Mapped[str] = mapped_column(String, nullable=False)
    vehicle_kind: Mapped[str | None] = mapped_column(String, nullable=True)
    vehicle_make: Mapped[str | None] = mapped_column(String, nullable=True)
    vehicle_model: Mapped[str | None] = mapped_column(String, nullable=True)
    vehicle_plate: Mapped[str | None] = mapped_column(String, nullable=True)
    vehicle_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    pickup_address: Mapped[str] = mapped_column(String, nullable=False)
    pickup_city: Mapped[str] = mapped_column(String, nullable=False)
    pickup_lat: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_lon: Mapped[float] = mapped_column(Float, nullable=False)
    drop_address: Mapped[str] = mapped_column(String, nullable=False)
    drop_city: Mapped[str] = mapped_column(String, nullable=False)
    drop_lat: Mapped[float] = mapped_column(Float, nullable=False)
    drop_lon: Mapped[float] = mapped_column(Float, nullable=False)

    fare: Mapped[float] = mapped_column(Float, nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    duration_min: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)

    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    passenger_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    driver_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __table_args__ = (
        Index("idx_ride_passenger_created", "passenger_id", "created_at"),
        Index("idx_ride_driver_created", "driver_id", "created_at"),
        Index("idx_ride_status_created", "status", "created_at"),
        Index("idx_ride_pickup_point", "pickup_lat", "pickup_lon"),
    )


class BookingMetadata(Base):
    __tablename__ = "booking_metadata"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
