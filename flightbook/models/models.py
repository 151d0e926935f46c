from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    Time,
    DateTime,
    ForeignKey,
    Numeric,
    JSON,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.sql import func

from flightbook.db.base import Base


ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(32), nullable=True)
    gender = Column(String(16), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # user | admin
    role = Column(String(16), nullable=False, default=ROLE_USER, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Flight(Base):
    __tablename__ = "flights"
    id = Column(Integer, primary_key=True)
    flight_number = Column(String(6), nullable=False, unique=True, index=True)
    departure = Column(String(128), nullable=False, index=True)
    destination = Column(String(128), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    max_tickets = Column(Integer, nullable=False)
    available_tickets = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    # seat-map flights take bookings by seat label only; others by quantity only
    seat_selection = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("max_tickets >= 1", name="ck_flight_max_tickets_positive"),
        CheckConstraint("available_tickets >= 0", name="ck_flight_available_non_negative"),
        CheckConstraint("available_tickets <= max_tickets", name="ck_flight_available_within_capacity"),
        CheckConstraint("price >= 0", name="ck_flight_price_non_negative"),
    )

    @property
    def booked_count(self) -> int:
        return self.max_tickets - self.available_tickets


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True)
    flight_id = Column(Integer, ForeignKey("flights.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    seats = Column(Integer, nullable=False)
    # ordered seat labels; empty for quantity-only flights
    seat_numbers = Column(JSON, nullable=False, default=list)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    booking_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (CheckConstraint("seats >= 1", name="ck_booking_seats_positive"),)


class BookedSeat(Base):
    """One claimed seat label; the unique index is what rejects double booking."""

    __tablename__ = "booked_seats"
    id = Column(Integer, primary_key=True)
    flight_id = Column(Integer, ForeignKey("flights.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_label = Column(String(8), nullable=False)

    __table_args__ = (UniqueConstraint("flight_id", "seat_label", name="uq_flight_seat_label"),)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(255), nullable=False)
    object_type = Column(String(128), nullable=True)
    object_id = Column(String(128), nullable=True)
    detail = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("ix_audit_object", "object_type", "object_id"),)
