"""
Booking aggregate: Booking, its Passengers and its SeatReservations.

Key design decisions:
- Seats are stored as canonical integers; display labels are derived.
- A partial unique index on (schedule_id, seat_number) WHERE status = 'booked'
  is the last line of defence against overbooking. Cancelled and completed
  rows stay for history without blocking the seat.
- Status columns are never deleted, only moved to terminal states.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import relationship

from travelbook.db.base import Base, TimestampMixin
from travelbook.services.seat_numbering import seat_label

BOOKING_CONFIRMED = "confirmed"
BOOKING_CANCELLED = "cancelled"
BOOKING_COMPLETED = "completed"

SEAT_BOOKED = "booked"
SEAT_CANCELLED = "cancelled"
SEAT_COMPLETED = "completed"

PAYMENT_COMPLETED = "completed"
PAYMENT_REFUNDED = "refunded"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_ref = Column(String(20), nullable=False, index=True)
    pnr = Column(String(20), nullable=False, unique=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False, index=True)
    travel_date = Column(Date, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    final_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PAYMENT_COMPLETED)
    booking_status = Column(String(20), nullable=False, default=BOOKING_CONFIRMED)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(30), nullable=False)

    passengers = relationship(
        "Passenger",
        back_populates="booking",
        lazy="selectin",
        order_by="Passenger.seat_number",
    )
    seat_reservations = relationship(
        "SeatReservation",
        back_populates="booking",
        lazy="selectin",
        order_by="SeatReservation.seat_number",
    )

    __table_args__ = (
        CheckConstraint(
            "booking_status IN ('confirmed', 'cancelled', 'completed')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('completed', 'refunded')",
            name="check_booking_payment_status",
        ),
        CheckConstraint("final_amount >= 0", name="check_booking_final_amount_non_negative"),
        # The sweeper scans confirmed bookings by travel date
        Index("ix_bookings_status_travel_date", "booking_status", "travel_date"),
    )

    @property
    def seat_numbers(self) -> list[int]:
        return [r.seat_number for r in self.seat_reservations]

    @property
    def seat_labels(self) -> list[str]:
        return [seat_label(r.seat_number) for r in self.seat_reservations]

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, pnr={self.pnr}, schedule={self.schedule_id}, status={self.booking_status})>"


class Passenger(Base, TimestampMixin):
    __tablename__ = "passengers"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(String(20), nullable=False)
    passenger_type = Column(String(20), nullable=False, default="adult")

    booking = relationship("Booking", back_populates="passengers")

    __table_args__ = (
        CheckConstraint("age >= 0", name="check_passenger_age_non_negative"),
    )

    @property
    def seat(self) -> str:
        return seat_label(self.seat_number)

    def __repr__(self) -> str:
        return f"<Passenger(id={self.id}, booking={self.booking_id}, seat={self.seat_number})>"


class SeatReservation(Base, TimestampMixin):
    __tablename__ = "seat_reservations"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=SEAT_BOOKED)

    booking = relationship("Booking", back_populates="seat_reservations")

    __table_args__ = (
        CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
        CheckConstraint("status IN ('booked', 'cancelled', 'completed')", name="check_seat_status"),
        # One booked row per (schedule, seat)
        Index(
            "uq_seat_reservations_schedule_seat_booked",
            "schedule_id",
            "seat_number",
            unique=True,
            postgresql_where=text("status = 'booked'"),
            sqlite_where=text("status = 'booked'"),
        ),
        Index("ix_seat_reservations_schedule_status", "schedule_id", "status"),
    )

    @property
    def label(self) -> str:
        return seat_label(self.seat_number)

    def __repr__(self) -> str:
        return f"<SeatReservation(schedule={self.schedule_id}, seat={self.seat_number}, status={self.status})>"
