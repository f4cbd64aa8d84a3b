"""
Booking transaction coordinator.

A booking is one unit of work: the Booking row, one Passenger per seat and one
booked SeatReservation per seat are written together or not at all.

TRANSACTION LAYOUT
==================

  BEGIN
    SELECT schedule ... FOR SHARE        -- blocks only a concurrent cancellation
    INSERT booking, passengers
    SELECT booked seats among requested   -- seat ledger pre-check
    SAVEPOINT
      INSERT seat_reservations (ascending) -- partial unique index decides races
    RELEASE
  COMMIT

The schedule row is share-locked, not exclusively locked, so bookings for
disjoint seats on the same schedule never wait on each other. The schedule's
available_seats column is not touched here: it is a cache that readers derive
from the ledger.

Transient lock errors (SQLite "database is locked", PostgreSQL deadlock or
serialization failure) roll the unit back and retry it with linear backoff.
A SeatUnavailableError is a definite answer and is never retried.
"""

import asyncio
import secrets
import string
import time
from datetime import date
from typing import Callable, Mapping, Optional, Union

import pydantic
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError

from travelbook.core.config import get_settings
from travelbook.core.exceptions import (
    BookingNotFoundError,
    InvalidBookingStateError,
    ScheduleNotFoundError,
    SeatUnavailableError,
    ValidationError,
)
from travelbook.core.logging import get_logger
from travelbook.core.metrics import booking_latency, db_retries, record_booking_attempt
from travelbook.db.session import Database
from travelbook.models.booking import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    PAYMENT_COMPLETED,
    PAYMENT_REFUNDED,
    SEAT_CANCELLED,
    Booking,
    Passenger,
)
from travelbook.models.schedule import Schedule
from travelbook.schemas.booking import BookingCreate
from travelbook.services import seat_ledger
from travelbook.services.seat_numbering import Seat

logger = get_logger(__name__)
settings = get_settings()

PNR_ALPHABET = string.ascii_uppercase + string.digits

TRANSIENT_ERROR_MARKERS = (
    "database is locked",
    "deadlock detected",
    "could not serialize access",
    "serialization failure",
)


def generate_booking_ref() -> str:
    return "BK" + "".join(secrets.choice(string.digits) for _ in range(8))


def generate_pnr() -> str:
    return "TF" + "".join(secrets.choice(PNR_ALPHABET) for _ in range(9))


def is_transient_db_error(exc: BaseException) -> bool:
    """Lock/serialization failures that a fresh attempt may not hit."""
    if not isinstance(exc, DBAPIError):
        return False
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


def _validate_payload(payload: Union[BookingCreate, Mapping]) -> BookingCreate:
    if isinstance(payload, BookingCreate):
        return payload
    try:
        return BookingCreate.model_validate(payload)
    except pydantic.ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(errors) from e


def _check_seats(data: BookingCreate) -> None:
    """Seat format and duplicate checks; these need no schedule."""
    seats = [Seat.parse(value) for value in data.seats]
    if len(set(seats)) != len(seats):
        raise ValidationError("Duplicate seats in request")
    for passenger in data.passengers:
        if passenger.seat is not None:
            Seat.parse(passenger.seat)


def _pair_passengers(data: BookingCreate, seats: list[Seat], capacity: int) -> list[tuple[Seat, object]]:
    """
    Pair each passenger with a seat. A passenger naming a seat gets that seat;
    the others take the remaining requested seats in request order.
    """
    requested = set(seats)
    claimed: dict[Seat, object] = {}
    unassigned = []
    for passenger in data.passengers:
        if passenger.seat is None:
            unassigned.append(passenger)
            continue
        seat = Seat.parse(passenger.seat, capacity)
        if seat not in requested:
            raise ValidationError(f"Passenger seat {seat.label} is not among the requested seats")
        if seat in claimed:
            raise ValidationError(f"Seat {seat.label} is assigned to more than one passenger")
        claimed[seat] = passenger

    free = iter(s for s in seats if s not in claimed)
    pairs = list(claimed.items())
    for passenger in unassigned:
        pairs.append((next(free), passenger))
    return sorted(pairs, key=lambda pair: pair[0])


class BookingCoordinator:
    def __init__(
        self,
        database: Database,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.database = database
        self.max_attempts = max_attempts or settings.BOOKING_MAX_RETRY_ATTEMPTS
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.BOOKING_RETRY_DELAY_MS / 1000
        )
        self.clock = clock
        self.bookings = BookingService(database)

    async def create_booking(self, payload: Union[BookingCreate, Mapping]) -> Booking:
        """
        Book seats on a schedule, all-or-nothing.
        Raises ValidationError, ScheduleNotFoundError or SeatUnavailableError.
        """
        data = None
        start = time.perf_counter()

        try:
            data = _validate_payload(payload)
            _check_seats(data)

            for attempt in range(1, self.max_attempts + 1):
                try:
                    booking_id = await self._create_once(data)
                except DBAPIError as e:
                    if not is_transient_db_error(e) or attempt == self.max_attempts:
                        raise
                    db_retries.inc()
                    logger.info(
                        "booking_retry",
                        schedule_id=data.schedule_id,
                        attempt=attempt,
                        reason=str(e.orig),
                    )
                    await asyncio.sleep(self.retry_delay * attempt)
                    continue

                booking = await self.bookings.get_booking(booking_id)
                record_booking_attempt("success")
                logger.info(
                    "booking_created",
                    booking_id=booking.id,
                    pnr=booking.pnr,
                    schedule_id=booking.schedule_id,
                    seats=booking.seat_labels,
                    attempt=attempt,
                )
                return booking
        except SeatUnavailableError:
            record_booking_attempt("conflict")
            raise
        except (ValidationError, ScheduleNotFoundError):
            record_booking_attempt("rejected")
            raise
        except Exception:
            record_booking_attempt("error")
            logger.exception("booking_failed", schedule_id=data.schedule_id if data else None)
            raise
        finally:
            booking_latency.observe(time.perf_counter() - start)

    async def _create_once(self, data: BookingCreate) -> int:
        async with self.database.session() as session:
            async with session.begin():
                result = await session.execute(
                    select(Schedule)
                    .where(Schedule.id == data.schedule_id)
                    .with_for_update(read=True, of=Schedule)
                )
                schedule = result.unique().scalar_one_or_none()
                if schedule is None:
                    raise ScheduleNotFoundError(data.schedule_id)
                if schedule.is_cancelled:
                    raise ScheduleNotFoundError(data.schedule_id, reason="is cancelled")
                if schedule.travel_date < self.clock():
                    raise ValidationError(
                        f"Cannot book schedule {schedule.id}: travel date {schedule.travel_date} has passed"
                    )

                seats = [Seat.parse(value, schedule.capacity) for value in data.seats]
                pairs = _pair_passengers(data, seats, schedule.capacity)

                booking = Booking(
                    booking_ref=generate_booking_ref(),
                    pnr=generate_pnr(),
                    user_id=data.user_id,
                    route_id=schedule.route_id,
                    schedule_id=schedule.id,
                    travel_date=schedule.travel_date,
                    total_amount=data.total_amount,
                    discount_amount=data.discount_amount,
                    tax_amount=data.tax_amount,
                    final_amount=data.final_amount,
                    payment_method=data.payment_method,
                    payment_status=PAYMENT_COMPLETED,
                    booking_status=BOOKING_CONFIRMED,
                    contact_email=str(data.contact_email),
                    contact_phone=data.contact_phone,
                )
                session.add(booking)
                await session.flush()

                session.add_all(
                    Passenger(
                        booking_id=booking.id,
                        seat_number=seat.number,
                        first_name=p.first_name,
                        last_name=p.last_name,
                        age=p.age,
                        gender=p.gender,
                        passenger_type=p.passenger_type,
                    )
                    for seat, p in pairs
                )
                await session.flush()

                await seat_ledger.reserve_seats(session, schedule.id, booking.id, seats)
                return booking.id


class BookingService:
    """Reads and single-booking cancellation."""

    def __init__(self, database: Database):
        self.database = database

    async def get_booking(self, booking_id: int) -> Booking:
        async with self.database.session() as session:
            booking = await session.get(Booking, booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            return booking

    async def get_booking_by_pnr(self, pnr: str) -> Booking:
        async with self.database.session() as session:
            result = await session.execute(select(Booking).where(Booking.pnr == pnr.strip().upper()))
            booking = result.scalar_one_or_none()
            if booking is None:
                raise BookingNotFoundError(pnr)
            return booking

    async def list_user_bookings(self, user_id: int) -> list[Booking]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Booking)
                .where(Booking.user_id == user_id)
                .order_by(Booking.created_at.desc(), Booking.id.desc())
            )
            return list(result.scalars().all())

    async def cancel_booking(self, booking_id: int, user_id: Optional[int] = None) -> tuple[Booking, list[str]]:
        """
        Cancel one confirmed booking and free its seats. With `user_id` the
        booking must belong to that user.
        Returns the booking and the labels of the released seats.
        """
        async with self.database.session() as session:
            async with session.begin():
                result = await session.execute(
                    select(Booking).where(Booking.id == booking_id).with_for_update()
                )
                booking = result.scalar_one_or_none()
                if booking is None or (user_id is not None and booking.user_id != user_id):
                    raise BookingNotFoundError(booking_id)
                if booking.booking_status != BOOKING_CONFIRMED:
                    raise InvalidBookingStateError(
                        f"Booking {booking.pnr} is {booking.booking_status} and cannot be cancelled"
                    )

                released = booking.seat_labels
                booking.booking_status = BOOKING_CANCELLED
                booking.payment_status = PAYMENT_REFUNDED
                await session.flush()
                await seat_ledger.release_seats(session, [booking.id], SEAT_CANCELLED)

                schedule = await session.get(Schedule, booking.schedule_id)
                await seat_ledger.refresh_available_seats(session, schedule)

        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            schedule_id=booking.schedule_id,
            seats_released=released,
        )
        return await self.get_booking(booking_id), released
