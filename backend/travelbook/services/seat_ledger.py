"""
Seat ledger: the per-(schedule, seat) reservation records.

CONCURRENCY STRATEGY: check + per-seat unique index
===================================================

Problem:
  Two requests read "seat 7 is free" for the same schedule and both insert a
  booked row for it. Result: the seat is sold twice.

Solution:
  1. Inside the booking transaction, read which requested seats are already
     booked and fail fast with the exact list.
  2. Insert the booked rows in ascending seat order inside a SAVEPOINT.
  3. The partial unique index uq_seat_reservations_schedule_seat_booked
     (schedule_id, seat_number) WHERE status = 'booked' makes the insert a
     compare-and-swap: if a concurrent transaction inserted the same seat
     between our read and our insert, our insert waits for it and then fails
     with an integrity error, which becomes SeatUnavailableError.

  Requests for disjoint seats touch disjoint index entries and never wait on
  each other. Ascending insert order means two overlapping requests always
  contend on their lowest shared seat first, so they cannot deadlock.

The schedule's available_seats column is a cache of
`capacity - count(booked)`; `refresh_available_seats` rewrites it from this
table.
"""

from typing import Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.core.exceptions import SeatUnavailableError
from travelbook.core.logging import get_logger
from travelbook.models.booking import SEAT_BOOKED, SeatReservation
from travelbook.models.schedule import Schedule
from travelbook.services.seat_numbering import Seat, seat_label

logger = get_logger(__name__)


async def list_booked_seats(db: AsyncSession, schedule_id: int) -> list[int]:
    """Booked seat numbers for a schedule, ascending."""
    result = await db.execute(
        select(SeatReservation.seat_number)
        .where(
            SeatReservation.schedule_id == schedule_id,
            SeatReservation.status == SEAT_BOOKED,
        )
        .order_by(SeatReservation.seat_number)
    )
    return list(result.scalars().all())


async def find_booked_among(db: AsyncSession, schedule_id: int, seat_numbers: Sequence[int]) -> list[int]:
    """Subset of `seat_numbers` already booked on the schedule."""
    result = await db.execute(
        select(SeatReservation.seat_number)
        .where(
            SeatReservation.schedule_id == schedule_id,
            SeatReservation.status == SEAT_BOOKED,
            SeatReservation.seat_number.in_(list(seat_numbers)),
        )
        .order_by(SeatReservation.seat_number)
    )
    return list(result.scalars().all())


async def count_booked(db: AsyncSession, schedule_id: int) -> int:
    result = await db.execute(
        select(func.count(SeatReservation.id)).where(
            SeatReservation.schedule_id == schedule_id,
            SeatReservation.status == SEAT_BOOKED,
        )
    )
    return result.scalar_one()


async def reserve_seats(
    db: AsyncSession,
    schedule_id: int,
    booking_id: int,
    seats: Iterable[Seat],
) -> list[SeatReservation]:
    """
    Mark `seats` as booked for the schedule, or raise SeatUnavailableError.

    Must run inside the caller's transaction; on error the caller rolls the
    whole unit back.
    """
    ordered = sorted(set(seats))
    numbers = [s.number for s in ordered]

    taken = await find_booked_among(db, schedule_id, numbers)
    if taken:
        logger.warning(
            "booking_seat_conflict",
            schedule_id=schedule_id,
            seats=[seat_label(n) for n in taken],
            stage="check",
        )
        raise SeatUnavailableError(seat_label(n) for n in taken)

    reservations = [
        SeatReservation(
            schedule_id=schedule_id,
            booking_id=booking_id,
            seat_number=number,
            status=SEAT_BOOKED,
        )
        for number in numbers
    ]

    try:
        async with db.begin_nested():
            db.add_all(reservations)
    except IntegrityError:
        # Lost the race on the unique index to a transaction that has now
        # committed, so a fresh read sees its rows.
        taken = await find_booked_among(db, schedule_id, numbers) or numbers
        logger.warning(
            "booking_seat_conflict",
            schedule_id=schedule_id,
            seats=[seat_label(n) for n in taken],
            stage="insert",
        )
        raise SeatUnavailableError(seat_label(n) for n in taken)

    return reservations


async def release_seats(db: AsyncSession, booking_ids: Sequence[int], status: str) -> int:
    """Move the booked rows of `booking_ids` to `status`. Returns rows changed."""
    if not booking_ids:
        return 0
    result = await db.execute(
        update(SeatReservation)
        .where(
            SeatReservation.booking_id.in_(list(booking_ids)),
            SeatReservation.status == SEAT_BOOKED,
        )
        .values(status=status)
    )
    return result.rowcount


async def refresh_available_seats(db: AsyncSession, schedule: Schedule) -> int:
    """Rewrite the schedule's cached count from the ledger and return it."""
    booked = await count_booked(db, schedule.id)
    schedule.available_seats = max(schedule.capacity - booked, 0)
    await db.flush()
    return schedule.available_seats
