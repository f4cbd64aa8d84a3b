"""
Tests for the booking transaction coordinator, including concurrency scenarios.
"""

import asyncio
import sqlite3
from datetime import date, timedelta

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from travelbook.core.exceptions import (
    BookingNotFoundError,
    InvalidBookingStateError,
    ScheduleNotFoundError,
    SeatUnavailableError,
    ValidationError,
)
from travelbook.models.booking import Booking, Passenger, SeatReservation
from travelbook.models.schedule import Schedule
from travelbook.schemas.schedule import ScheduleCreate
from travelbook.services import seat_ledger
from travelbook.services.booking_service import BookingService
from travelbook.services.schedule_service import ScheduleService


async def count_rows(database, model) -> int:
    async with database.session() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_book_two_seats(coordinator, schedule, booking_payload):
    """Capacity 48, seats [1, 2] -> A1, A2."""
    booking = await coordinator.create_booking(booking_payload(schedule.id, [1, 2]))

    assert booking.booking_status == "confirmed"
    assert booking.payment_status == "completed"
    assert booking.seat_labels == ["A1", "A2"]
    assert booking.seat_numbers == [1, 2]
    assert booking.route_id == schedule.route_id
    assert booking.travel_date == schedule.travel_date
    assert booking.pnr.startswith("TF") and len(booking.pnr) == 11
    assert booking.booking_ref.startswith("BK") and len(booking.booking_ref) == 10
    assert [p.seat for p in booking.passengers] == ["A1", "A2"]


@pytest.mark.asyncio
async def test_labels_and_numbers_mix(coordinator, schedule, booking_payload):
    booking = await coordinator.create_booking(booking_payload(schedule.id, ["B1", 6, "7"]))
    assert booking.seat_labels == ["B1", "B2", "B3"]


@pytest.mark.asyncio
async def test_passenger_with_explicit_seat(coordinator, schedule, booking_payload):
    payload = booking_payload(schedule.id, ["A1", "A2"])
    payload["passengers"][0]["seat"] = "A2"
    booking = await coordinator.create_booking(payload)

    by_seat = {p.seat: p.first_name for p in booking.passengers}
    assert by_seat == {"A2": "Traveller0", "A1": "Traveller1"}


@pytest.mark.asyncio
async def test_booked_seat_is_unavailable(coordinator, database, schedule, booking_payload):
    await coordinator.create_booking(booking_payload(schedule.id, [1, 2]))

    with pytest.raises(SeatUnavailableError) as exc_info:
        await coordinator.create_booking(booking_payload(schedule.id, ["A2", "A3"]))

    assert exc_info.value.seats == ["A2"]
    assert "A2" in exc_info.value.detail
    assert "no longer available" in exc_info.value.detail
    # Nothing from the failed attempt persisted
    assert await count_rows(database, Booking) == 1
    assert await count_rows(database, Passenger) == 2
    assert await count_rows(database, SeatReservation) == 2


@pytest.mark.asyncio
async def test_unique_index_catches_missed_check(coordinator, database, schedule, booking_payload, monkeypatch):
    """If the pre-check misses a taken seat, the partial unique index still refuses it."""
    await coordinator.create_booking(booking_payload(schedule.id, [3]))

    async def nothing_booked(db, schedule_id, seat_numbers):
        return []

    monkeypatch.setattr(seat_ledger, "find_booked_among", nothing_booked)

    with pytest.raises(SeatUnavailableError) as exc_info:
        await coordinator.create_booking(booking_payload(schedule.id, [3, 4]))

    assert "A3" in exc_info.value.seats
    assert await count_rows(database, Booking) == 1
    assert await count_rows(database, SeatReservation) == 1


@pytest.mark.asyncio
async def test_concurrent_overlapping_bookings(coordinator, database, schedule, booking_payload):
    """Two simultaneous requests sharing seat 5: exactly one wins."""
    results = await asyncio.gather(
        coordinator.create_booking(booking_payload(schedule.id, [4, 5])),
        coordinator.create_booking(booking_payload(schedule.id, [5, 6])),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], SeatUnavailableError)
    assert failures[0].seats == ["B1"]
    assert successes[0].seat_labels in (["A4", "B1"], ["B1", "B2"])

    async with database.session() as session:
        booked = await seat_ledger.list_booked_seats(session, schedule.id)
    assert booked == successes[0].seat_numbers


@pytest.mark.asyncio
async def test_concurrent_disjoint_bookings(coordinator, schedule, booking_payload):
    """Disjoint seat sets on the same schedule both succeed."""
    results = await asyncio.gather(
        coordinator.create_booking(booking_payload(schedule.id, [1, 2])),
        coordinator.create_booking(booking_payload(schedule.id, [3, 4])),
        coordinator.create_booking(booking_payload(schedule.id, ["B1"])),
        return_exceptions=True,
    )

    assert all(not isinstance(r, Exception) for r in results)
    assert sorted(label for b in results for label in b.seat_labels) == ["A1", "A2", "A3", "A4", "B1"]


@pytest.mark.asyncio
async def test_many_racers_never_overbook(database, route, coordinator, booking_payload):
    """Booked rows never exceed capacity, and each seat is booked once."""
    small = await ScheduleService(database).create_schedule(
        ScheduleCreate(route_id=route.id, travel_date=date.today() + timedelta(days=3), capacity=4)
    )
    requests = [[1, 2], [2, 3], [3, 4], [4, 1], [1], [2], [3], [4]]
    results = await asyncio.gather(
        *(coordinator.create_booking(booking_payload(small.id, seats)) for seats in requests),
        return_exceptions=True,
    )

    won = [label for r in results if not isinstance(r, Exception) for label in r.seat_labels]
    assert all(isinstance(r, SeatUnavailableError) for r in results if isinstance(r, Exception))
    assert len(won) == len(set(won))
    assert len(won) <= small.capacity

    async with database.session() as session:
        assert await seat_ledger.count_booked(session, small.id) == len(won)


@pytest.mark.asyncio
async def test_unknown_schedule(coordinator, booking_payload):
    with pytest.raises(ScheduleNotFoundError):
        await coordinator.create_booking(booking_payload(999, [1]))


@pytest.mark.asyncio
async def test_cancelled_schedule_not_bookable(coordinator, database, schedule, booking_payload):
    async with database.session() as session:
        row = await session.get(Schedule, schedule.id)
        row.is_cancelled = True
        await session.commit()

    with pytest.raises(ScheduleNotFoundError):
        await coordinator.create_booking(booking_payload(schedule.id, [1]))


@pytest.mark.asyncio
async def test_past_schedule_not_bookable(coordinator, database, route, booking_payload):
    async with database.session() as session:
        past = Schedule(
            route_id=route.id,
            travel_date=date.today() - timedelta(days=1),
            capacity=48,
            available_seats=48,
        )
        session.add(past)
        await session.commit()

    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(past.id, [1]))
    assert await count_rows(database, Booking) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("seats", [[49], ["M1"], ["A5"], [0]])
async def test_seat_outside_capacity(coordinator, database, schedule, booking_payload, seats):
    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(schedule.id, seats))
    assert await count_rows(database, Booking) == 0


@pytest.mark.asyncio
async def test_duplicate_seats_in_request(coordinator, schedule, booking_payload):
    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(schedule.id, [1, "A1"]))


@pytest.mark.asyncio
async def test_passenger_count_must_match_seats(coordinator, database, schedule, booking_payload):
    payload = booking_payload(schedule.id, [1, 2])
    payload["passengers"] = payload["passengers"][:1]

    with pytest.raises(ValidationError):
        await coordinator.create_booking(payload)
    assert await count_rows(database, Booking) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field,value",
    [
        ("contact_email", "not-an-email"),
        ("contact_phone", "12345"),
        ("final_amount", "-1.00"),
    ],
)
async def test_malformed_input(coordinator, schedule, booking_payload, field, value):
    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(schedule.id, [1], **{field: value}))


@pytest.mark.asyncio
async def test_empty_seat_list_is_rejected(coordinator, schedule, booking_payload):
    payload = booking_payload(schedule.id, [1])
    payload["seats"] = []
    payload["passengers"] = []

    with pytest.raises(ValidationError):
        await coordinator.create_booking(payload)


@pytest.mark.asyncio
@pytest.mark.parametrize("seats", [[1, 1], [3, "A3"], ["A9"], ["??"]])
async def test_bad_seats_rejected_before_schedule_lookup(
    coordinator, database, booking_payload, seats, monkeypatch
):
    """Seat format and duplicates fail as ValidationError even for an unknown schedule."""
    opened = []
    original = database.session

    def tracking_session(*args, **kwargs):
        opened.append(True)
        return original(*args, **kwargs)

    monkeypatch.setattr(database, "session", tracking_session)
    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(999, seats))

    assert opened == []


@pytest.mark.asyncio
async def test_rejected_payloads_are_counted(coordinator, schedule, booking_payload):
    def rejected() -> float:
        return REGISTRY.get_sample_value("booking_attempts_total", {"status": "rejected"}) or 0.0

    before = rejected()
    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(schedule.id, [1], contact_email="not-an-email"))
    with pytest.raises(ValidationError):
        await coordinator.create_booking(booking_payload(schedule.id, [2, 2]))

    assert rejected() == before + 2


@pytest.mark.asyncio
async def test_transient_lock_error_is_retried(coordinator, schedule, booking_payload, monkeypatch):
    calls = []
    original = coordinator._create_once

    async def flaky(data):
        calls.append(data.schedule_id)
        if len(calls) == 1:
            raise OperationalError("BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked"))
        return await original(data)

    monkeypatch.setattr(coordinator, "_create_once", flaky)
    booking = await coordinator.create_booking(booking_payload(schedule.id, [7]))

    assert len(calls) == 2
    assert booking.seat_labels == ["B3"]


@pytest.mark.asyncio
async def test_other_database_errors_are_not_retried(coordinator, schedule, booking_payload, monkeypatch):
    calls = []

    async def broken(data):
        calls.append(data.schedule_id)
        raise OperationalError("INSERT", {}, sqlite3.OperationalError("disk I/O error"))

    monkeypatch.setattr(coordinator, "_create_once", broken)
    with pytest.raises(OperationalError):
        await coordinator.create_booking(booking_payload(schedule.id, [7]))
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_booking_lookups(coordinator, database, schedule, booking_payload):
    booking = await coordinator.create_booking(booking_payload(schedule.id, [1], user_id=42))
    service = BookingService(database)

    assert (await service.get_booking(booking.id)).pnr == booking.pnr
    assert (await service.get_booking_by_pnr(booking.pnr.lower())).id == booking.id
    assert [b.id for b in await service.list_user_bookings(42)] == [booking.id]
    assert await service.list_user_bookings(7) == []

    with pytest.raises(BookingNotFoundError):
        await service.get_booking(999)
    with pytest.raises(BookingNotFoundError):
        await service.get_booking_by_pnr("TFNOPE")


@pytest.mark.asyncio
async def test_cancel_booking_frees_seats(coordinator, database, schedule, booking_payload):
    booking = await coordinator.create_booking(booking_payload(schedule.id, [1, 2]))
    service = BookingService(database)

    cancelled, released = await service.cancel_booking(booking.id)

    assert released == ["A1", "A2"]
    assert cancelled.booking_status == "cancelled"
    assert cancelled.payment_status == "refunded"
    assert {r.status for r in cancelled.seat_reservations} == {"cancelled"}

    # The seats can be sold again
    again = await coordinator.create_booking(booking_payload(schedule.id, [1, 2]))
    assert again.seat_labels == ["A1", "A2"]

    with pytest.raises(InvalidBookingStateError):
        await service.cancel_booking(booking.id)


@pytest.mark.asyncio
async def test_cancel_booking_of_another_user(coordinator, database, schedule, booking_payload):
    booking = await coordinator.create_booking(booking_payload(schedule.id, [1], user_id=1))
    with pytest.raises(BookingNotFoundError):
        await BookingService(database).cancel_booking(booking.id, user_id=2)
