"""
Tests for the schedule cancellation cascade.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from travelbook.core.exceptions import ScheduleNotFoundError
from travelbook.models.booking import SeatReservation
from travelbook.services import seat_ledger
from travelbook.services.booking_service import BookingService
from travelbook.services.cancellation_service import CancellationCascade
from travelbook.services.lifecycle_service import LifecycleSweeper
from travelbook.services.schedule_service import ScheduleService


@pytest.mark.asyncio
async def test_cancel_schedule_cascades_to_bookings(coordinator, database, schedule, booking_payload):
    bookings = [
        await coordinator.create_booking(booking_payload(schedule.id, [seat]))
        for seat in (1, 2, 5)
    ]

    outcome = await CancellationCascade(database).cancel_schedule(schedule.id)

    assert outcome.schedule.is_cancelled is True
    assert outcome.schedule.available_seats == schedule.capacity
    assert [b.id for b in outcome.affected_bookings] == [b.id for b in bookings]

    service = BookingService(database)
    for booking in bookings:
        refreshed = await service.get_booking(booking.id)
        assert refreshed.booking_status == "cancelled"
        assert refreshed.payment_status == "refunded"

    async with database.session() as session:
        statuses = (await session.execute(select(SeatReservation.status))).scalars().all()
        assert set(statuses) == {"cancelled"}
        assert await seat_ledger.count_booked(session, schedule.id) == 0

    availability = await ScheduleService(database).get_seat_availability(schedule.id)
    assert availability.booked_seats == []
    assert availability.available_count == schedule.capacity


@pytest.mark.asyncio
async def test_cancelled_schedule_refuses_bookings(coordinator, database, schedule, booking_payload):
    await CancellationCascade(database).cancel_schedule(schedule.id)

    with pytest.raises(ScheduleNotFoundError):
        await coordinator.create_booking(booking_payload(schedule.id, [1]))


@pytest.mark.asyncio
async def test_cancelling_twice_affects_nothing_new(coordinator, database, schedule, booking_payload):
    await coordinator.create_booking(booking_payload(schedule.id, [3]))
    cascade = CancellationCascade(database)

    first = await cascade.cancel_schedule(schedule.id)
    second = await cascade.cancel_schedule(schedule.id)

    assert len(first.affected_bookings) == 1
    assert second.affected_bookings == []
    assert second.schedule.is_cancelled is True


@pytest.mark.asyncio
async def test_cancel_schedule_with_no_bookings(database, schedule):
    outcome = await CancellationCascade(database).cancel_schedule(schedule.id)
    assert outcome.affected_bookings == []
    assert outcome.schedule.available_seats == schedule.capacity


@pytest.mark.asyncio
async def test_cancel_missing_schedule(database):
    with pytest.raises(ScheduleNotFoundError):
        await CancellationCascade(database).cancel_schedule(4242)


@pytest.mark.asyncio
async def test_completed_bookings_are_left_alone(coordinator, database, schedule, booking_payload):
    booking = await coordinator.create_booking(booking_payload(schedule.id, [1]))
    await LifecycleSweeper(database).auto_complete_past_bookings(
        today=schedule.travel_date + timedelta(days=1)
    )

    outcome = await CancellationCascade(database).cancel_schedule(schedule.id)

    assert outcome.affected_bookings == []
    refreshed = await BookingService(database).get_booking(booking.id)
    assert refreshed.booking_status == "completed"
    assert refreshed.payment_status == "completed"
    assert refreshed.seat_reservations[0].status == "completed"
