"""
Cancellation cascade: cancel a schedule and everything booked on it.

One transaction: the schedule row is locked exclusively (which waits out any
booking that holds its share lock), then every confirmed booking becomes
cancelled/refunded and its seats are released. Completed bookings are history
and stay as they are.
"""

from dataclasses import dataclass, field

from sqlalchemy import select

from travelbook.core.exceptions import ScheduleNotFoundError
from travelbook.core.logging import get_logger
from travelbook.core.metrics import schedule_cancellations
from travelbook.db.session import Database
from travelbook.models.booking import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    PAYMENT_REFUNDED,
    SEAT_BOOKED,
    SEAT_CANCELLED,
    Booking,
)
from travelbook.models.schedule import Schedule
from travelbook.services import seat_ledger

logger = get_logger(__name__)


@dataclass
class ScheduleCancellation:
    schedule: Schedule
    affected_bookings: list[Booking] = field(default_factory=list)


class CancellationCascade:
    def __init__(self, database: Database):
        self.database = database

    async def cancel_schedule(self, schedule_id: int) -> ScheduleCancellation:
        async with self.database.session() as session:
            async with session.begin():
                result = await session.execute(
                    select(Schedule)
                    .where(Schedule.id == schedule_id)
                    .with_for_update(of=Schedule)
                )
                schedule = result.unique().scalar_one_or_none()
                if schedule is None:
                    raise ScheduleNotFoundError(schedule_id)

                schedule.is_cancelled = True

                result = await session.execute(
                    select(Booking)
                    .where(
                        Booking.schedule_id == schedule_id,
                        Booking.booking_status == BOOKING_CONFIRMED,
                    )
                    .order_by(Booking.id)
                )
                affected = list(result.scalars().all())

                for booking in affected:
                    booking.booking_status = BOOKING_CANCELLED
                    booking.payment_status = PAYMENT_REFUNDED
                    for reservation in booking.seat_reservations:
                        if reservation.status == SEAT_BOOKED:
                            reservation.status = SEAT_CANCELLED
                await session.flush()

                available = await seat_ledger.refresh_available_seats(session, schedule)

        schedule_cancellations.inc()
        logger.info(
            "schedule_cancelled",
            schedule_id=schedule_id,
            affected_bookings=len(affected),
            available_seats=available,
        )
        return ScheduleCancellation(schedule=schedule, affected_bookings=affected)
