"""
Lifecycle sweeper: move bookings whose trip has happened to `completed`.

Best-effort maintenance. It never raises into its caller; failures are logged
and the sweep reports zero changes. The transition only ever leaves
`confirmed`, so a second run over unchanged data changes nothing.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy import select, update

from travelbook.core.logging import get_logger
from travelbook.core.metrics import bookings_auto_completed
from travelbook.db.session import Database
from travelbook.models.booking import BOOKING_COMPLETED, BOOKING_CONFIRMED, SEAT_COMPLETED, Booking
from travelbook.models.schedule import Schedule
from travelbook.services import seat_ledger
from travelbook.services.cache_service import SweepThrottle

logger = get_logger(__name__)


@dataclass
class SweepResult:
    ran: bool
    changes: int = 0


class LifecycleSweeper:
    def __init__(
        self,
        database: Database,
        throttle: Optional[SweepThrottle] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.database = database
        self.throttle = throttle or SweepThrottle(None)
        self.clock = clock

    async def auto_complete_past_bookings(self, today: Optional[date] = None) -> int:
        """Complete every confirmed booking dated before `today`. Returns bookings changed."""
        today = today or self.clock()
        try:
            async with self.database.session() as session:
                async with session.begin():
                    result = await session.execute(
                        select(Booking.id, Booking.schedule_id).where(
                            Booking.booking_status == BOOKING_CONFIRMED,
                            Booking.travel_date < today,
                        )
                    )
                    rows = result.all()
                    if not rows:
                        return 0

                    booking_ids = [row.id for row in rows]
                    changed = await session.execute(
                        update(Booking)
                        .where(
                            Booking.id.in_(booking_ids),
                            Booking.booking_status == BOOKING_CONFIRMED,
                        )
                        .values(booking_status=BOOKING_COMPLETED)
                    )
                    await seat_ledger.release_seats(session, booking_ids, SEAT_COMPLETED)

                    schedule_ids = sorted({row.schedule_id for row in rows})
                    schedules = await session.execute(
                        select(Schedule).where(Schedule.id.in_(schedule_ids))
                    )
                    for schedule in schedules.unique().scalars():
                        await seat_ledger.refresh_available_seats(session, schedule)
                    count = changed.rowcount
        except Exception as e:
            logger.error("auto_complete_failed", error=str(e), exc_info=True)
            return 0

        bookings_auto_completed.inc(count)
        logger.info("bookings_auto_completed", count=count, before=today.isoformat())
        return count

    async def run_if_due(self) -> SweepResult:
        """Sweep unless one already ran within the throttle interval."""
        if not await self.throttle.acquire():
            return SweepResult(ran=False)
        return SweepResult(ran=True, changes=await self.auto_complete_past_bookings())
