"""
Schedule registry: date instances of routes and their seat maps.

Seat counts handed to callers are always derived from the seat ledger. The
stored available_seats column is only rewritten by paths that release seats,
so reads overwrite the loaded value with the live count (without marking the
row dirty).
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from travelbook.core.exceptions import ConflictError, RouteNotFoundError, ScheduleNotFoundError, ValidationError
from travelbook.core.logging import get_logger
from travelbook.db.session import Database
from travelbook.models.booking import SEAT_BOOKED, SeatReservation
from travelbook.models.route import Route
from travelbook.models.schedule import Schedule
from travelbook.schemas.schedule import ScheduleCreate
from travelbook.services import seat_ledger
from travelbook.services.pricing_service import PriceResolver, PricingService
from travelbook.services.seat_numbering import MAX_SEATS, all_seats, seat_label

logger = get_logger(__name__)


@dataclass
class SeatAvailability:
    schedule_id: int
    total_seats: int
    available_seats: list[str]
    booked_seats: list[str]

    @property
    def available_count(self) -> int:
        return len(self.available_seats)

    @property
    def booked_count(self) -> int:
        return len(self.booked_seats)


@dataclass
class ScheduleQuote:
    schedule: Schedule
    price: Decimal


async def _apply_live_counts(session: AsyncSession, schedules: list[Schedule]) -> None:
    if not schedules:
        return
    result = await session.execute(
        select(SeatReservation.schedule_id, func.count(SeatReservation.id))
        .where(
            SeatReservation.schedule_id.in_([s.id for s in schedules]),
            SeatReservation.status == SEAT_BOOKED,
        )
        .group_by(SeatReservation.schedule_id)
    )
    booked = dict(result.all())
    for schedule in schedules:
        live = max(schedule.capacity - booked.get(schedule.id, 0), 0)
        set_committed_value(schedule, "available_seats", live)


class ScheduleService:
    def __init__(
        self,
        database: Database,
        pricing: Optional[PricingService] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.database = database
        self.pricing = pricing or PricingService(PriceResolver.from_database(database))
        self.clock = clock

    async def create_schedule(self, data: ScheduleCreate) -> Schedule:
        async with self.database.session() as session:
            route = await session.get(Route, data.route_id)
            if route is None:
                raise RouteNotFoundError(data.route_id)
            if not route.is_active:
                raise RouteNotFoundError(data.route_id, reason="is inactive")
            if data.travel_date < self.clock():
                raise ValidationError(f"Travel date {data.travel_date} is in the past")

            capacity = data.capacity or route.total_seats
            if capacity > MAX_SEATS:
                raise ValidationError(f"Capacity must be between 1 and {MAX_SEATS}")

            schedule = Schedule(
                route_id=route.id,
                travel_date=data.travel_date,
                capacity=capacity,
                available_seats=capacity,
                is_cancelled=False,
            )
            session.add(schedule)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError(
                    f"Route {data.route_id} already has a schedule on {data.travel_date}"
                )

        logger.info(
            "schedule_created",
            schedule_id=schedule.id,
            route_id=schedule.route_id,
            travel_date=schedule.travel_date.isoformat(),
            capacity=capacity,
        )
        return await self.get_schedule(schedule.id)

    async def get_schedule(self, schedule_id: int) -> Schedule:
        async with self.database.session() as session:
            schedule = await session.get(Schedule, schedule_id)
            if schedule is None:
                raise ScheduleNotFoundError(schedule_id)
            await _apply_live_counts(session, [schedule])
            return schedule

    async def list_route_schedules(
        self,
        route_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_cancelled: bool = False,
    ) -> list[ScheduleQuote]:
        """Upcoming schedules of a route, each with its quoted price."""
        start_date = start_date or self.clock()
        async with self.database.session() as session:
            if await session.get(Route, route_id) is None:
                raise RouteNotFoundError(route_id)

            query = select(Schedule).where(
                Schedule.route_id == route_id,
                Schedule.travel_date >= start_date,
            )
            if end_date is not None:
                query = query.where(Schedule.travel_date <= end_date)
            if not include_cancelled:
                query = query.where(Schedule.is_cancelled.is_(False))
            result = await session.execute(query.order_by(Schedule.travel_date))
            schedules = list(result.unique().scalars().all())
            await _apply_live_counts(session, schedules)

        quotes = []
        for schedule in schedules:
            price = await self.pricing.quote_price(
                schedule.route_id, schedule.travel_date, schedule.recurring_schedule_id
            )
            quotes.append(ScheduleQuote(schedule=schedule, price=price))
        return quotes

    async def get_seat_availability(self, schedule_id: int) -> SeatAvailability:
        """Seat map of a schedule with display labels."""
        async with self.database.session() as session:
            schedule = await session.get(Schedule, schedule_id)
            if schedule is None:
                raise ScheduleNotFoundError(schedule_id)
            booked = set(await seat_ledger.list_booked_seats(session, schedule_id))

        return SeatAvailability(
            schedule_id=schedule_id,
            total_seats=schedule.capacity,
            available_seats=[s.label for s in all_seats(schedule.capacity) if s.number not in booked],
            booked_seats=[seat_label(n) for n in sorted(booked)],
        )
