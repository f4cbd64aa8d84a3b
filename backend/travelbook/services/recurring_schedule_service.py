"""
Recurring schedule templates and the schedules generated from them.

Generation walks the template's date window day by day, keeps the dates that
match its cadence (every day, or the listed weekdays) and creates a Schedule
for each date the route does not already run. The price resolved for each new
date is pinned as a `recurring_schedule` price override, so later rule edits
do not reprice trips that already exist.
"""

from datetime import date, timedelta
from typing import Callable, Optional

from sqlalchemy import select

from travelbook.core.config import get_settings
from travelbook.core.exceptions import RecurringScheduleNotFoundError, RouteNotFoundError, ValidationError
from travelbook.core.logging import get_logger
from travelbook.db.session import Database
from travelbook.models.pricing import PriceOverride, RecurringPriceRule, RecurringSchedule
from travelbook.models.route import Route
from travelbook.models.schedule import Schedule
from travelbook.schemas.pricing import PriceRuleSet, RecurringScheduleCreate
from travelbook.services.cache_service import QuoteCache
from travelbook.services.pricing_service import PriceResolver, day_name

logger = get_logger(__name__)
settings = get_settings()

RECURRING_ACTIVE = "active"
RECURRING_DISABLED = "disabled"
OVERRIDE_REASON = "recurring_schedule"


def matches_cadence(template: RecurringSchedule, travel_date: date) -> bool:
    if template.recurrence_type == "daily":
        return True
    return day_name(travel_date) in (template.recurrence_days or [])


class RecurringScheduleService:
    def __init__(
        self,
        database: Database,
        resolver: Optional[PriceResolver] = None,
        cache: Optional[QuoteCache] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.database = database
        self.resolver = resolver or PriceResolver.from_database(database)
        self.cache = cache or QuoteCache(None)
        self.clock = clock

    async def create(self, data: RecurringScheduleCreate) -> RecurringSchedule:
        async with self.database.session() as session:
            route = await session.get(Route, data.route_id)
            if route is None:
                raise RouteNotFoundError(data.route_id)

            template = RecurringSchedule(
                **data.model_dump(exclude={"recurrence_days"}),
                recurrence_days=data.recurrence_days if data.recurrence_type == "weekly" else None,
                status=RECURRING_ACTIVE,
            )
            session.add(template)
            await session.commit()

        logger.info(
            "recurring_schedule_created",
            recurring_schedule_id=template.id,
            route_id=template.route_id,
            recurrence_type=template.recurrence_type,
        )
        return template

    async def get(self, recurring_schedule_id: int) -> RecurringSchedule:
        async with self.database.session() as session:
            template = await session.get(RecurringSchedule, recurring_schedule_id)
            if template is None:
                raise RecurringScheduleNotFoundError(recurring_schedule_id)
            return template

    async def set_price_rule(self, recurring_schedule_id: int, data: PriceRuleSet) -> RecurringPriceRule:
        """Create or replace the rule for one weekday (or for any day when day_of_week is None)."""
        async with self.database.session() as session:
            if await session.get(RecurringSchedule, recurring_schedule_id) is None:
                raise RecurringScheduleNotFoundError(recurring_schedule_id)

            query = select(RecurringPriceRule).where(
                RecurringPriceRule.recurring_schedule_id == recurring_schedule_id
            )
            if data.day_of_week is None:
                query = query.where(RecurringPriceRule.day_of_week.is_(None))
            else:
                query = query.where(RecurringPriceRule.day_of_week == data.day_of_week)
            result = await session.execute(query)
            rule = result.scalars().first()

            if rule is None:
                rule = RecurringPriceRule(
                    recurring_schedule_id=recurring_schedule_id,
                    day_of_week=data.day_of_week,
                )
                session.add(rule)
            rule.price_multiplier = data.price_multiplier
            rule.fixed_price = data.fixed_price
            await session.commit()

        await self.cache.invalidate()
        logger.info(
            "recurring_price_rule_set",
            recurring_schedule_id=recurring_schedule_id,
            day_of_week=data.day_of_week or "any",
        )
        return rule

    async def generate_schedules(
        self,
        recurring_schedule_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Schedule]:
        """
        Create the missing schedules of a template between start_date and
        end_date (clamped to the template window, today, and the default
        generation horizon when end_date is omitted).
        """
        template = await self.get(recurring_schedule_id)
        if template.status != RECURRING_ACTIVE:
            raise ValidationError(f"Recurring schedule {recurring_schedule_id} is {template.status}")

        today = self.clock()
        first = max(start_date or template.start_date, template.start_date, today)
        horizon = end_date or today + timedelta(days=settings.RECURRING_GENERATION_DAYS)
        last = min(horizon, template.end_date)
        if first > last:
            return []

        async with self.database.session() as session:
            route = await session.get(Route, template.route_id)
            if route is None:
                raise RouteNotFoundError(template.route_id)
            capacity = template.seat_capacity_override or route.total_seats

            result = await session.execute(
                select(Schedule.travel_date).where(
                    Schedule.route_id == template.route_id,
                    Schedule.travel_date.between(first, last),
                )
            )
            existing = set(result.scalars().all())

        candidates = []
        day = first
        while day <= last:
            if day not in existing and matches_cadence(template, day):
                candidates.append(day)
            day += timedelta(days=1)
        if not candidates:
            return []

        # Resolve before opening the write transaction; the resolver reads
        # through its own sessions.
        prices = {
            day: await self.resolver.resolve(template.route_id, day, template.id)
            for day in candidates
        }

        async with self.database.session() as session:
            async with session.begin():
                result = await session.execute(
                    select(PriceOverride).where(
                        PriceOverride.route_id == template.route_id,
                        PriceOverride.travel_date.in_(candidates),
                    )
                )
                overrides = {o.travel_date: o for o in result.scalars().all()}

                created = []
                for day in candidates:
                    # An existing override already decided this date's price
                    if day not in overrides:
                        session.add(
                            PriceOverride(
                                route_id=template.route_id,
                                travel_date=day,
                                price=prices[day],
                                reason=OVERRIDE_REASON,
                            )
                        )

                    schedule = Schedule(
                        route_id=template.route_id,
                        recurring_schedule_id=template.id,
                        travel_date=day,
                        capacity=capacity,
                        available_seats=capacity,
                        is_cancelled=False,
                    )
                    session.add(schedule)
                    created.append(schedule)
                await session.flush()

        await self.cache.invalidate()
        logger.info(
            "schedules_generated",
            recurring_schedule_id=template.id,
            route_id=template.route_id,
            count=len(created),
            first=first.isoformat(),
            last=last.isoformat(),
        )
        return created

    async def generate_all_active(self) -> dict[int, int]:
        """Run generation for every active template. Returns {template id: schedules created}."""
        async with self.database.session() as session:
            result = await session.execute(
                select(RecurringSchedule.id)
                .where(RecurringSchedule.status == RECURRING_ACTIVE)
                .order_by(RecurringSchedule.id)
            )
            template_ids = list(result.scalars().all())

        counts = {}
        for template_id in template_ids:
            try:
                counts[template_id] = len(await self.generate_schedules(template_id))
            except Exception as e:
                logger.error("schedule_generation_failed", recurring_schedule_id=template_id, error=str(e))
        return counts

    async def disable(self, recurring_schedule_id: int) -> RecurringSchedule:
        """Stop future generation. Schedules already created are left alone."""
        async with self.database.session() as session:
            template = await session.get(RecurringSchedule, recurring_schedule_id)
            if template is None:
                raise RecurringScheduleNotFoundError(recurring_schedule_id)
            template.status = RECURRING_DISABLED
            await session.commit()

        logger.info("recurring_schedule_disabled", recurring_schedule_id=recurring_schedule_id)
        return template
