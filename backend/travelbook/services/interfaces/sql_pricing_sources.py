"""
Pricing sources backed by the relational store.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import extract, select

from travelbook.db.session import Database
from travelbook.models.pricing import Holiday, PriceOverride, RecurringPriceRule
from travelbook.models.route import Route
from travelbook.services.interfaces.pricing_sources import (
    HolidayCalendar,
    HolidayInfo,
    PriceOverrideBook,
    PriceRule,
    RecurringRuleBook,
    RouteCatalog,
    RoutePricing,
)


class SqlRouteCatalog(RouteCatalog):
    def __init__(self, database: Database):
        self.database = database

    async def get_route_pricing(self, route_id: int) -> Optional[RoutePricing]:
        async with self.database.session() as db:
            route = await db.get(Route, route_id)
        if route is None:
            return None
        return RoutePricing(
            route_id=route.id,
            base_price=Decimal(route.base_price),
            total_seats=route.total_seats,
            is_active=route.is_active,
        )


class SqlPriceOverrideBook(PriceOverrideBook):
    def __init__(self, database: Database):
        self.database = database

    async def get_override(self, route_id: int, travel_date: date) -> Optional[Decimal]:
        async with self.database.session() as db:
            result = await db.execute(
                select(PriceOverride.price).where(
                    PriceOverride.route_id == route_id,
                    PriceOverride.travel_date == travel_date,
                )
            )
            price = result.scalar_one_or_none()
        return Decimal(price) if price is not None else None


class SqlRecurringRuleBook(RecurringRuleBook):
    def __init__(self, database: Database):
        self.database = database

    async def get_rule(self, recurring_schedule_id: int, day_of_week: Optional[str]) -> Optional[PriceRule]:
        query = select(RecurringPriceRule).where(
            RecurringPriceRule.recurring_schedule_id == recurring_schedule_id
        )
        if day_of_week is None:
            query = query.where(RecurringPriceRule.day_of_week.is_(None))
        else:
            query = query.where(RecurringPriceRule.day_of_week == day_of_week)

        async with self.database.session() as db:
            result = await db.execute(query.order_by(RecurringPriceRule.id).limit(1))
            rule = result.scalar_one_or_none()
        if rule is None:
            return None
        return PriceRule(
            day_of_week=rule.day_of_week,
            price_multiplier=Decimal(rule.price_multiplier),
            fixed_price=Decimal(rule.fixed_price) if rule.fixed_price is not None else None,
        )


class SqlHolidayCalendar(HolidayCalendar):
    def __init__(self, database: Database):
        self.database = database

    async def find_holiday(self, travel_date: date) -> Optional[HolidayInfo]:
        async with self.database.session() as db:
            result = await db.execute(
                select(Holiday).where(Holiday.date == travel_date).order_by(Holiday.id).limit(1)
            )
            holiday = result.scalar_one_or_none()

            if holiday is None:
                result = await db.execute(
                    select(Holiday)
                    .where(
                        Holiday.is_recurring.is_(True),
                        extract("month", Holiday.date) == travel_date.month,
                        extract("day", Holiday.date) == travel_date.day,
                    )
                    .order_by(Holiday.id)
                    .limit(1)
                )
                holiday = result.scalar_one_or_none()

        if holiday is None:
            return None
        return HolidayInfo(
            name=holiday.name,
            date=holiday.date,
            price_multiplier=Decimal(holiday.price_multiplier),
            is_recurring=holiday.is_recurring,
        )
