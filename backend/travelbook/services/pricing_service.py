"""
Layered price resolution for a (route, travel date[, recurring schedule]).

PRIORITY ORDER
==============

  1. Exact (route, date) price override        -> absolute, returned as-is
  2. Recurring schedule rule for the weekday    -> fixed price returns as-is,
                                                   multiplier scales the price
  3. Recurring schedule rule for any day        -> same, only if (2) is absent
  4. Holiday (exact date, else recurring M/D)   -> multiplier
  5. Saturday / Sunday                          -> x WEEKEND_MULTIPLIER (1.10)
  6. Nothing matched                            -> route base price

Multipliers compound on the running price and are never rounded in between;
the result is rounded to cents once, at the end. Absolute prices (overrides,
fixed rule prices) short-circuit every later step.

The resolver only reads through the injected pricing sources, so a quote is a
pure function of its arguments and the curated pricing data.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from travelbook.core.config import get_settings
from travelbook.core.exceptions import RouteNotFoundError
from travelbook.core.logging import get_logger
from travelbook.core.metrics import record_price_quote
from travelbook.db.session import Database
from travelbook.services.cache_service import QuoteCache
from travelbook.services.interfaces.pricing_sources import (
    HolidayCalendar,
    PriceOverrideBook,
    RecurringRuleBook,
    RouteCatalog,
)
from travelbook.services.interfaces.sql_pricing_sources import (
    SqlHolidayCalendar,
    SqlPriceOverrideBook,
    SqlRecurringRuleBook,
    SqlRouteCatalog,
)

logger = get_logger(__name__)
settings = get_settings()

CENT = Decimal("0.01")
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def day_name(travel_date: date) -> str:
    return DAY_NAMES[travel_date.weekday()]


def is_weekend(travel_date: date) -> bool:
    return travel_date.weekday() >= 5


def round_price(price: Decimal) -> Decimal:
    return Decimal(price).quantize(CENT, rounding=ROUND_HALF_UP)


class PriceResolver:
    def __init__(
        self,
        routes: RouteCatalog,
        overrides: PriceOverrideBook,
        rules: RecurringRuleBook,
        holidays: HolidayCalendar,
        weekend_multiplier: Optional[Decimal] = None,
    ):
        self.routes = routes
        self.overrides = overrides
        self.rules = rules
        self.holidays = holidays
        self.weekend_multiplier = Decimal(
            weekend_multiplier if weekend_multiplier is not None else settings.WEEKEND_MULTIPLIER
        )

    @classmethod
    def from_database(cls, database: Database) -> "PriceResolver":
        return cls(
            routes=SqlRouteCatalog(database),
            overrides=SqlPriceOverrideBook(database),
            rules=SqlRecurringRuleBook(database),
            holidays=SqlHolidayCalendar(database),
        )

    async def resolve(
        self,
        route_id: int,
        travel_date: date,
        recurring_schedule_id: Optional[int] = None,
    ) -> Decimal:
        route = await self.routes.get_route_pricing(route_id)
        if route is None:
            raise RouteNotFoundError(route_id)
        if not route.is_active:
            raise RouteNotFoundError(route_id, reason="is inactive")

        override = await self.overrides.get_override(route_id, travel_date)
        if override is not None:
            return round_price(override)

        price = Decimal(route.base_price)

        if recurring_schedule_id is not None:
            rule = await self.rules.get_rule(recurring_schedule_id, day_name(travel_date))
            if rule is None:
                rule = await self.rules.get_rule(recurring_schedule_id, None)
            if rule is not None:
                if rule.fixed_price is not None:
                    return round_price(rule.fixed_price)
                price = price * rule.price_multiplier

        holiday = await self.holidays.find_holiday(travel_date)
        if holiday is not None:
            price = price * holiday.price_multiplier

        if is_weekend(travel_date):
            price = price * self.weekend_multiplier

        return round_price(price)


class PricingService:
    """Quotes for callers: resolver behind the Redis quote cache."""

    def __init__(self, resolver: PriceResolver, cache: Optional[QuoteCache] = None):
        self.resolver = resolver
        self.cache = cache or QuoteCache(None)

    async def quote_price(
        self,
        route_id: int,
        travel_date: date,
        recurring_schedule_id: Optional[int] = None,
    ) -> Decimal:
        cached = await self.cache.get(route_id, travel_date, recurring_schedule_id)
        if cached is not None:
            record_price_quote("cache")
            return cached

        price = await self.resolver.resolve(route_id, travel_date, recurring_schedule_id)
        await self.cache.set(route_id, travel_date, recurring_schedule_id, price)
        record_price_quote("computed")

        logger.debug(
            "price_quoted",
            route_id=route_id,
            travel_date=travel_date.isoformat(),
            recurring_schedule_id=recurring_schedule_id,
            price=str(price),
        )
        return price
