"""
Read-only pricing inputs consumed by the price resolver.

The resolver depends on these interfaces only, so the same resolution logic
runs against the relational store in production and against plain in-memory
data in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class RoutePricing:
    route_id: int
    base_price: Decimal
    total_seats: int
    is_active: bool = True


@dataclass(frozen=True)
class PriceRule:
    day_of_week: Optional[str]  # None applies to any day
    price_multiplier: Decimal = Decimal("1")
    fixed_price: Optional[Decimal] = None


@dataclass(frozen=True)
class HolidayInfo:
    name: str
    date: date
    price_multiplier: Decimal
    is_recurring: bool = False


class RouteCatalog(ABC):
    @abstractmethod
    async def get_route_pricing(self, route_id: int) -> Optional[RoutePricing]:
        """Base price and capacity of a route, or None if it does not exist."""


class PriceOverrideBook(ABC):
    @abstractmethod
    async def get_override(self, route_id: int, travel_date: date) -> Optional[Decimal]:
        """Absolute price pinned to (route, date), if any."""


class RecurringRuleBook(ABC):
    @abstractmethod
    async def get_rule(self, recurring_schedule_id: int, day_of_week: Optional[str]) -> Optional[PriceRule]:
        """
        Rule for exactly this weekday name, or the any-day rule when
        `day_of_week` is None.
        """


class HolidayCalendar(ABC):
    @abstractmethod
    async def find_holiday(self, travel_date: date) -> Optional[HolidayInfo]:
        """
        Holiday falling on `travel_date`: an exact-date entry first, else a
        recurring entry with the same month and day.
        """
