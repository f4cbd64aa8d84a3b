"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .pricing_sources import (
    HolidayCalendar,
    HolidayInfo,
    PriceOverrideBook,
    PriceRule,
    RecurringRuleBook,
    RouteCatalog,
    RoutePricing,
)

__all__ = [
    'HolidayCalendar', 'HolidayInfo', 'PriceOverrideBook', 'PriceRule',
    'RecurringRuleBook', 'RouteCatalog', 'RoutePricing',
]
