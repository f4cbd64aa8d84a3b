"""
FastAPI dependencies wiring services to the handles created in the lifespan.

Everything hangs off `get_database`, so tests override that one dependency
(plus the cache handles) to run the whole API against an isolated store.
"""

from fastapi import Depends, Request

from travelbook.db.session import Database, get_database
from travelbook.services.booking_service import BookingCoordinator, BookingService
from travelbook.services.cache_service import QuoteCache, SweepThrottle
from travelbook.services.cancellation_service import CancellationCascade
from travelbook.services.lifecycle_service import LifecycleSweeper
from travelbook.services.pricing_admin_service import PricingAdminService
from travelbook.services.pricing_service import PriceResolver, PricingService
from travelbook.services.recurring_schedule_service import RecurringScheduleService
from travelbook.services.route_service import RouteService
from travelbook.services.schedule_service import ScheduleService


def get_quote_cache(request: Request) -> QuoteCache:
    cache = getattr(request.app.state, "quote_cache", None)
    return cache or QuoteCache(None)


def get_sweep_throttle(request: Request) -> SweepThrottle:
    throttle = getattr(request.app.state, "sweep_throttle", None)
    return throttle or SweepThrottle(None)


def get_pricing_service(
    database: Database = Depends(get_database),
    cache: QuoteCache = Depends(get_quote_cache),
) -> PricingService:
    return PricingService(PriceResolver.from_database(database), cache)


def get_booking_coordinator(database: Database = Depends(get_database)) -> BookingCoordinator:
    return BookingCoordinator(database)


def get_booking_service(database: Database = Depends(get_database)) -> BookingService:
    return BookingService(database)


def get_cancellation_cascade(database: Database = Depends(get_database)) -> CancellationCascade:
    return CancellationCascade(database)


def get_lifecycle_sweeper(
    database: Database = Depends(get_database),
    throttle: SweepThrottle = Depends(get_sweep_throttle),
) -> LifecycleSweeper:
    return LifecycleSweeper(database, throttle)


def get_schedule_service(
    database: Database = Depends(get_database),
    pricing: PricingService = Depends(get_pricing_service),
) -> ScheduleService:
    return ScheduleService(database, pricing)


def get_route_service(
    database: Database = Depends(get_database),
    cache: QuoteCache = Depends(get_quote_cache),
) -> RouteService:
    return RouteService(database, cache)


def get_pricing_admin_service(
    database: Database = Depends(get_database),
    cache: QuoteCache = Depends(get_quote_cache),
) -> PricingAdminService:
    return PricingAdminService(database, cache)


def get_recurring_schedule_service(
    database: Database = Depends(get_database),
    cache: QuoteCache = Depends(get_quote_cache),
) -> RecurringScheduleService:
    return RecurringScheduleService(database, PriceResolver.from_database(database), cache)
