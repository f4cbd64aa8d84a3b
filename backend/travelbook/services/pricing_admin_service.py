"""
Admin edits to pricing data. Every change drops the cached quotes.
"""

from datetime import date
from typing import Optional

from sqlalchemy import delete, extract, select

from travelbook.core.exceptions import NotFoundError, RouteNotFoundError
from travelbook.core.logging import get_logger
from travelbook.db.session import Database
from travelbook.models.pricing import Holiday, PriceOverride
from travelbook.models.route import Route
from travelbook.schemas.pricing import HolidayCreate, PriceOverrideSet
from travelbook.services.cache_service import QuoteCache

logger = get_logger(__name__)


class PricingAdminService:
    def __init__(self, database: Database, cache: Optional[QuoteCache] = None):
        self.database = database
        self.cache = cache or QuoteCache(None)

    async def set_price_override(self, data: PriceOverrideSet) -> PriceOverride:
        async with self.database.session() as session:
            if await session.get(Route, data.route_id) is None:
                raise RouteNotFoundError(data.route_id)

            result = await session.execute(
                select(PriceOverride).where(
                    PriceOverride.route_id == data.route_id,
                    PriceOverride.travel_date == data.travel_date,
                )
            )
            override = result.scalar_one_or_none()
            if override is None:
                override = PriceOverride(route_id=data.route_id, travel_date=data.travel_date)
                session.add(override)
            override.price = data.price
            override.reason = data.reason
            await session.commit()

        await self.cache.invalidate()
        logger.info(
            "price_override_set",
            route_id=data.route_id,
            travel_date=data.travel_date.isoformat(),
            price=str(data.price),
        )
        return override

    async def delete_price_override(self, route_id: int, travel_date: date) -> None:
        async with self.database.session() as session:
            result = await session.execute(
                delete(PriceOverride).where(
                    PriceOverride.route_id == route_id,
                    PriceOverride.travel_date == travel_date,
                )
            )
            await session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"No price override for route {route_id} on {travel_date}")

        await self.cache.invalidate()
        logger.info("price_override_deleted", route_id=route_id, travel_date=travel_date.isoformat())

    async def create_holiday(self, data: HolidayCreate) -> Holiday:
        async with self.database.session() as session:
            holiday = Holiday(**data.model_dump())
            session.add(holiday)
            await session.commit()

        await self.cache.invalidate()
        logger.info(
            "holiday_created",
            name=holiday.name,
            date=holiday.date.isoformat(),
            multiplier=str(holiday.price_multiplier),
        )
        return holiday

    async def list_holidays(self, year: Optional[int] = None) -> list[Holiday]:
        """Holidays in date order. With a year, recurring holidays from any year are included."""
        query = select(Holiday).order_by(Holiday.date, Holiday.id)
        if year is not None:
            query = query.where(
                (extract("year", Holiday.date) == year) | Holiday.is_recurring.is_(True)
            )
        async with self.database.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
