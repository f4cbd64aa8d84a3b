"""
Route catalog administration: operators and route templates.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from travelbook.core.exceptions import ConflictError, OperatorNotFoundError, RouteNotFoundError
from travelbook.core.logging import get_logger
from travelbook.db.session import Database
from travelbook.models.route import Operator, Route
from travelbook.schemas.route import OperatorCreate, RouteCreate, RouteUpdate
from travelbook.services.cache_service import QuoteCache

logger = get_logger(__name__)


class RouteService:
    def __init__(self, database: Database, cache: Optional[QuoteCache] = None):
        self.database = database
        self.cache = cache or QuoteCache(None)

    async def create_operator(self, data: OperatorCreate) -> Operator:
        async with self.database.session() as session:
            existing = await session.execute(select(Operator.id).where(Operator.name == data.name))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(f"Operator '{data.name}' already exists")

            operator = Operator(name=data.name, is_active=True)
            session.add(operator)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError(f"Operator '{data.name}' already exists")

        logger.info("operator_created", operator_id=operator.id, name=operator.name)
        return operator

    async def create_route(self, data: RouteCreate) -> Route:
        """Raises ConflictError when the operator already runs this leg at this time."""
        async with self.database.session() as session:
            operator = await session.get(Operator, data.operator_id)
            if operator is None:
                raise OperatorNotFoundError(data.operator_id)

            duplicate = await session.execute(
                select(Route.id).where(
                    Route.operator_id == data.operator_id,
                    Route.from_city == data.from_city,
                    Route.to_city == data.to_city,
                    Route.departure_time == data.departure_time,
                )
            )
            if duplicate.scalar_one_or_none() is not None:
                raise ConflictError(
                    f"Operator {data.operator_id} already runs {data.from_city} -> {data.to_city} "
                    f"at {data.departure_time}"
                )

            route = Route(**data.model_dump(), status="active")
            session.add(route)
            try:
                await session.commit()
            except IntegrityError:
                # A concurrent create won the unique constraint
                await session.rollback()
                raise ConflictError(
                    f"Operator {data.operator_id} already runs {data.from_city} -> {data.to_city} "
                    f"at {data.departure_time}"
                )
            route_id = route.id

        logger.info(
            "route_created",
            route_id=route_id,
            operator_id=data.operator_id,
            leg=f"{data.from_city}->{data.to_city}",
        )
        return await self.get_route(route_id)

    async def update_route(self, route_id: int, data: RouteUpdate) -> Route:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        async with self.database.session() as session:
            route = await session.get(Route, route_id)
            if route is None:
                raise RouteNotFoundError(route_id)
            for key, value in changes.items():
                setattr(route, key, value)
            await session.commit()

        if changes:
            await self.cache.invalidate()
            logger.info("route_updated", route_id=route_id, fields=sorted(changes))
        return route

    async def get_route(self, route_id: int) -> Route:
        async with self.database.session() as session:
            route = await session.get(Route, route_id)
            if route is None:
                raise RouteNotFoundError(route_id)
            return route
