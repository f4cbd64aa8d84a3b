"""
Tests for operator and route administration.
"""

from datetime import date
from decimal import Decimal

import fakeredis.aioredis
import pytest
import pytest_asyncio

from travelbook.core.exceptions import ConflictError, OperatorNotFoundError, RouteNotFoundError
from travelbook.schemas.route import OperatorCreate, RouteCreate, RouteUpdate
from travelbook.services.cache_service import QuoteCache
from travelbook.services.pricing_service import PriceResolver, PricingService
from travelbook.services.route_service import RouteService

WEDNESDAY = date(2030, 1, 2)


def route_data(operator_id: int, **overrides) -> RouteCreate:
    data = {
        "operator_id": operator_id,
        "from_city": "Ogdenville",
        "to_city": "North Haverbrook",
        "departure_time": "06:15",
        "arrival_time": "09:00",
        "vehicle_type": "Monorail",
        "transport_type": "train",
        "total_seats": 60,
        "base_price": Decimal("35.50"),
    }
    data.update(overrides)
    return RouteCreate(**data)


@pytest_asyncio.fixture
async def redis_client():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.mark.asyncio
async def test_create_route(database):
    service = RouteService(database)
    operator = await service.create_operator(OperatorCreate(name="  Lanley Transit  "))
    route = await service.create_route(route_data(operator.id, from_city="  Ogdenville "))

    assert operator.name == "Lanley Transit"
    assert route.from_city == "Ogdenville"
    assert route.status == "active"
    assert route.is_active
    assert route.operator.name == "Lanley Transit"


@pytest.mark.asyncio
async def test_duplicate_operator(database):
    service = RouteService(database)
    await service.create_operator(OperatorCreate(name="Lanley Transit"))
    with pytest.raises(ConflictError):
        await service.create_operator(OperatorCreate(name="Lanley Transit"))


@pytest.mark.asyncio
async def test_duplicate_route(database):
    service = RouteService(database)
    operator = await service.create_operator(OperatorCreate(name="Lanley Transit"))
    await service.create_route(route_data(operator.id))

    with pytest.raises(ConflictError):
        await service.create_route(route_data(operator.id, vehicle_type="Bus"))

    # Another departure time is a different route
    other = await service.create_route(route_data(operator.id, departure_time="18:15"))
    assert other.departure_time == "18:15"


@pytest.mark.asyncio
async def test_route_for_unknown_operator(database):
    with pytest.raises(OperatorNotFoundError):
        await RouteService(database).create_route(route_data(99))


@pytest.mark.asyncio
async def test_update_and_get_route(database, route):
    service = RouteService(database)
    updated = await service.update_route(route.id, RouteUpdate(base_price=Decimal("120.00")))
    assert updated.base_price == Decimal("120.00")

    fetched = await service.get_route(route.id)
    assert fetched.base_price == Decimal("120.00")
    assert fetched.status == "active"

    with pytest.raises(RouteNotFoundError):
        await service.get_route(404)
    with pytest.raises(RouteNotFoundError):
        await service.update_route(404, RouteUpdate(status="inactive"))


@pytest.mark.asyncio
async def test_price_change_invalidates_cached_quotes(database, route, redis_client):
    cache = QuoteCache(redis_client, ttl=60)
    pricing = PricingService(PriceResolver.from_database(database), cache=cache)

    assert await pricing.quote_price(route.id, WEDNESDAY) == Decimal("100.00")
    assert await cache.get(route.id, WEDNESDAY) == Decimal("100.00")

    await RouteService(database, cache=cache).update_route(route.id, RouteUpdate(base_price=Decimal("80.00")))

    assert await cache.get(route.id, WEDNESDAY) is None
    assert await pricing.quote_price(route.id, WEDNESDAY) == Decimal("80.00")
