"""
Pytest fixtures for the test database, HTTP client and seed data.

Every test gets its own database: a fresh SQLite file under tmp_path by
default, or TEST_DATABASE_URL (e.g. a PostgreSQL test database) whose tables
are created before and dropped after each test.
"""

import os

# Settings are read once at import time; configure them before the app loads.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("AUTO_COMPLETE_ENABLED", "false")
os.environ.setdefault("BOOKING_RETRY_DELAY_MS", "5")

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from travelbook.db.session import Database, get_database
from travelbook.main import app
from travelbook.models.route import Route
from travelbook.models.schedule import Schedule
from travelbook.schemas.route import OperatorCreate, RouteCreate
from travelbook.schemas.schedule import ScheduleCreate
from travelbook.services.booking_service import BookingCoordinator
from travelbook.services.route_service import RouteService
from travelbook.services.schedule_service import ScheduleService


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Create tables, yield the handle, then drop tables for isolation."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'travelbook_test.db'}"
    db = Database(url)
    await db.drop_all()
    await db.create_all()

    yield db

    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests run against the test database."""
    app.dependency_overrides[get_database] = lambda: database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def route(database: Database) -> Route:
    """A 48-seat bus route priced at 100.00."""
    service = RouteService(database)
    operator = await service.create_operator(OperatorCreate(name="Test Lines"))
    return await service.create_route(
        RouteCreate(
            operator_id=operator.id,
            from_city="Springfield",
            to_city="Shelbyville",
            departure_time="08:00",
            arrival_time="11:30",
            vehicle_type="Volvo B9R",
            transport_type="bus",
            total_seats=48,
            base_price=Decimal("100.00"),
        )
    )


@pytest_asyncio.fixture
async def schedule(database: Database, route: Route) -> Schedule:
    """The route's trip thirty days from now, all 48 seats free."""
    return await ScheduleService(database).create_schedule(
        ScheduleCreate(route_id=route.id, travel_date=date.today() + timedelta(days=30))
    )


@pytest.fixture
def coordinator(database: Database) -> BookingCoordinator:
    return BookingCoordinator(database, retry_delay=0)


@pytest.fixture
def booking_payload():
    """Builds a valid booking request: one passenger per seat."""

    def build(schedule_id: int, seats: list, **overrides) -> dict:
        payload = {
            "schedule_id": schedule_id,
            "seats": seats,
            "passengers": [
                {
                    "first_name": f"Traveller{i}",
                    "last_name": "Test",
                    "age": 30 + i,
                    "gender": "female" if i % 2 else "male",
                }
                for i in range(len(seats))
            ],
            "contact_email": "traveller@example.com",
            "contact_phone": "+1 (555) 010-2030",
            "payment_method": "card",
            "total_amount": "200.00",
            "discount_amount": "0.00",
            "tax_amount": "0.00",
            "final_amount": "200.00",
        }
        payload.update(overrides)
        return payload

    return build
