"""
Tests for recurring schedule templates and schedule generation.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from travelbook.core.exceptions import RecurringScheduleNotFoundError, RouteNotFoundError, ValidationError
from travelbook.models.pricing import PriceOverride, RecurringPriceRule
from travelbook.schemas.pricing import PriceOverrideSet, PriceRuleSet, RecurringScheduleCreate
from travelbook.schemas.schedule import ScheduleCreate
from travelbook.services.pricing_admin_service import PricingAdminService
from travelbook.services.pricing_service import PriceResolver, PricingService
from travelbook.services.recurring_schedule_service import RecurringScheduleService, matches_cadence
from travelbook.services.schedule_service import ScheduleService

TODAY = date(2030, 1, 1)  # a Tuesday


def template_data(route_id: int, **overrides) -> RecurringScheduleCreate:
    data = {
        "route_id": route_id,
        "start_date": TODAY,
        "end_date": TODAY + timedelta(days=13),
        "departure_time": "08:00",
        "arrival_time": "11:30",
    }
    data.update(overrides)
    return RecurringScheduleCreate(**data)


@pytest.fixture
def recurring(database):
    return RecurringScheduleService(database, clock=lambda: TODAY)


async def override_reasons(database, route_id: int) -> dict:
    async with database.session() as session:
        result = await session.execute(select(PriceOverride).where(PriceOverride.route_id == route_id))
        return {o.travel_date: (o.reason, o.price) for o in result.scalars().all()}


@pytest.mark.asyncio
async def test_daily_generation(recurring, database, route):
    template = await recurring.create(template_data(route.id))

    created = await recurring.generate_schedules(template.id, end_date=TODAY + timedelta(days=4))

    assert [s.travel_date for s in created] == [TODAY + timedelta(days=i) for i in range(5)]
    assert all(s.recurring_schedule_id == template.id for s in created)
    assert all(s.capacity == route.total_seats for s in created)


@pytest.mark.asyncio
async def test_weekly_generation(recurring, route):
    template = await recurring.create(
        template_data(route.id, recurrence_type="weekly", recurrence_days=["Monday", "Friday"])
    )

    created = await recurring.generate_schedules(template.id)

    assert [s.travel_date for s in created] == [
        date(2030, 1, 4), date(2030, 1, 7), date(2030, 1, 11), date(2030, 1, 14),
    ]


@pytest.mark.asyncio
async def test_generation_clamped_to_template_window(recurring, route):
    template = await recurring.create(template_data(route.id, end_date=TODAY + timedelta(days=2)))

    created = await recurring.generate_schedules(
        template.id, start_date=TODAY - timedelta(days=10), end_date=TODAY + timedelta(days=60)
    )

    assert [s.travel_date for s in created] == [TODAY, TODAY + timedelta(days=1), TODAY + timedelta(days=2)]


@pytest.mark.asyncio
async def test_generation_never_goes_into_the_past(database, route):
    service = RecurringScheduleService(database, clock=lambda: TODAY + timedelta(days=10))
    template = await service.create(template_data(route.id))

    created = await service.generate_schedules(template.id)

    assert [s.travel_date for s in created] == [TODAY + timedelta(days=d) for d in (10, 11, 12, 13)]


@pytest.mark.asyncio
async def test_existing_dates_are_skipped(recurring, database, route):
    manual = await ScheduleService(database).create_schedule(
        ScheduleCreate(route_id=route.id, travel_date=TODAY + timedelta(days=1))
    )
    template = await recurring.create(template_data(route.id))

    created = await recurring.generate_schedules(template.id, end_date=TODAY + timedelta(days=2))
    assert [s.travel_date for s in created] == [TODAY, TODAY + timedelta(days=2)]

    again = await recurring.generate_schedules(template.id, end_date=TODAY + timedelta(days=2))
    assert again == []

    untouched = await ScheduleService(database).get_schedule(manual.id)
    assert untouched.recurring_schedule_id is None


@pytest.mark.asyncio
async def test_capacity_override(recurring, route):
    template = await recurring.create(template_data(route.id, seat_capacity_override=20))
    created = await recurring.generate_schedules(template.id, end_date=TODAY)
    assert [s.capacity for s in created] == [20]
    assert [s.available_seats for s in created] == [20]


@pytest.mark.asyncio
async def test_generated_prices_are_pinned(recurring, database, route):
    template = await recurring.create(template_data(route.id))
    await recurring.set_price_rule(template.id, PriceRuleSet(price_multiplier=Decimal("2")))

    await recurring.generate_schedules(template.id, end_date=TODAY + timedelta(days=4))

    pinned = await override_reasons(database, route.id)
    assert pinned[TODAY] == ("recurring_schedule", Decimal("200.00"))
    # Saturday 2030-01-05 also carries the weekend surcharge
    assert pinned[date(2030, 1, 5)] == ("recurring_schedule", Decimal("220.00"))

    # Later rule edits do not reprice trips that already exist
    await recurring.set_price_rule(template.id, PriceRuleSet(fixed_price=Decimal("10.00")))
    pricing = PricingService(PriceResolver.from_database(database))
    assert await pricing.quote_price(route.id, TODAY, template.id) == Decimal("200.00")


@pytest.mark.asyncio
async def test_manual_override_is_kept(recurring, database, route):
    await PricingAdminService(database).set_price_override(
        PriceOverrideSet(route_id=route.id, travel_date=TODAY, price=Decimal("55.00"))
    )
    template = await recurring.create(template_data(route.id))

    created = await recurring.generate_schedules(template.id, end_date=TODAY + timedelta(days=1))

    assert len(created) == 2
    pinned = await override_reasons(database, route.id)
    assert pinned[TODAY] == ("manual", Decimal("55.00"))
    assert pinned[TODAY + timedelta(days=1)] == ("recurring_schedule", Decimal("100.00"))


@pytest.mark.asyncio
async def test_disabled_template_does_not_generate(recurring, route):
    template = await recurring.create(template_data(route.id))
    disabled = await recurring.disable(template.id)
    assert disabled.status == "disabled"

    with pytest.raises(ValidationError):
        await recurring.generate_schedules(template.id)


@pytest.mark.asyncio
async def test_generate_all_active(recurring, route):
    active = await recurring.create(template_data(route.id, end_date=TODAY + timedelta(days=1)))
    disabled = await recurring.create(template_data(route.id, start_date=TODAY + timedelta(days=5)))
    await recurring.disable(disabled.id)

    assert await recurring.generate_all_active() == {active.id: 2}


@pytest.mark.asyncio
async def test_price_rule_upsert(recurring, database, route):
    template = await recurring.create(template_data(route.id))

    await recurring.set_price_rule(template.id, PriceRuleSet(day_of_week="Saturday", price_multiplier=Decimal("1.2")))
    await recurring.set_price_rule(template.id, PriceRuleSet(day_of_week="Saturday", fixed_price=Decimal("70.00")))
    await recurring.set_price_rule(template.id, PriceRuleSet(price_multiplier=Decimal("0.8")))

    async with database.session() as session:
        result = await session.execute(
            select(RecurringPriceRule)
            .where(RecurringPriceRule.recurring_schedule_id == template.id)
            .order_by(RecurringPriceRule.id)
        )
        rules = [(r.day_of_week, r.price_multiplier, r.fixed_price) for r in result.scalars().all()]

    assert rules == [
        ("Saturday", Decimal("1.000"), Decimal("70.00")),
        (None, Decimal("0.800"), None),
    ]


@pytest.mark.asyncio
async def test_unknown_template_and_route(recurring):
    with pytest.raises(RecurringScheduleNotFoundError):
        await recurring.generate_schedules(999)
    with pytest.raises(RecurringScheduleNotFoundError):
        await recurring.set_price_rule(999, PriceRuleSet())
    with pytest.raises(RouteNotFoundError):
        await recurring.create(template_data(999))


def test_weekly_template_needs_days():
    with pytest.raises(ValueError):
        RecurringScheduleCreate(
            route_id=1,
            recurrence_type="weekly",
            start_date=TODAY,
            end_date=TODAY,
            departure_time="08:00",
            arrival_time="09:00",
        )
    with pytest.raises(ValueError):
        template_data(1, recurrence_type="weekly", recurrence_days=["Caturday"])
    with pytest.raises(ValueError):
        template_data(1, end_date=TODAY - timedelta(days=1))


def test_matches_cadence():
    class Template:
        recurrence_type = "weekly"
        recurrence_days = ["Tuesday"]

    assert matches_cadence(Template(), TODAY)
    assert not matches_cadence(Template(), TODAY + timedelta(days=1))
    Template.recurrence_type = "daily"
    assert matches_cadence(Template(), TODAY + timedelta(days=1))
