"""
Recurring schedule templates: creation, price rules and schedule generation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from travelbook.api.dependencies import get_recurring_schedule_service
from travelbook.schemas.pricing import (
    GenerateSchedulesRequest,
    GenerateSchedulesResponse,
    PriceRuleResponse,
    PriceRuleSet,
    RecurringScheduleCreate,
    RecurringScheduleResponse,
)
from travelbook.services.recurring_schedule_service import RecurringScheduleService

router = APIRouter(prefix="/recurring-schedules", tags=["Recurring Schedules"])


@router.post("/", response_model=RecurringScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_schedule(
    template_data: RecurringScheduleCreate,
    recurring: RecurringScheduleService = Depends(get_recurring_schedule_service),
):
    return await recurring.create(template_data)


@router.put("/{recurring_schedule_id}/price-rules", response_model=PriceRuleResponse)
async def set_price_rule(
    recurring_schedule_id: int,
    rule_data: PriceRuleSet,
    recurring: RecurringScheduleService = Depends(get_recurring_schedule_service),
):
    """Create or replace the rule for a weekday, or the any-day rule when day_of_week is omitted."""
    return await recurring.set_price_rule(recurring_schedule_id, rule_data)


@router.post("/{recurring_schedule_id}/generate", response_model=GenerateSchedulesResponse)
async def generate_schedules(
    recurring_schedule_id: int,
    window: Optional[GenerateSchedulesRequest] = None,
    recurring: RecurringScheduleService = Depends(get_recurring_schedule_service),
):
    """Create the schedules the template is missing. Dates that already have a schedule are skipped."""
    window = window or GenerateSchedulesRequest()
    created = await recurring.generate_schedules(recurring_schedule_id, window.start_date, window.end_date)
    return GenerateSchedulesResponse(
        recurring_schedule_id=recurring_schedule_id,
        created=len(created),
        schedule_ids=[s.id for s in created],
    )


@router.post("/{recurring_schedule_id}/disable", response_model=RecurringScheduleResponse)
async def disable_recurring_schedule(
    recurring_schedule_id: int,
    recurring: RecurringScheduleService = Depends(get_recurring_schedule_service),
):
    return await recurring.disable(recurring_schedule_id)
