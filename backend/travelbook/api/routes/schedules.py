"""
Schedule endpoints: creation, seat maps and the cancellation cascade.
"""

from fastapi import APIRouter, Depends, status

from travelbook.api.dependencies import get_cancellation_cascade, get_quote_cache, get_schedule_service
from travelbook.schemas.booking import BookingResponse
from travelbook.schemas.schedule import (
    ScheduleCancellationResponse,
    ScheduleCreate,
    ScheduleResponse,
    SeatAvailabilityResponse,
)
from travelbook.services.cache_service import QuoteCache
from travelbook.services.cancellation_service import CancellationCascade
from travelbook.services.schedule_service import ScheduleService

router = APIRouter(prefix="/schedules", tags=["Schedules"])


@router.post("/", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    schedule_data: ScheduleCreate,
    schedules: ScheduleService = Depends(get_schedule_service),
):
    """Create one dated trip of a route. Capacity defaults to the route's seat count."""
    return await schedules.create_schedule(schedule_data)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: int, schedules: ScheduleService = Depends(get_schedule_service)):
    return await schedules.get_schedule(schedule_id)


@router.get("/{schedule_id}/seats", response_model=SeatAvailabilityResponse)
async def get_seat_availability(
    schedule_id: int,
    schedules: ScheduleService = Depends(get_schedule_service),
):
    """Seat map with display labels. Always read from the seat ledger, never cached."""
    availability = await schedules.get_seat_availability(schedule_id)
    return SeatAvailabilityResponse.model_validate(availability)


@router.post("/{schedule_id}/cancel", response_model=ScheduleCancellationResponse)
async def cancel_schedule(
    schedule_id: int,
    cascade: CancellationCascade = Depends(get_cancellation_cascade),
    cache: QuoteCache = Depends(get_quote_cache),
):
    """
    Cancel a schedule. Every confirmed booking on it is cancelled and refunded
    and its seats are released; the affected bookings are returned so the
    caller can notify travellers.
    """
    result = await cascade.cancel_schedule(schedule_id)
    # Cancelled schedules drop out of listings
    await cache.invalidate()
    return ScheduleCancellationResponse(
        schedule=ScheduleResponse.model_validate(result.schedule),
        affected_bookings=[BookingResponse.model_validate(b) for b in result.affected_bookings],
    )
