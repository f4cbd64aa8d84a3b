"""
Pydantic schemas for schedules, seat maps and cancellation results.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from travelbook.schemas.booking import BookingResponse


class ScheduleCreate(BaseModel):
    route_id: int = Field(..., gt=0)
    travel_date: date
    capacity: Optional[int] = Field(None, gt=0, le=104)


class ScheduleResponse(BaseModel):
    id: int
    route_id: int
    recurring_schedule_id: Optional[int]
    travel_date: date
    capacity: int
    available_seats: int
    is_cancelled: bool

    model_config = {"from_attributes": True}


class ScheduleQuoteResponse(ScheduleResponse):
    price: Decimal


class SeatAvailabilityResponse(BaseModel):
    schedule_id: int
    total_seats: int
    available_seats: list[str]
    booked_seats: list[str]
    available_count: int
    booked_count: int

    model_config = {"from_attributes": True}


class ScheduleCancellationResponse(BaseModel):
    schedule: ScheduleResponse
    affected_bookings: list[BookingResponse]

    model_config = {"from_attributes": True}
