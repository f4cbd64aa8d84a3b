"""
Pydantic schemas for pricing data: overrides, holidays, recurring schedules.
"""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from travelbook.services.pricing_service import DAY_NAMES


class PriceOverrideSet(BaseModel):
    route_id: int = Field(..., gt=0)
    travel_date: date
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    reason: str = Field("manual", max_length=50)


class PriceOverrideResponse(BaseModel):
    id: int
    route_id: int
    travel_date: date
    price: Decimal
    reason: str

    model_config = {"from_attributes": True}


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    date: date
    type: str = Field("national", max_length=50)
    is_recurring: bool = False
    price_multiplier: Decimal = Field(Decimal("1.5"), gt=0, max_digits=6, decimal_places=3)


class HolidayResponse(BaseModel):
    id: int
    name: str
    date: date
    type: str
    is_recurring: bool
    price_multiplier: Decimal

    model_config = {"from_attributes": True}


class RecurringScheduleCreate(BaseModel):
    route_id: int = Field(..., gt=0)
    recurrence_type: Literal["daily", "weekly"] = "daily"
    recurrence_days: Optional[list[str]] = None
    start_date: date
    end_date: date
    departure_time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    arrival_time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    seat_capacity_override: Optional[int] = Field(None, gt=0, le=104)

    @model_validator(mode="after")
    def check_cadence(self) -> "RecurringScheduleCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.recurrence_type == "weekly":
            if not self.recurrence_days:
                raise ValueError("weekly schedules need recurrence_days")
            unknown = [d for d in self.recurrence_days if d not in DAY_NAMES]
            if unknown:
                raise ValueError(f"Unknown weekday names: {', '.join(unknown)}")
        return self


class RecurringScheduleResponse(BaseModel):
    id: int
    route_id: int
    recurrence_type: str
    recurrence_days: Optional[list[str]]
    start_date: date
    end_date: date
    departure_time: str
    arrival_time: str
    seat_capacity_override: Optional[int]
    status: str

    model_config = {"from_attributes": True}


class PriceRuleSet(BaseModel):
    day_of_week: Optional[str] = None
    price_multiplier: Decimal = Field(Decimal("1"), gt=0, max_digits=6, decimal_places=3)
    fixed_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def check_day(self) -> "PriceRuleSet":
        if self.day_of_week is not None and self.day_of_week not in DAY_NAMES:
            raise ValueError(f"Unknown weekday name: {self.day_of_week}")
        return self


class PriceRuleResponse(BaseModel):
    id: int
    recurring_schedule_id: int
    day_of_week: Optional[str]
    price_multiplier: Decimal
    fixed_price: Optional[Decimal]

    model_config = {"from_attributes": True}


class GenerateSchedulesRequest(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class GenerateSchedulesResponse(BaseModel):
    recurring_schedule_id: int
    created: int
    schedule_ids: list[int]
