"""
Pydantic schemas for booking-related request/response validation.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

PHONE_RE = re.compile(r"^[\d\s\-\+\(\)]+$")


class PassengerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=0, le=120)
    gender: str = Field(..., min_length=1, max_length=20)
    passenger_type: str = Field("adult", pattern=r"^(adult|child|senior|student)$")
    # Optional explicit seat; passengers without one are paired with `seats` in order
    seat: Optional[Union[int, str]] = None


class BookingCreate(BaseModel):
    schedule_id: int = Field(..., gt=0)
    seats: list[Union[int, str]] = Field(..., min_length=1, max_length=10)
    passengers: list[PassengerCreate] = Field(..., min_length=1, max_length=10)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=10, max_length=30)
    payment_method: Optional[str] = Field(None, max_length=50)
    total_amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    discount_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    tax_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    final_amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    user_id: Optional[int] = Field(None, gt=0)

    @field_validator("contact_phone")
    @classmethod
    def phone_has_enough_digits(cls, value: str) -> str:
        digits = re.sub(r"\D", "", value)
        if not PHONE_RE.match(value) or len(digits) < 10:
            raise ValueError("Phone number must contain at least 10 digits")
        return value

    @model_validator(mode="after")
    def one_passenger_per_seat(self) -> "BookingCreate":
        if len(self.seats) != len(self.passengers):
            raise ValueError("Number of seats must match number of passengers")
        return self


class PassengerResponse(BaseModel):
    seat: str
    first_name: str
    last_name: str
    age: int
    gender: str
    passenger_type: str

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    booking_ref: str
    pnr: str
    user_id: Optional[int]
    route_id: int
    schedule_id: int
    travel_date: date
    seat_labels: list[str]
    passengers: list[PassengerResponse]
    total_amount: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    final_amount: Decimal
    payment_method: Optional[str]
    payment_status: str
    booking_status: str
    contact_email: str
    contact_phone: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
    released_seats: list[str]
