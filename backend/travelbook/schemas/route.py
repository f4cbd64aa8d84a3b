"""
Pydantic schemas for operators and routes.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class OperatorCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., min_length=1, max_length=255)


class OperatorResponse(BaseModel):
    id: int
    name: str
    is_active: bool

    model_config = {"from_attributes": True}


class RouteCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    operator_id: int = Field(..., gt=0)
    from_city: str = Field(..., min_length=1, max_length=255)
    to_city: str = Field(..., min_length=1, max_length=255)
    departure_time: str = Field(..., pattern=TIME_PATTERN)
    arrival_time: str = Field(..., pattern=TIME_PATTERN)
    vehicle_type: str = Field(..., min_length=1, max_length=100)
    transport_type: str = Field("bus", pattern=r"^(bus|train|flight)$")
    total_seats: int = Field(..., gt=0, le=104)
    base_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class RouteUpdate(BaseModel):
    base_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    status: Optional[str] = Field(None, pattern=r"^(active|inactive)$")


class RouteResponse(BaseModel):
    id: int
    operator_id: int
    from_city: str
    to_city: str
    departure_time: str
    arrival_time: str
    vehicle_type: str
    transport_type: str
    total_seats: int
    base_price: Decimal
    status: str

    model_config = {"from_attributes": True}


class QuoteResponse(BaseModel):
    route_id: int
    travel_date: str
    recurring_schedule_id: Optional[int]
    price: Decimal
