from travelbook.schemas.booking import BookingCreate, BookingResponse, BookingCancelResponse, PassengerCreate
from travelbook.schemas.schedule import (
    ScheduleCreate, ScheduleResponse, SeatAvailabilityResponse, ScheduleCancellationResponse,
)
from travelbook.schemas.route import OperatorCreate, RouteCreate, RouteUpdate, RouteResponse, QuoteResponse

__all__ = [
    "BookingCreate", "BookingResponse", "BookingCancelResponse", "PassengerCreate",
    "ScheduleCreate", "ScheduleResponse", "SeatAvailabilityResponse", "ScheduleCancellationResponse",
    "OperatorCreate", "RouteCreate", "RouteUpdate", "RouteResponse", "QuoteResponse",
]
