from travelbook.models.route import Operator, Route
from travelbook.models.schedule import Schedule
from travelbook.models.booking import Booking, Passenger, SeatReservation
from travelbook.models.pricing import Holiday, PriceOverride, RecurringPriceRule, RecurringSchedule

__all__ = [
    "Operator", "Route", "Schedule",
    "Booking", "Passenger", "SeatReservation",
    "Holiday", "PriceOverride", "RecurringPriceRule", "RecurringSchedule",
]
