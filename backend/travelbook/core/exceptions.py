"""
Domain error taxonomy for the booking engine.

Services raise these instead of HTTP errors; the API layer renders them
through a single exception handler using `status_code` and `to_payload()`.
"""

from typing import Iterable


class BookingEngineError(Exception):
    """Base class for every error the booking engine raises on purpose."""

    status_code: int = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)

    def to_payload(self) -> dict:
        return {"detail": self.detail, "error": type(self).__name__}


class ValidationError(BookingEngineError):
    """Malformed or missing input. Raised before any write happens."""

    status_code = 422


class SeatUnavailableError(BookingEngineError):
    """One or more requested seats are already booked on the schedule."""

    status_code = 409

    def __init__(self, seats: Iterable[str]):
        self.seats = list(seats)
        super().__init__(
            f"Seats {', '.join(self.seats)} are no longer available. "
            "Please select different seats."
        )

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["unavailable_seats"] = self.seats
        return payload


class NotFoundError(BookingEngineError):
    status_code = 404


class ScheduleNotFoundError(NotFoundError):
    def __init__(self, schedule_id: int, reason: str = "not found"):
        self.schedule_id = schedule_id
        super().__init__(f"Schedule {schedule_id} {reason}")


class RouteNotFoundError(NotFoundError):
    def __init__(self, route_id: int, reason: str = "not found"):
        self.route_id = route_id
        super().__init__(f"Route {route_id} {reason}")


class OperatorNotFoundError(NotFoundError):
    def __init__(self, operator_id: int):
        self.operator_id = operator_id
        super().__init__(f"Operator {operator_id} not found")


class BookingNotFoundError(NotFoundError):
    def __init__(self, reference):
        self.reference = reference
        super().__init__(f"Booking {reference} not found")


class RecurringScheduleNotFoundError(NotFoundError):
    def __init__(self, recurring_schedule_id: int):
        self.recurring_schedule_id = recurring_schedule_id
        super().__init__(f"Recurring schedule {recurring_schedule_id} not found")


class ConflictError(BookingEngineError):
    """Uniqueness violation unrelated to seats (duplicate route, schedule, operator)."""

    status_code = 409


class InvalidBookingStateError(BookingEngineError):
    """The booking is in a terminal state that forbids the requested change."""

    status_code = 400
