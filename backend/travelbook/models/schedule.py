"""
Schedule model: one date-specific instance of a Route.

Key design decisions:
- `available_seats` is a cache. The seat_reservations table is authoritative;
  the column is rewritten from it by the paths that release seats.
- Unique (route_id, travel_date): a route runs at most once per day.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from travelbook.db.base import Base, TimestampMixin


class Schedule(Base, TimestampMixin):
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    recurring_schedule_id = Column(Integer, ForeignKey("recurring_schedules.id"), nullable=True)
    travel_date = Column(Date, nullable=False)
    capacity = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    is_cancelled = Column(Boolean, nullable=False, default=False)

    route = relationship("Route", lazy="joined")

    __table_args__ = (
        UniqueConstraint("route_id", "travel_date", name="uq_schedule_route_date"),
        CheckConstraint("capacity > 0", name="check_schedule_capacity_positive"),
        CheckConstraint("available_seats >= 0", name="check_schedule_available_non_negative"),
        CheckConstraint("available_seats <= capacity", name="check_schedule_available_lte_capacity"),
        Index("ix_schedules_travel_date", "travel_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Schedule(id={self.id}, route={self.route_id}, date={self.travel_date}, "
            f"available={self.available_seats}/{self.capacity}, cancelled={self.is_cancelled})>"
        )
