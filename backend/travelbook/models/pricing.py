"""
Pricing inputs: date overrides, recurring schedule templates with their
price rules, and the holiday calendar. All curated by admins, read by the
price resolver.
"""

from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from travelbook.db.base import Base, TimestampMixin


class PriceOverride(Base, TimestampMixin):
    __tablename__ = "price_overrides"

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False)
    travel_date = Column(Date, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    reason = Column(String(50), nullable=False, default="manual")  # manual, recurring_schedule

    __table_args__ = (
        UniqueConstraint("route_id", "travel_date", name="uq_price_override_route_date"),
        CheckConstraint("price >= 0", name="check_price_override_non_negative"),
    )


class RecurringSchedule(Base, TimestampMixin):
    __tablename__ = "recurring_schedules"

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    recurrence_type = Column(String(20), nullable=False, default="daily")  # daily, weekly
    recurrence_days = Column(JSON, nullable=True)  # ["Monday", "Friday"] for weekly
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    departure_time = Column(String(5), nullable=False)
    arrival_time = Column(String(5), nullable=False)
    seat_capacity_override = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active, disabled

    __table_args__ = (
        CheckConstraint("recurrence_type IN ('daily', 'weekly')", name="check_recurrence_type"),
        CheckConstraint("end_date >= start_date", name="check_recurring_date_range"),
    )


class RecurringPriceRule(Base, TimestampMixin):
    __tablename__ = "recurring_price_rules"

    id = Column(Integer, primary_key=True, index=True)
    recurring_schedule_id = Column(
        Integer, ForeignKey("recurring_schedules.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week = Column(String(10), nullable=True)  # None applies to any day
    price_multiplier = Column(Numeric(6, 3), nullable=False, default=Decimal("1"))
    fixed_price = Column(Numeric(10, 2), nullable=True)

    __table_args__ = (
        Index("ix_recurring_price_rules_schedule_day", "recurring_schedule_id", "day_of_week"),
        CheckConstraint("price_multiplier > 0", name="check_price_rule_multiplier_positive"),
    )


class Holiday(Base, TimestampMixin):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    type = Column(String(50), nullable=False, default="national")
    is_recurring = Column(Boolean, nullable=False, default=False)
    price_multiplier = Column(Numeric(6, 3), nullable=False, default=Decimal("1.5"))

    __table_args__ = (
        CheckConstraint("price_multiplier > 0", name="check_holiday_multiplier_positive"),
    )
