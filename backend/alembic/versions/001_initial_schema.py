"""Initial schema: routes, schedules, bookings, seat ledger and pricing data.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Operators
    op.create_table(
        "operators",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_operators_id", "operators", ["id"])

    # Routes
    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("operator_id", sa.Integer(), sa.ForeignKey("operators.id"), nullable=False),
        sa.Column("from_city", sa.String(255), nullable=False),
        sa.Column("to_city", sa.String(255), nullable=False),
        sa.Column("departure_time", sa.String(5), nullable=False),
        sa.Column("arrival_time", sa.String(5), nullable=False),
        sa.Column("vehicle_type", sa.String(100), nullable=False),
        sa.Column("transport_type", sa.String(20), nullable=False, server_default=sa.text("'bus'")),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        *_timestamps(),
        sa.UniqueConstraint(
            "operator_id", "from_city", "to_city", "departure_time",
            name="uq_route_operator_leg_departure",
        ),
        sa.CheckConstraint("total_seats > 0", name="check_route_total_seats_positive"),
        sa.CheckConstraint("base_price >= 0", name="check_route_base_price_non_negative"),
        sa.CheckConstraint("transport_type IN ('bus', 'train', 'flight')", name="check_route_transport_type"),
        sa.CheckConstraint("status IN ('active', 'inactive')", name="check_route_status"),
    )
    op.create_index("ix_routes_id", "routes", ["id"])
    op.create_index("ix_routes_operator_id", "routes", ["operator_id"])

    # Recurring schedule templates and their price rules
    op.create_table(
        "recurring_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("recurrence_type", sa.String(20), nullable=False, server_default=sa.text("'daily'")),
        sa.Column("recurrence_days", sa.JSON(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.String(5), nullable=False),
        sa.Column("arrival_time", sa.String(5), nullable=False),
        sa.Column("seat_capacity_override", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        *_timestamps(),
        sa.CheckConstraint("recurrence_type IN ('daily', 'weekly')", name="check_recurrence_type"),
        sa.CheckConstraint("end_date >= start_date", name="check_recurring_date_range"),
    )
    op.create_index("ix_recurring_schedules_id", "recurring_schedules", ["id"])
    op.create_index("ix_recurring_schedules_route_id", "recurring_schedules", ["route_id"])

    op.create_table(
        "recurring_price_rules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "recurring_schedule_id",
            sa.Integer(),
            sa.ForeignKey("recurring_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.String(10), nullable=True),
        sa.Column("price_multiplier", sa.Numeric(6, 3), nullable=False, server_default=sa.text("1")),
        sa.Column("fixed_price", sa.Numeric(10, 2), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price_multiplier > 0", name="check_price_rule_multiplier_positive"),
    )
    op.create_index("ix_recurring_price_rules_id", "recurring_price_rules", ["id"])
    op.create_index(
        "ix_recurring_price_rules_schedule_day",
        "recurring_price_rules",
        ["recurring_schedule_id", "day_of_week"],
    )

    # Schedules: one dated trip per route per day
    op.create_table(
        "schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column(
            "recurring_schedule_id", sa.Integer(), sa.ForeignKey("recurring_schedules.id"), nullable=True
        ),
        sa.Column("travel_date", sa.Date(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint("route_id", "travel_date", name="uq_schedule_route_date"),
        sa.CheckConstraint("capacity > 0", name="check_schedule_capacity_positive"),
        sa.CheckConstraint("available_seats >= 0", name="check_schedule_available_non_negative"),
        sa.CheckConstraint("available_seats <= capacity", name="check_schedule_available_lte_capacity"),
    )
    op.create_index("ix_schedules_id", "schedules", ["id"])
    op.create_index("ix_schedules_route_id", "schedules", ["route_id"])
    op.create_index("ix_schedules_travel_date", "schedules", ["travel_date"])

    # Bookings and passengers
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_ref", sa.String(20), nullable=False),
        sa.Column("pnr", sa.String(20), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("schedules.id"), nullable=False),
        sa.Column("travel_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("final_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'completed'")),
        sa.Column("booking_status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(30), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "booking_status IN ('confirmed', 'cancelled', 'completed')", name="check_booking_status"
        ),
        sa.CheckConstraint("payment_status IN ('completed', 'refunded')", name="check_booking_payment_status"),
        sa.CheckConstraint("final_amount >= 0", name="check_booking_final_amount_non_negative"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_booking_ref", "bookings", ["booking_ref"])
    op.create_index("ix_bookings_pnr", "bookings", ["pnr"], unique=True)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_schedule_id", "bookings", ["schedule_id"])
    # The lifecycle sweeper scans confirmed bookings by travel date
    op.create_index("ix_bookings_status_travel_date", "bookings", ["booking_status", "travel_date"])

    op.create_table(
        "passengers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(20), nullable=False),
        sa.Column("passenger_type", sa.String(20), nullable=False, server_default=sa.text("'adult'")),
        *_timestamps(),
        sa.CheckConstraint("age >= 0", name="check_passenger_age_non_negative"),
    )
    op.create_index("ix_passengers_id", "passengers", ["id"])
    op.create_index("ix_passengers_booking_id", "passengers", ["booking_id"])

    # Seat ledger
    op.create_table(
        "seat_reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("schedules.id"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'booked'")),
        *_timestamps(),
        sa.CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
        sa.CheckConstraint("status IN ('booked', 'cancelled', 'completed')", name="check_seat_status"),
    )
    op.create_index("ix_seat_reservations_id", "seat_reservations", ["id"])
    op.create_index("ix_seat_reservations_booking_id", "seat_reservations", ["booking_id"])
    op.create_index("ix_seat_reservations_schedule_status", "seat_reservations", ["schedule_id", "status"])
    # PARTIAL UNIQUE INDEX: at most one booked row per (schedule, seat).
    # Two transactions inserting the same booked seat serialize on this index
    # entry; the second one fails. Cancelled and completed rows are history and
    # do not block the seat.
    op.create_index(
        "uq_seat_reservations_schedule_seat_booked",
        "seat_reservations",
        ["schedule_id", "seat_number"],
        unique=True,
        postgresql_where=sa.text("status = 'booked'"),
        sqlite_where=sa.text("status = 'booked'"),
    )

    # Pricing data
    op.create_table(
        "price_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("travel_date", sa.Date(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("reason", sa.String(50), nullable=False, server_default=sa.text("'manual'")),
        *_timestamps(),
        sa.UniqueConstraint("route_id", "travel_date", name="uq_price_override_route_date"),
        sa.CheckConstraint("price >= 0", name="check_price_override_non_negative"),
    )
    op.create_index("ix_price_overrides_id", "price_overrides", ["id"])

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default=sa.text("'national'")),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("price_multiplier", sa.Numeric(6, 3), nullable=False, server_default=sa.text("1.5")),
        *_timestamps(),
        sa.CheckConstraint("price_multiplier > 0", name="check_holiday_multiplier_positive"),
    )
    op.create_index("ix_holidays_id", "holidays", ["id"])
    op.create_index("ix_holidays_date", "holidays", ["date"])


def downgrade() -> None:
    op.drop_table("holidays")
    op.drop_table("price_overrides")
    op.drop_table("seat_reservations")
    op.drop_table("passengers")
    op.drop_table("bookings")
    op.drop_table("schedules")
    op.drop_table("recurring_price_rules")
    op.drop_table("recurring_schedules")
    op.drop_table("routes")
    op.drop_table("operators")
