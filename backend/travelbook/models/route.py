"""
Operator and Route models.

A Route is the origin/destination/operator/vehicle template that Schedules
are instantiated from. Its base price and seat capacity feed pricing and
schedule creation; identity is immutable, price and status are admin-editable.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from travelbook.db.base import Base, TimestampMixin


class Operator(Base, TimestampMixin):
    __tablename__ = "operators"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Operator(id={self.id}, name={self.name})>"


class Route(Base, TimestampMixin):
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    operator_id = Column(Integer, ForeignKey("operators.id"), nullable=False, index=True)
    from_city = Column(String(255), nullable=False)
    to_city = Column(String(255), nullable=False)
    departure_time = Column(String(5), nullable=False)  # HH:MM
    arrival_time = Column(String(5), nullable=False)
    vehicle_type = Column(String(100), nullable=False)
    transport_type = Column(String(20), nullable=False, default="bus")
    total_seats = Column(Integer, nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="active")

    operator = relationship("Operator", lazy="joined")

    __table_args__ = (
        # Same operator cannot run the same leg twice at the same departure time
        UniqueConstraint(
            "operator_id", "from_city", "to_city", "departure_time",
            name="uq_route_operator_leg_departure",
        ),
        CheckConstraint("total_seats > 0", name="check_route_total_seats_positive"),
        CheckConstraint("base_price >= 0", name="check_route_base_price_non_negative"),
        CheckConstraint("transport_type IN ('bus', 'train', 'flight')", name="check_route_transport_type"),
        CheckConstraint("status IN ('active', 'inactive')", name="check_route_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<Route(id={self.id}, {self.from_city}->{self.to_city} @ {self.departure_time})>"
