"""
Leg database model.

A leg is one direct segment of a route between two deposits, or between an
endpoint and a deposit.
"""

from sqlalchemy import Column, Integer, Float, Numeric, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base
from cargo_backend.app.models.route_enums import LegState


class Leg(Base):
    """
    Leg model.

    Created in SCHEDULED state at materialization; changed only through
    leg lifecycle transitions and never deleted.
    """
    __tablename__ = "legs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Route reference
    route_id = Column(Integer, ForeignKey('routes.id'), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False)  # Order in route (1, 2, 3, ...)

    # Endpoints (deposit ids are null for the shipment's own origin/destination)
    origin_deposit_id = Column(Integer, ForeignKey('deposits.id'), nullable=True)
    destination_deposit_id = Column(Integer, ForeignKey('deposits.id'), nullable=True)
    origin_lat = Column(Float, nullable=False)
    origin_lng = Column(Float, nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)

    # Plan
    distance_km = Column(Numeric(12, 2), nullable=False)
    estimated_duration_minutes = Column(Numeric(12, 2), nullable=False)
    estimated_cost = Column(Numeric(12, 2), nullable=False)
    assigned_carrier_id = Column(Integer, ForeignKey('carriers.id'), nullable=True, index=True)

    # Status
    state = Column(Enum(LegState), default=LegState.SCHEDULED, nullable=False, index=True)

    # Schedule and execution
    scheduled_start = Column(DateTime(timezone=True), nullable=True)
    scheduled_end = Column(DateTime(timezone=True), nullable=True)
    actual_start = Column(DateTime(timezone=True), nullable=True)
    actual_end = Column(DateTime(timezone=True), nullable=True)
    actual_duration_minutes = Column(Numeric(12, 2), nullable=True)
    actual_cost = Column(Numeric(12, 2), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('route_id', 'sequence_number', name='uq_legs_route_sequence'),
    )

    def __repr__(self):
        return f"<Leg(id={self.id}, route_id={self.route_id}, seq={self.sequence_number}, state='{self.state.value}')>"
