"""
Route database model.

A route is the materialized form of the route option selected for a shipment.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base
from cargo_backend.app.models.route_enums import RouteStatus


class Route(Base):
    """
    Route model.

    One route per shipment. The shipment itself lives in another service and
    is referenced by id only.
    """
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Owning shipment (external)
    shipment_id = Column(Integer, unique=True, nullable=False, index=True)
    selected_option_id = Column(String(36), nullable=False)

    # Cargo
    cargo_weight_kg = Column(Numeric(12, 3), nullable=False)
    cargo_volume_m3 = Column(Numeric(12, 3), nullable=False)

    # Estimates at materialization time
    estimated_total_cost = Column(Numeric(12, 2), nullable=False)
    estimated_distance_km = Column(Numeric(12, 2), nullable=False)
    estimated_duration_minutes = Column(Numeric(12, 2), nullable=False)
    geometry = Column(Text, nullable=True)

    # Status
    status = Column(Enum(RouteStatus), default=RouteStatus.ACTIVE, nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    legs = relationship(
        "Leg",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Leg.sequence_number",
    )

    def __repr__(self):
        return f"<Route(id={self.id}, shipment_id={self.shipment_id}, status='{self.status}')>"
