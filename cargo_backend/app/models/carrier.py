"""
Carrier database model.

Carriers (trucks) are assigned to legs within their weight/volume capacity.
"""

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base


class Carrier(Base):
    """
    Carrier model.

    `available` is claimed and released through a compare-and-swap on
    `version` (see services/carrier_locking.py), never by plain assignment.
    """
    __tablename__ = "carriers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    plate = Column(String(50), unique=True, nullable=False, index=True)
    carrier_name = Column(String(200), nullable=True)

    # Capacity constraints
    max_weight_kg = Column(Numeric(12, 3), nullable=False)
    max_volume_m3 = Column(Numeric(12, 3), nullable=False)

    # Cost model
    cost_base = Column(Numeric(12, 2), nullable=False, default=0)
    cost_per_distance_unit = Column(Numeric(12, 4), nullable=False)  # Cost per km
    fuel_consumption_rate = Column(Numeric(12, 4), nullable=True)  # Liters per km

    # Status
    available = Column(Boolean, default=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    version = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Carrier(id={self.id}, plate='{self.plate}', available={self.available})>"
