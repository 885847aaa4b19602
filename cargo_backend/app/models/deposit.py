"""
Deposit database model.

Deposits are intermediate storage points a route may pass through.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base


class Deposit(Base):
    """
    Deposit model.

    A storage location with geolocation. Deposits without coordinates are
    never offered as intermediate stops.
    """
    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Deposit details
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=True)

    # Geolocation
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Status (soft delete)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Deposit(id={self.id}, name='{self.name}', active={self.is_active})>"
