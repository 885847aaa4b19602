"""
Tariff database models.

A tariff holds the fixed management fee and fuel price; its bands map
(volume, weight) ranges to a cost per kilometer.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base


class Tariff(Base):
    """
    Tariff model.

    Only the most recent active tariff is used for pricing.
    """
    __tablename__ = "tariffs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Tariff details
    name = Column(String(100), nullable=False)
    fixed_management_fee = Column(Numeric(12, 2), nullable=False)
    fuel_unit_price = Column(Numeric(12, 4), nullable=False)  # Price per liter

    # Validity
    effective_from = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    bands = relationship(
        "TariffBand",
        back_populates="tariff",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TariffBand.id",
    )

    def __repr__(self):
        return f"<Tariff(id={self.id}, name='{self.name}', fee={self.fixed_management_fee})>"


class TariffBand(Base):
    """
    Tariff Band model.

    Ranges are inclusive on both ends; a null max means unbounded above.
    """
    __tablename__ = "tariff_bands"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tariff_id = Column(Integer, ForeignKey('tariffs.id'), nullable=False, index=True)

    volume_min = Column(Numeric(12, 3), nullable=False, default=0)
    volume_max = Column(Numeric(12, 3), nullable=True)
    weight_min = Column(Numeric(12, 3), nullable=False, default=0)
    weight_max = Column(Numeric(12, 3), nullable=True)

    cost_per_distance_unit = Column(Numeric(12, 4), nullable=False)  # Cost per km

    tariff = relationship("Tariff", back_populates="bands")

    def __repr__(self):
        return (
            f"<TariffBand(id={self.id}, volume=[{self.volume_min},{self.volume_max}], "
            f"weight=[{self.weight_min},{self.weight_max}], rate={self.cost_per_distance_unit})>"
        )
