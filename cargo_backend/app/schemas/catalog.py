"""
Catalog schemas (tariffs, deposits, carriers).
"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional


class TariffBandCreate(BaseModel):
    """Schema for a tariff band."""
    volume_min: Decimal = Field(0, ge=0)
    volume_max: Optional[Decimal] = Field(None, ge=0, description="Null for unbounded")
    weight_min: Decimal = Field(0, ge=0)
    weight_max: Optional[Decimal] = Field(None, ge=0, description="Null for unbounded")
    cost_per_distance_unit: Decimal = Field(..., ge=0, description="Cost per km")


class TariffCreate(BaseModel):
    """Schema for creating a tariff."""
    name: str = Field(..., min_length=1, max_length=100)
    fixed_management_fee: Decimal = Field(..., ge=0)
    fuel_unit_price: Decimal = Field(..., ge=0)
    effective_from: Optional[datetime] = None
    bands: List[TariffBandCreate] = Field(..., min_length=1)


class TariffBandResponse(TariffBandCreate):
    id: int

    class Config:
        from_attributes = True


class TariffResponse(BaseModel):
    """Schema for tariff response."""
    id: int
    name: str
    fixed_management_fee: Decimal
    fuel_unit_price: Decimal
    is_active: bool
    bands: List[TariffBandResponse]

    class Config:
        from_attributes = True


class DepositCreate(BaseModel):
    """Schema for creating a deposit."""
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = Field(None, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class DepositResponse(DepositCreate):
    id: int
    is_active: bool

    class Config:
        from_attributes = True


class CarrierCreate(BaseModel):
    """Schema for registering a carrier."""
    plate: str = Field(..., min_length=1, max_length=50)
    carrier_name: Optional[str] = Field(None, max_length=200)
    max_weight_kg: Decimal = Field(..., gt=0)
    max_volume_m3: Decimal = Field(..., gt=0)
    cost_base: Decimal = Field(0, ge=0)
    cost_per_distance_unit: Decimal = Field(..., ge=0)
    fuel_consumption_rate: Optional[Decimal] = Field(None, ge=0, description="Liters per km")


class CarrierResponse(CarrierCreate):
    id: int
    available: bool
    is_active: bool

    class Config:
        from_attributes = True
