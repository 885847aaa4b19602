"""
Pricing schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Union

from cargo_backend.app.schemas.geo import GeoPoint


class PriceEstimateRequest(BaseModel):
    """Estimate the price of moving cargo between two places."""
    origin: Union[GeoPoint, str] = Field(..., description="Address or coordinates")
    destination: Union[GeoPoint, str] = Field(..., description="Address or coordinates")
    weight_kg: Decimal = Field(..., gt=0)
    volume_m3: Decimal = Field(..., gt=0)


class PriceEstimateResponse(BaseModel):
    """Estimated price for a direct trip."""
    origin: GeoPoint
    destination: GeoPoint
    distance_km: Decimal
    duration_minutes: Decimal
    duration_label: str
    distance_source: str
    tariff_id: int
    band_id: int
    total_cost: Decimal


class ActualPriceResponse(BaseModel):
    """Real price of a shipment from its completed legs."""
    shipment_id: int
    route_id: int
    route_status: str
    completed_legs: int
    total_legs: int
    total_cost: Decimal
    total_duration_minutes: Decimal
