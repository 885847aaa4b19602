"""
Materialized route schemas.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from cargo_backend.app.models.route_enums import LegState, RouteStatus


class RouteSelectRequest(BaseModel):
    """Select a previously generated option for a shipment."""
    shipment_id: int = Field(..., gt=0)
    option_id: str = Field(..., min_length=1)
    departure_at: Optional[datetime] = Field(None, description="Scheduled start of the first leg")


class LegResponse(BaseModel):
    """Persisted leg."""
    id: int
    route_id: int
    sequence_number: int
    origin_deposit_id: Optional[int]
    destination_deposit_id: Optional[int]
    origin_lat: float
    origin_lng: float
    destination_lat: float
    destination_lng: float
    distance_km: Decimal
    estimated_duration_minutes: Decimal
    estimated_cost: Decimal
    assigned_carrier_id: Optional[int]
    state: LegState
    scheduled_start: Optional[datetime]
    scheduled_end: Optional[datetime]
    actual_start: Optional[datetime]
    actual_end: Optional[datetime]
    actual_duration_minutes: Optional[Decimal]
    actual_cost: Optional[Decimal]

    class Config:
        from_attributes = True


class RouteResponse(BaseModel):
    """Persisted route with its legs."""
    id: int
    shipment_id: int
    selected_option_id: str
    cargo_weight_kg: Decimal
    cargo_volume_m3: Decimal
    estimated_total_cost: Decimal
    estimated_distance_km: Decimal
    estimated_duration_minutes: Decimal
    geometry: Optional[str]
    status: RouteStatus
    completed_at: Optional[datetime]
    legs: List[LegResponse]

    class Config:
        from_attributes = True
