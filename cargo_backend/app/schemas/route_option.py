"""
Route option schemas.

Route options are planning objects: produced by the generator, kept in the
option store until selected, never written to the relational database.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional, Union

from cargo_backend.app.schemas.geo import GeoPoint


class CargoSpec(BaseModel):
    """Cargo dimensions used for band selection and carrier capacity."""
    weight_kg: Decimal = Field(..., gt=0, description="Cargo weight in kg")
    volume_m3: Decimal = Field(..., gt=0, description="Cargo volume in cubic meters")


class RouteStop(BaseModel):
    """A leg endpoint: a deposit or one of the shipment's own endpoints."""
    point: GeoPoint
    deposit_id: Optional[int] = None
    label: str


class LegPlan(BaseModel):
    """One planned leg of a route option."""
    sequence_number: int
    origin: RouteStop
    destination: RouteStop
    distance_km: Decimal
    duration_minutes: Decimal
    estimated_cost: Decimal
    geometry: Optional[str] = None
    distance_source: str


class RouteOption(BaseModel):
    """A candidate route from origin to destination."""
    option_id: str
    rank_index: int
    legs: List[LegPlan]
    total_distance_km: Decimal
    total_duration_minutes: Decimal
    management_fee: Decimal
    total_cost: Decimal
    geometry: Optional[str] = None
    cargo: CargoSpec
    tariff_id: int
    band_id: int


class RouteOptionRequest(BaseModel):
    """Request for route options."""
    origin: Union[GeoPoint, str] = Field(..., description="Address or coordinates")
    destination: Union[GeoPoint, str] = Field(..., description="Address or coordinates")
    weight_kg: Decimal = Field(..., gt=0)
    volume_m3: Decimal = Field(..., gt=0)
    via_deposit_ids: Optional[List[int]] = Field(
        None, description="Force a single chain through these deposits, in order"
    )


class RouteOptionsResponse(BaseModel):
    """Ranked route options, cheapest first."""
    origin: GeoPoint
    destination: GeoPoint
    options: List[RouteOption]
    total_options: int
