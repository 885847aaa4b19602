"""
Geographic value types and distance schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class GeoPoint(BaseModel):
    """Immutable latitude/longitude pair."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    class Config:
        frozen = True

    def as_lon_lat(self) -> str:
        """Coordinate order expected by OSRM path segments."""
        return f"{self.longitude},{self.latitude}"


class DistanceResult(BaseModel):
    """Distance and travel time between two points."""
    distance_km: Decimal
    duration_minutes: Decimal
    geometry: Optional[str] = None
    source: str = Field(..., description="routing_provider or haversine")


class DistanceResponse(DistanceResult):
    """Distance between two resolved points."""
    origin: GeoPoint
    destination: GeoPoint
    duration_label: str


class ReverseGeocodeResponse(BaseModel):
    """Display name for a point."""
    point: GeoPoint
    display_name: Optional[str]
