"""
Geo API Endpoints.

Geocoding and point-to-point distance.
"""

from fastapi import APIRouter, Depends, Query

from cargo_backend.app.core.dependencies import get_caller, get_distance_engine, get_geo_resolver
from cargo_backend.app.schemas.geo import DistanceResponse, GeoPoint, ReverseGeocodeResponse
from cargo_backend.app.services.distance_engine import DistanceEngine, format_duration
from cargo_backend.app.services.geo_resolver import GeoResolver

router = APIRouter(tags=["Geo"])


@router.get("/geo/resolve", response_model=GeoPoint)
async def resolve_location(
    query: str = Query(..., min_length=1, description="Address or 'lat,lon'"),
    current_user: dict = Depends(get_caller),
    geo_resolver: GeoResolver = Depends(get_geo_resolver),
):
    """Resolve an address or coordinate pair to a point."""
    return await geo_resolver.resolve(query)


@router.get("/geo/reverse", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    current_user: dict = Depends(get_caller),
    geo_resolver: GeoResolver = Depends(get_geo_resolver),
):
    """Display name of the place at a point."""
    point = GeoPoint(latitude=lat, longitude=lon)
    return ReverseGeocodeResponse(point=point, display_name=await geo_resolver.reverse(point))


@router.get("/distance", response_model=DistanceResponse)
async def compute_distance(
    origin: str = Query(..., min_length=1, description="Address or 'lat,lon'"),
    destination: str = Query(..., min_length=1, description="Address or 'lat,lon'"),
    current_user: dict = Depends(get_caller),
    geo_resolver: GeoResolver = Depends(get_geo_resolver),
    distance_engine: DistanceEngine = Depends(get_distance_engine),
):
    """
    Distance and travel time between two places.

    Uses the routing provider when reachable, great-circle distance otherwise.
    """
    origin_point = await geo_resolver.resolve(origin)
    destination_point = await geo_resolver.resolve(destination)
    result = await distance_engine.distance(origin_point, destination_point)

    return DistanceResponse(
        origin=origin_point,
        destination=destination_point,
        duration_label=format_duration(result.duration_minutes),
        **result.model_dump(),
    )
