"""
Pricing API Endpoints.

Estimated price for a shipment request and real price of a materialized route.
"""

from decimal import Decimal
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cargo_backend.app.db.session import get_db
from cargo_backend.app.core.dependencies import get_caller, get_distance_engine, get_geo_resolver
from cargo_backend.app.core.exceptions import ResourceNotFoundError
from cargo_backend.app.domain.pricing.tariff_engine import TariffEngine
from cargo_backend.app.domain.pricing.tariff_resolver import TariffResolver
from cargo_backend.app.models.route import Route
from cargo_backend.app.models.route_enums import LegState
from cargo_backend.app.schemas.pricing import (
    ActualPriceResponse, PriceEstimateRequest, PriceEstimateResponse
)
from cargo_backend.app.services.distance_engine import DistanceEngine, format_duration
from cargo_backend.app.services.geo_resolver import GeoResolver

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.post("/estimate", response_model=PriceEstimateResponse)
async def estimate_price(
    request: PriceEstimateRequest,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    geo_resolver: GeoResolver = Depends(get_geo_resolver),
    distance_engine: DistanceEngine = Depends(get_distance_engine),
):
    """
    Estimate the price of a direct trip.

    The tariff band is checked before any provider call.
    """
    tariff = await TariffResolver.resolve_active_tariff(db)
    band = TariffEngine.select_band(tariff, request.weight_kg, request.volume_m3)

    origin = await geo_resolver.resolve(request.origin)
    destination = await geo_resolver.resolve(request.destination)
    result = await distance_engine.distance(origin, destination)

    return PriceEstimateResponse(
        origin=origin,
        destination=destination,
        distance_km=result.distance_km,
        duration_minutes=result.duration_minutes,
        duration_label=format_duration(result.duration_minutes),
        distance_source=result.source,
        tariff_id=tariff.id,
        band_id=band.id,
        total_cost=TariffEngine.price(request.weight_kg, request.volume_m3, result.distance_km, tariff),
    )


@router.get("/shipments/{shipment_id}/actual", response_model=ActualPriceResponse)
async def actual_price(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    """Real price of a shipment: sum of its completed legs' actual cost and duration."""
    result = await db.execute(select(Route).where(Route.shipment_id == shipment_id))
    route = result.scalar_one_or_none()

    if not route:
        raise ResourceNotFoundError("Route for shipment", shipment_id)

    completed = [leg for leg in route.legs if leg.state == LegState.COMPLETED]

    return ActualPriceResponse(
        shipment_id=shipment_id,
        route_id=route.id,
        route_status=route.status.value,
        completed_legs=len(completed),
        total_legs=len(route.legs),
        total_cost=sum((Decimal(str(leg.actual_cost or 0)) for leg in completed), Decimal("0.00")),
        total_duration_minutes=sum(
            (Decimal(str(leg.actual_duration_minutes or 0)) for leg in completed), Decimal("0.00")
        ),
    )
