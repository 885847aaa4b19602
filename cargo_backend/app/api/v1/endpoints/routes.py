"""
Routes API Endpoints.

Selecting a route option materializes it as a persisted route with
scheduled legs and assigned carriers.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_backend.app.db.session import get_db
from cargo_backend.app.core.dependencies import get_caller, get_option_store
from cargo_backend.app.schemas.route import RouteResponse, RouteSelectRequest
from cargo_backend.app.services.audit import log_event, AuditAction
from cargo_backend.app.services.route_decomposer import RouteDecomposer
from cargo_backend.app.services.route_options import RouteOptionStore

router = APIRouter(prefix="/routes", tags=["Routes"])


@router.post("", response_model=RouteResponse, status_code=status.HTTP_201_CREATED)
async def select_route_option(
    request: RouteSelectRequest,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    store: RouteOptionStore = Depends(get_option_store),
):
    """
    Select a generated option for a shipment.

    All legs get a carrier or nothing is persisted (409 NoCarrierAvailable).
    """
    route = await RouteDecomposer(db).select(
        store, request.shipment_id, request.option_id, request.departure_at
    )
    response = RouteResponse.model_validate(route)

    await log_event(
        db=db,
        action=AuditAction.ROUTE_MATERIALIZED,
        actor=current_user,
        target_type="route",
        target_id=route.id,
        metadata={
            "shipment_id": route.shipment_id,
            "option_id": route.selected_option_id,
            "carrier_ids": [leg.assigned_carrier_id for leg in route.legs],
        }
    )

    return response
