"""
Leg Lifecycle API Endpoints.

Operators report leg progress. Starting the first leg of a route puts the
shipment in transit; completing the last one marks it completed.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_backend.app.db.session import get_db
from cargo_backend.app.core.dependencies import get_caller, get_shipment_port
from cargo_backend.app.schemas.leg import LegCompleteRequest, LegStartRequest, LegTransitionResponse
from cargo_backend.app.schemas.route import LegResponse
from cargo_backend.app.services.audit import log_event, AuditAction
from cargo_backend.app.services.leg_lifecycle import LegLifecycle, LegTransition
from cargo_backend.app.services.shipment_port import ShipmentStatusPort

router = APIRouter(prefix="/legs", tags=["Legs"])


def _to_response(transition: LegTransition) -> LegTransitionResponse:
    return LegTransitionResponse(
        leg=LegResponse.model_validate(transition.leg),
        carrier_released=transition.carrier_released,
        cascade=transition.cascade,
        in_transit_dlq_id=transition.in_transit_dlq_id,
    )


@router.post("/{leg_id}/start", response_model=LegTransitionResponse)
async def start_leg(
    leg_id: int = Path(..., description="Leg ID"),
    request: Optional[LegStartRequest] = None,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    shipment_port: ShipmentStatusPort = Depends(get_shipment_port),
):
    """
    Start a SCHEDULED leg.

    Starting the first leg marks the shipment in transit. A failed update is
    queued for retry (see in_transit_dlq_id) and does not fail this request.
    """
    request = request or LegStartRequest()
    transition = await LegLifecycle(db, shipment_port).start(
        leg_id, request.started_at, credential=current_user["token"]
    )
    response = _to_response(transition)

    await log_event(
        db=db,
        action=AuditAction.LEG_STARTED,
        actor=current_user,
        target_type="leg",
        target_id=leg_id,
        metadata={
            "route_id": transition.leg.route_id,
            "carrier_id": transition.leg.assigned_carrier_id,
            "in_transit_dlq_id": transition.in_transit_dlq_id,
        }
    )

    return response


@router.post("/{leg_id}/complete", response_model=LegTransitionResponse)
async def complete_leg(
    leg_id: int = Path(..., description="Leg ID"),
    request: Optional[LegCompleteRequest] = None,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    shipment_port: ShipmentStatusPort = Depends(get_shipment_port),
):
    """
    Complete an IN_PROGRESS leg.

    A failed shipment notification does not fail this request: the leg stays
    COMPLETED and the notification is queued for retry (see cascade.dlq_id).
    """
    request = request or LegCompleteRequest()
    transition = await LegLifecycle(db, shipment_port).complete(
        leg_id,
        actual_cost=request.actual_cost,
        actual_duration_minutes=request.actual_duration_minutes,
        completed_at=request.completed_at,
        credential=current_user["token"],
    )
    response = _to_response(transition)

    await log_event(
        db=db,
        action=AuditAction.LEG_COMPLETED,
        actor=current_user,
        target_type="leg",
        target_id=leg_id,
        metadata={"route_id": transition.leg.route_id, "actual_cost": str(transition.leg.actual_cost)}
    )

    cascade = transition.cascade
    if cascade and cascade.triggered:
        await log_event(
            db=db,
            action=(
                AuditAction.SHIPMENT_COMPLETION_NOTIFIED if cascade.notified
                else AuditAction.SHIPMENT_NOTIFICATION_FAILED
            ),
            actor=current_user,
            target_type="route",
            target_id=cascade.route_id,
            metadata={
                "shipment_id": cascade.shipment_id,
                "final_cost": str(cascade.final_cost),
                "dlq_id": cascade.dlq_id,
            }
        )

    return response


@router.post("/{leg_id}/cancel", response_model=LegTransitionResponse)
async def cancel_leg(
    leg_id: int = Path(..., description="Leg ID"),
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    shipment_port: ShipmentStatusPort = Depends(get_shipment_port),
):
    """Cancel a SCHEDULED or IN_PROGRESS leg. Shipment status is not touched."""
    transition = await LegLifecycle(db, shipment_port).cancel(leg_id)
    response = _to_response(transition)

    await log_event(
        db=db,
        action=AuditAction.LEG_CANCELLED,
        actor=current_user,
        target_type="leg",
        target_id=leg_id,
        metadata={"route_id": transition.leg.route_id}
    )

    return response
