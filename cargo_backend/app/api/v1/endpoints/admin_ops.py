"""
Admin Operations API Endpoints.

Out-of-band handling of shipment notifications that failed during the
completion cascade.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cargo_backend.app.db.session import get_db
from cargo_backend.app.core.dependencies import get_caller, get_shipment_port
from cargo_backend.app.models.dlq import DeadLetterQueue, DLQStatus
from cargo_backend.app.schemas.admin_ops import DLQItemResponse, DLQRetryResponse
from cargo_backend.app.services.audit import log_event, get_audit_trail, AuditAction
from cargo_backend.app.services.leg_lifecycle import retry_shipment_notification
from cargo_backend.app.services.shipment_port import ShipmentStatusPort

router = APIRouter(prefix="/admin/ops", tags=["Admin - Ops"])


@router.get("/dlq", response_model=List[DLQItemResponse])
async def list_dlq_items(
    status_filter: Optional[DLQStatus] = Query(DLQStatus.FAILED, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Failed notifications awaiting retry, oldest first."""
    query = select(DeadLetterQueue).order_by(DeadLetterQueue.id).limit(limit)
    if status_filter:
        query = query.where(DeadLetterQueue.status == status_filter)

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/dlq/{dlq_id}/retry", response_model=DLQRetryResponse)
async def retry_dlq_item(
    dlq_id: int = Path(..., description="DLQ Item ID"),
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    shipment_port: ShipmentStatusPort = Depends(get_shipment_port),
):
    """
    Re-send a failed shipment completion notification with the caller's credential.
    """
    item = await retry_shipment_notification(db, shipment_port, dlq_id, current_user["token"])
    delivered = item.status == DLQStatus.PROCESSED
    response = DLQRetryResponse(
        id=item.id,
        status=item.status,
        retry_count=item.retry_count,
        delivered=delivered,
        message="Notification delivered" if delivered else f"Retry failed: {item.error_message}",
    )

    await log_event(
        db=db,
        action=AuditAction.SHIPMENT_NOTIFICATION_RETRIED,
        actor=current_user,
        target_type="dlq",
        target_id=dlq_id,
        metadata={"delivered": delivered, "retry_count": response.retry_count}
    )

    return response


@router.get("/audit")
async def list_audit_events(
    target_type: Optional[str] = Query(None),
    target_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Recent audit events, most recent first."""
    events = await get_audit_trail(db, target_type=target_type, target_id=target_id, action=action, limit=limit)
    return [
        {
            "id": event.id,
            "action": event.action,
            "actor_username": event.actor_username,
            "target_type": event.target_type,
            "target_id": event.target_id,
            "metadata": event.meta_data,
            "timestamp": event.timestamp,
        }
        for event in events
    ]
