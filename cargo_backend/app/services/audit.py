"""
Audit logging service for route, leg and catalog events.

Provides centralized event logging for traceability.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from cargo_backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Route materialization
    ROUTE_MATERIALIZED = "ROUTE_MATERIALIZED"

    # Leg lifecycle
    LEG_STARTED = "LEG_STARTED"
    LEG_COMPLETED = "LEG_COMPLETED"
    LEG_CANCELLED = "LEG_CANCELLED"

    # Shipment completion cascade
    SHIPMENT_COMPLETION_NOTIFIED = "SHIPMENT_COMPLETION_NOTIFIED"
    SHIPMENT_NOTIFICATION_FAILED = "SHIPMENT_NOTIFICATION_FAILED"
    SHIPMENT_NOTIFICATION_RETRIED = "SHIPMENT_NOTIFICATION_RETRIED"

    # Catalog
    TARIFF_CREATED = "TARIFF_CREATED"
    DEPOSIT_CREATED = "DEPOSIT_CREATED"
    CARRIER_CREATED = "CARRIER_CREATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor: Optional[Dict[str, Any]] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor: Caller context from get_caller (user_id, sub), None for system actions
        target_type: Kind of entity acted upon (route, leg, tariff, ...)
        target_id: ID of the entity acted upon
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    actor = actor or {}
    actor_id = actor.get("user_id")
    audit_log = AuditLog(
        actor_id=actor_id if isinstance(actor_id, int) else None,
        actor_username=actor.get("sub"),
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_type:
        query = query.where(AuditLog.target_type == target_type)

    if target_id:
        query = query.where(AuditLog.target_id == target_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
