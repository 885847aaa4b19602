"""
Audit Log Database Model.

Tracks route and leg events and catalog changes for traceability.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - ROUTE_MATERIALIZED
    - LEG_STARTED / LEG_COMPLETED / LEG_CANCELLED
    - SHIPMENT_COMPLETION_NOTIFIED / SHIPMENT_NOTIFICATION_FAILED
    - TARIFF_CREATED / DEPOSIT_CREATED / CARRIER_CREATED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What the action was performed on
    target_type = Column(String(50), nullable=True)
    target_id = Column(Integer, index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Caller address
    ip_address = Column(String(50), nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, target={self.target_type}:{self.target_id})>"
