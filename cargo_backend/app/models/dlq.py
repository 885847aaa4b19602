"""
Dead Letter Queue (DLQ) Model.

Shipment status notifications that could not be delivered. The legs keep
their new state; the entry keeps what is needed to resend the notification.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Enum
from sqlalchemy.sql import func
from cargo_backend.app.db.session import Base
import enum


class DLQStatus(str, enum.Enum):
    FAILED = "FAILED"  # Awaiting retry
    RETRYING = "RETRYING"  # Retry in flight
    PROCESSED = "PROCESSED"  # Shipment service acknowledged


class DeadLetterQueue(Base):
    """
    Undelivered outbound notifications.

    payload for task "shipment_completion":
        {"route_id", "shipment_id", "final_cost", "final_duration_minutes"}
    with money and minutes as decimal strings.

    payload for task "shipment_in_transit":
        {"route_id", "shipment_id", "leg_id"}
    """
    __tablename__ = "dead_letter_queue"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    task_name = Column(String(100), nullable=False, index=True)
    error_message = Column(Text, nullable=False)  # Latest failure reason
    payload = Column(JSON, nullable=True)

    status = Column(Enum(DLQStatus), default=DLQStatus.FAILED, nullable=False, index=True)
    retry_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_retry_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<DLQ(id={self.id}, task='{self.task_name}', status='{self.status.value}', retries={self.retry_count})>"
