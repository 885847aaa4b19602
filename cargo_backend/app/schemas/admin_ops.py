"""
Admin operations schemas.
"""

from datetime import datetime
from pydantic import BaseModel
from typing import Any, Dict, Optional

from cargo_backend.app.models.dlq import DLQStatus


class DLQItemResponse(BaseModel):
    """Dead letter queue entry."""
    id: int
    task_name: str
    error_message: str
    payload: Optional[Dict[str, Any]]
    status: DLQStatus
    retry_count: int
    created_at: datetime
    last_retry_at: Optional[datetime]

    class Config:
        from_attributes = True


class DLQRetryResponse(BaseModel):
    """Outcome of a retry."""
    id: int
    status: DLQStatus
    retry_count: int
    delivered: bool
    message: str
