"""
Leg lifecycle schemas.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional

from cargo_backend.app.schemas.route import LegResponse


class LegStartRequest(BaseModel):
    """Start a leg. Defaults to now when no timestamp is reported."""
    started_at: Optional[datetime] = None


class LegCompleteRequest(BaseModel):
    """
    Report a leg as completed.

    Cost defaults to the carrier's cost model, duration to the elapsed time.
    """
    actual_cost: Optional[Decimal] = Field(None, ge=0)
    actual_duration_minutes: Optional[Decimal] = Field(None, ge=0)
    completed_at: Optional[datetime] = None


class CascadeOutcome(BaseModel):
    """What the completion cascade did for this transition."""
    triggered: bool = False
    route_id: Optional[int] = None
    shipment_id: Optional[int] = None
    notified: bool = False
    final_cost: Optional[Decimal] = None
    final_duration_minutes: Optional[Decimal] = None
    dlq_id: Optional[int] = None


class LegTransitionResponse(BaseModel):
    """Leg after a transition."""
    leg: LegResponse
    carrier_released: bool = False
    cascade: Optional[CascadeOutcome] = None
    in_transit_dlq_id: Optional[int] = None  # Set when starting leg 1 could not update the shipment
