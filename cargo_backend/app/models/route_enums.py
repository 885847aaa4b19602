"""
Route and leg enumerations.
"""

import enum


class RouteStatus(str, enum.Enum):
    """Materialized route status enumeration."""
    ACTIVE = "ACTIVE"  # Legs still being executed
    COMPLETED = "COMPLETED"  # Every leg completed, shipment notified


class LegState(str, enum.Enum):
    """
    Leg state enumeration.

    SCHEDULED -> IN_PROGRESS -> COMPLETED
    SCHEDULED | IN_PROGRESS -> CANCELLED
    """
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_LEG_STATES = (LegState.COMPLETED, LegState.CANCELLED)
