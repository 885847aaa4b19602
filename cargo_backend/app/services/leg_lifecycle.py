"""
Leg lifecycle service.

State machine for legs and the status updates it sends to the shipment:

    SCHEDULED -> IN_PROGRESS -> COMPLETED
    SCHEDULED | IN_PROGRESS -> CANCELLED

Starting the first leg of a route puts the shipment in transit. Completing a
leg and the completion cascade share one transaction: the leg update is
flushed, the route row is locked, every leg of the route is read and, if all
are COMPLETED, the route is flipped ACTIVE -> COMPLETED with a
compare-and-swap. Either both are committed or neither is. Only the
transaction that wins the flip notifies the shipment service, after commit,
so a route produces exactly one notification. Failed notifications go to the
dead letter queue; the leg keeps its new state.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_backend.app.core.clock import as_naive_utc
from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import (
    CascadeNotificationFailure,
    InvalidTransition,
    NoApplicableTariffBand,
    ResourceNotFoundError,
)
from cargo_backend.app.domain.pricing.tariff_engine import TariffEngine, as_decimal
from cargo_backend.app.domain.pricing.tariff_resolver import TariffResolver
from cargo_backend.app.models.carrier import Carrier
from cargo_backend.app.models.dlq import DeadLetterQueue, DLQStatus
from cargo_backend.app.models.leg import Leg
from cargo_backend.app.models.route import Route
from cargo_backend.app.models.route_enums import LegState, RouteStatus, TERMINAL_LEG_STATES
from cargo_backend.app.schemas.leg import CascadeOutcome
from cargo_backend.app.services.carrier_locking import release_carrier
from cargo_backend.app.services.shipment_port import ShipmentStatusPort

logger = logging.getLogger(__name__)

SHIPMENT_COMPLETION_TASK = "shipment_completion"
SHIPMENT_IN_TRANSIT_TASK = "shipment_in_transit"

TWO_PLACES = Decimal("0.01")


class LegTransition:
    """Result of a leg transition."""

    def __init__(
        self,
        leg: Leg,
        carrier_released: bool = False,
        cascade: Optional[CascadeOutcome] = None,
        in_transit_dlq_id: Optional[int] = None,
    ):
        self.leg = leg
        self.carrier_released = carrier_released
        self.cascade = cascade
        self.in_transit_dlq_id = in_transit_dlq_id


class LegLifecycle:
    """Leg state transitions and the shipment status updates they trigger."""

    def __init__(self, db: AsyncSession, shipment_port: ShipmentStatusPort):
        self.db = db
        self.shipment_port = shipment_port

    async def start(
        self,
        leg_id: int,
        started_at: Optional[datetime] = None,
        credential: Optional[str] = None,
    ) -> LegTransition:
        """
        SCHEDULED -> IN_PROGRESS. Starting leg 1 marks the shipment in transit.

        Raises:
            ResourceNotFoundError: unknown leg
            InvalidTransition: leg not SCHEDULED, no carrier, or previous leg unfinished
        """
        leg = await self._load_leg(leg_id)

        if leg.state != LegState.SCHEDULED:
            raise InvalidTransition(leg.id, leg.state, "start")

        if leg.assigned_carrier_id is None:
            raise InvalidTransition(leg.id, leg.state, "start", reason=f"Leg {leg.id} has no assigned carrier")

        if settings.enforce_leg_sequence and leg.sequence_number > 1:
            result = await self.db.execute(
                select(Leg.state).where(
                    Leg.route_id == leg.route_id,
                    Leg.sequence_number == leg.sequence_number - 1,
                )
            )
            previous_state = result.scalar_one_or_none()
            if previous_state is not None and previous_state not in TERMINAL_LEG_STATES:
                raise InvalidTransition(
                    leg.id, leg.state, "start",
                    reason=f"Leg {leg.sequence_number - 1} of route {leg.route_id} has not finished",
                )

        shipment_id = None
        if leg.sequence_number == 1:
            result = await self.db.execute(select(Route.shipment_id).where(Route.id == leg.route_id))
            shipment_id = result.scalar_one()

        leg.state = LegState.IN_PROGRESS
        leg.actual_start = as_naive_utc(started_at) if started_at else datetime.utcnow()
        await self.db.commit()

        logger.info("Leg %s started", leg.id)

        dlq_id = None
        if shipment_id is not None:
            dlq_id = await self._notify_in_transit(leg.route_id, shipment_id, leg.id, credential)

        return LegTransition(leg, in_transit_dlq_id=dlq_id)

    async def complete(
        self,
        leg_id: int,
        actual_cost: Optional[Any] = None,
        actual_duration_minutes: Optional[Any] = None,
        completed_at: Optional[datetime] = None,
        credential: Optional[str] = None,
    ) -> LegTransition:
        """
        IN_PROGRESS -> COMPLETED, evaluating the completion cascade in the
        same transaction.

        Args:
            leg_id: Leg to complete
            actual_cost: Reported cost; defaults to the carrier's cost model
            actual_duration_minutes: Reported duration; defaults to elapsed time
            completed_at: Completion timestamp; defaults to now
            credential: Caller's bearer token, forwarded to the shipment service

        Raises:
            ResourceNotFoundError: unknown leg
            InvalidTransition: leg not IN_PROGRESS, or completion before start
        """
        leg = await self._load_leg(leg_id)

        if leg.state != LegState.IN_PROGRESS:
            raise InvalidTransition(leg.id, leg.state, "complete")

        finished = as_naive_utc(completed_at) if completed_at else datetime.utcnow()
        started = as_naive_utc(leg.actual_start) if leg.actual_start else None
        if started is not None and finished < started:
            raise InvalidTransition(
                leg.id, leg.state, "complete",
                reason=f"Completion time {finished.isoformat()} is before start {started.isoformat()}",
            )

        if actual_duration_minutes is None:
            elapsed = (finished - started).total_seconds() / 60 if started else 0
            actual_duration_minutes = Decimal(str(elapsed))
        if actual_cost is None:
            actual_cost = await self._carrier_cost(leg)

        try:
            leg.state = LegState.COMPLETED
            leg.actual_end = finished
            leg.actual_cost = as_decimal(actual_cost).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
            leg.actual_duration_minutes = as_decimal(actual_duration_minutes).quantize(
                TWO_PLACES, rounding=ROUND_HALF_UP
            )
            released = await release_carrier(self.db, leg.assigned_carrier_id)
            await self.db.flush()

            cascade = await self._evaluate_cascade(leg.route_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.error("Completion of leg %s rolled back", leg_id)
            raise

        logger.info("Leg %s completed (cost=%s)", leg.id, leg.actual_cost)

        if cascade.triggered:
            logger.info("Route %s completed; shipment %s will be notified", cascade.route_id, cascade.shipment_id)
            await self._notify(cascade, credential)

        return LegTransition(leg, carrier_released=released, cascade=cascade)

    async def cancel(self, leg_id: int) -> LegTransition:
        """
        SCHEDULED | IN_PROGRESS -> CANCELLED. Never triggers the cascade.

        Raises:
            ResourceNotFoundError: unknown leg
            InvalidTransition: leg already terminal
        """
        leg = await self._load_leg(leg_id)

        if leg.state not in (LegState.SCHEDULED, LegState.IN_PROGRESS):
            raise InvalidTransition(leg.id, leg.state, "cancel")

        leg.state = LegState.CANCELLED
        leg.actual_end = datetime.utcnow()
        released = await release_carrier(self.db, leg.assigned_carrier_id)
        await self.db.commit()

        logger.info("Leg %s cancelled", leg.id)
        return LegTransition(leg, carrier_released=released)

    async def _load_leg(self, leg_id: int) -> Leg:
        result = await self.db.execute(
            select(Leg)
            .where(Leg.id == leg_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        leg = result.scalar_one_or_none()
        if not leg:
            raise ResourceNotFoundError("Leg", leg_id)
        return leg

    async def _carrier_cost(self, leg: Leg) -> Decimal:
        """Cost of the leg under the assigned carrier's cost model, fuel at the active tariff price."""
        carrier = await self.db.get(Carrier, leg.assigned_carrier_id) if leg.assigned_carrier_id else None
        if carrier is None:
            return Decimal("0.00")

        try:
            tariff = await TariffResolver.resolve_active_tariff(self.db)
            fuel_unit_price = tariff.fuel_unit_price
        except NoApplicableTariffBand:
            logger.warning("No active tariff; leg %s cost computed without fuel", leg.id)
            fuel_unit_price = None

        return TariffEngine.carrier_trip_cost(carrier, leg.distance_km, fuel_unit_price)


    async def _evaluate_cascade(self, route_id: int) -> CascadeOutcome:
        """
        Under the route row lock, flip the route to COMPLETED if every leg is
        COMPLETED. Runs inside the caller's transaction and does not commit.
        Returns whether this call won the flip.
        """
        result = await self.db.execute(
            select(Route).where(Route.id == route_id).with_for_update()
        )
        route = result.scalar_one()

        legs_result = await self.db.execute(
            select(Leg)
            .where(Leg.route_id == route_id)
            .order_by(Leg.sequence_number)
            .execution_options(populate_existing=True)
        )
        legs: List[Leg] = list(legs_result.scalars().all())

        if not legs or any(leg.state != LegState.COMPLETED for leg in legs):
            return CascadeOutcome(triggered=False)

        flipped = await self.db.execute(
            update(Route)
            .where(Route.id == route_id, Route.status == RouteStatus.ACTIVE)
            .values(status=RouteStatus.COMPLETED, completed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            return CascadeOutcome(triggered=False)

        final_cost = sum((as_decimal(leg.actual_cost or 0) for leg in legs), Decimal("0.00"))
        final_duration = sum((as_decimal(leg.actual_duration_minutes or 0) for leg in legs), Decimal("0.00"))

        return CascadeOutcome(
            triggered=True,
            final_cost=final_cost,
            final_duration_minutes=final_duration,
            route_id=route_id,
            shipment_id=route.shipment_id,
        )

    async def _notify(self, outcome: CascadeOutcome, credential: Optional[str]) -> None:
        payload = {
            "route_id": outcome.route_id,
            "shipment_id": outcome.shipment_id,
            "final_cost": str(outcome.final_cost),
            "final_duration_minutes": str(outcome.final_duration_minutes),
        }
        try:
            await self.shipment_port.mark_completed(
                outcome.shipment_id,
                outcome.final_cost,
                outcome.final_duration_minutes,
                credential,
            )
            outcome.notified = True
        except CascadeNotificationFailure as exc:
            logger.error("Cascade notification failed for route %s: %s", outcome.route_id, exc.message)
            outcome.dlq_id = await self._dead_letter(SHIPMENT_COMPLETION_TASK, exc, payload)

    async def _notify_in_transit(
        self, route_id: int, shipment_id: int, leg_id: int, credential: Optional[str]
    ) -> Optional[int]:
        """Best effort; a failure is dead-lettered and the leg stays IN_PROGRESS."""
        try:
            await self.shipment_port.mark_in_transit(shipment_id, credential)
            return None
        except CascadeNotificationFailure as exc:
            logger.error("In-transit notification failed for shipment %s: %s", shipment_id, exc.message)
            payload = {"route_id": route_id, "shipment_id": shipment_id, "leg_id": leg_id}
            return await self._dead_letter(SHIPMENT_IN_TRANSIT_TASK, exc, payload)

    async def _dead_letter(self, task_name: str, exc: CascadeNotificationFailure, payload: Dict[str, Any]) -> int:
        item = DeadLetterQueue(
            task_name=task_name,
            error_message=exc.message,
            payload=payload,
            status=DLQStatus.FAILED,
            retry_count=0,
        )
        self.db.add(item)
        await self.db.commit()
        return item.id


async def retry_shipment_notification(
    db: AsyncSession,
    shipment_port: ShipmentStatusPort,
    dlq_id: int,
    credential: Optional[str] = None,
) -> DeadLetterQueue:
    """
    Re-send a shipment notification recorded in the dead letter queue,
    either an in-transit update or a completion.

    Success marks the item PROCESSED; failure keeps it FAILED with the new error.

    Raises:
        ResourceNotFoundError: unknown DLQ item
    """
    result = await db.execute(select(DeadLetterQueue).where(DeadLetterQueue.id == dlq_id))
    item = result.scalar_one_or_none()

    if not item or item.task_name not in (SHIPMENT_COMPLETION_TASK, SHIPMENT_IN_TRANSIT_TASK):
        raise ResourceNotFoundError("Shipment notification", dlq_id)

    if item.status == DLQStatus.PROCESSED:
        return item

    payload = item.payload or {}
    item.status = DLQStatus.RETRYING
    item.retry_count = (item.retry_count or 0) + 1
    item.last_retry_at = datetime.utcnow()
    await db.commit()

    try:
        if item.task_name == SHIPMENT_IN_TRANSIT_TASK:
            await shipment_port.mark_in_transit(payload["shipment_id"], credential)
        else:
            await shipment_port.mark_completed(
                payload["shipment_id"],
                Decimal(payload["final_cost"]),
                Decimal(payload["final_duration_minutes"]),
                credential,
            )
        item.status = DLQStatus.PROCESSED
        logger.info("Shipment %s notification delivered on retry %s", payload["shipment_id"], item.retry_count)
    except CascadeNotificationFailure as exc:
        item.status = DLQStatus.FAILED
        item.error_message = exc.message
        logger.error("Retry %s of DLQ item %s failed: %s", item.retry_count, item.id, exc.message)

    await db.commit()
    return item
