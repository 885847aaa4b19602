"""
Route decomposer.

Materializes a selected route option into a persisted Route with ordered
SCHEDULED legs, assigning a carrier to each leg. Materialization is atomic:
either every leg gets a carrier and the route is committed, or the
transaction is rolled back and nothing (route, legs, carrier claims) remains.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_backend.app.core.clock import as_naive_utc
from cargo_backend.app.core.exceptions import NoCarrierAvailable, RouteAlreadyExists
from cargo_backend.app.domain.pricing.tariff_engine import TariffEngine, money
from cargo_backend.app.domain.pricing.tariff_resolver import TariffResolver
from cargo_backend.app.models.carrier import Carrier
from cargo_backend.app.models.leg import Leg
from cargo_backend.app.models.route import Route
from cargo_backend.app.models.route_enums import LegState, RouteStatus
from cargo_backend.app.schemas.route_option import LegPlan, RouteOption
from cargo_backend.app.services.carrier_locking import claim_carrier, find_candidate_carriers
from cargo_backend.app.services.route_options import RouteOptionStore

logger = logging.getLogger(__name__)


class RouteDecomposer:
    """Turns a route option into a persisted route with assigned carriers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def select(
        self,
        store: RouteOptionStore,
        shipment_id: int,
        option_id: str,
        departure_at: Optional[datetime] = None,
    ) -> Route:
        """Load a generated option by id and materialize it for the shipment."""
        option = await store.load(option_id)
        return await self.materialize(shipment_id, option, departure_at)

    async def materialize(
        self,
        shipment_id: int,
        option: RouteOption,
        departure_at: Optional[datetime] = None,
    ) -> Route:
        """
        Persist the option as a route.

        Raises:
            RouteAlreadyExists: shipment already has a route
            NoCarrierAvailable: some leg could not get a carrier
            NoApplicableTariffBand: no active tariff to price the legs
        """
        existing = await self.db.execute(select(Route.id).where(Route.shipment_id == shipment_id))
        if existing.scalar_one_or_none() is not None:
            raise RouteAlreadyExists(shipment_id)

        try:
            route = await self._build(shipment_id, option, departure_at)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # Unique shipment_id lost to a concurrent materialization
            raise RouteAlreadyExists(shipment_id)
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Materialized route %s for shipment %s with %d legs",
            route.id, shipment_id, len(route.legs),
        )
        return route

    async def _build(
        self,
        shipment_id: int,
        option: RouteOption,
        departure_at: Optional[datetime],
    ) -> Route:
        cargo = option.cargo
        tariff = await TariffResolver.resolve_active_tariff(self.db)
        band = TariffEngine.select_band(tariff, cargo.weight_kg, cargo.volume_m3)

        taken: Set[int] = set()
        legs: List[Leg] = []
        start = as_naive_utc(departure_at) if departure_at else datetime.utcnow()

        for plan in option.legs:
            carrier = await self._assign_carrier(plan, cargo.weight_kg, cargo.volume_m3, taken)
            taken.add(carrier.id)

            end = start + timedelta(minutes=float(plan.duration_minutes))
            legs.append(Leg(
                sequence_number=plan.sequence_number,
                origin_deposit_id=plan.origin.deposit_id,
                destination_deposit_id=plan.destination.deposit_id,
                origin_lat=plan.origin.point.latitude,
                origin_lng=plan.origin.point.longitude,
                destination_lat=plan.destination.point.latitude,
                destination_lng=plan.destination.point.longitude,
                distance_km=plan.distance_km,
                estimated_duration_minutes=plan.duration_minutes,
                estimated_cost=TariffEngine.variable_cost(
                    band, tariff, plan.distance_km, carrier.fuel_consumption_rate
                ),
                assigned_carrier_id=carrier.id,
                state=LegState.SCHEDULED,
                scheduled_start=start,
                scheduled_end=end,
                actual_start=None,
                actual_end=None,
                actual_duration_minutes=None,
                actual_cost=None,
            ))
            start = end

        total = Decimal(str(tariff.fixed_management_fee)) + sum(
            (leg.estimated_cost for leg in legs), Decimal("0.00")
        )

        route = Route(
            shipment_id=shipment_id,
            selected_option_id=option.option_id,
            cargo_weight_kg=cargo.weight_kg,
            cargo_volume_m3=cargo.volume_m3,
            estimated_total_cost=money(total),
            estimated_distance_km=option.total_distance_km,
            estimated_duration_minutes=option.total_duration_minutes,
            geometry=option.geometry,
            status=RouteStatus.ACTIVE,
            completed_at=None,
            legs=legs,
        )
        self.db.add(route)
        await self.db.flush()
        return route

    async def _assign_carrier(
        self,
        plan: LegPlan,
        weight: Decimal,
        volume: Decimal,
        taken: Set[int],
    ) -> Carrier:
        """
        Cheapest carrier (cost_base + distance * cost per km) that fits the
        cargo; lost claim races fall through to the next candidate.
        """
        candidates = await find_candidate_carriers(self.db, weight, volume, exclude_ids=taken)
        candidates.sort(key=lambda c: (TariffEngine.carrier_cost(c, plan.distance_km), c.id))

        for carrier in candidates:
            if await claim_carrier(self.db, carrier.id, carrier.version):
                return carrier
            logger.info("Carrier %s claimed concurrently; trying next candidate", carrier.id)

        raise NoCarrierAvailable(plan.sequence_number, weight, volume)

