"""
Route option generation.

Synthesizes ranked candidate routes between an origin and a destination:
the direct route plus routes through nearby deposits. Options are planning
objects only; they are kept in Redis until one is selected and never
touch the relational database.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import (
    DistanceResolutionError,
    NoRouteFound,
    ResourceNotFoundError,
)
from cargo_backend.app.domain.pricing.tariff_engine import TariffEngine, money
from cargo_backend.app.domain.pricing.tariff_resolver import TariffResolver
from cargo_backend.app.models.deposit import Deposit
from cargo_backend.app.schemas.geo import GeoPoint
from cargo_backend.app.schemas.route_option import CargoSpec, LegPlan, RouteOption, RouteStop
from cargo_backend.app.services.distance_engine import DistanceEngine
from cargo_backend.app.services.geo_features import detour_distance
from cargo_backend.app.services.geo_resolver import GeoResolver, LocationInput

logger = logging.getLogger(__name__)

ROUTE_OPTION_PREFIX = "route_option:"
GEOMETRY_SEPARATOR = "|"

ORIGIN_LABEL = "Origin point"
DESTINATION_LABEL = "Destination point"


class RouteOptionStore:
    """Short-lived storage for generated options, keyed by option id."""

    def __init__(self, redis):
        self.redis = redis

    async def save(self, option: RouteOption) -> None:
        await self.redis.set(
            ROUTE_OPTION_PREFIX + option.option_id,
            option.model_dump_json(),
            ex=settings.route_option_ttl_seconds,
        )

    async def load(self, option_id: str) -> RouteOption:
        """
        Raises:
            ResourceNotFoundError: unknown or expired option
        """
        raw = await self.redis.get(ROUTE_OPTION_PREFIX + option_id)
        if not raw:
            raise ResourceNotFoundError("Route option", option_id)
        return RouteOption.model_validate_json(raw)


def _deposit_stop(deposit: Deposit) -> RouteStop:
    if deposit.latitude is None or deposit.longitude is None:
        raise DistanceResolutionError(f"Deposit {deposit.id} has no coordinates")
    return RouteStop(
        point=GeoPoint(latitude=deposit.latitude, longitude=deposit.longitude),
        deposit_id=deposit.id,
        label=deposit.name,
    )


def rank_options(options: List[RouteOption]) -> List[RouteOption]:
    """Sort by total cost, then total duration, and number ranks from 1."""
    ranked = sorted(options, key=lambda o: (o.total_cost, o.total_duration_minutes))
    for index, option in enumerate(ranked, start=1):
        option.rank_index = index
    return ranked


class RouteOptionGenerator:
    """Builds and ranks route options for a cargo between two places."""

    def __init__(
        self,
        db: AsyncSession,
        geo_resolver: GeoResolver,
        distance_engine: DistanceEngine,
        store: Optional[RouteOptionStore] = None,
    ):
        self.db = db
        self.geo_resolver = geo_resolver
        self.distance_engine = distance_engine
        self.store = store

    async def generate(
        self,
        origin: LocationInput,
        destination: LocationInput,
        cargo: CargoSpec,
        via_deposit_ids: Optional[Sequence[int]] = None,
    ) -> List[RouteOption]:
        """
        Generate ranked route options.

        Returns:
            Non-empty list of options, cheapest first (ties by duration)

        Raises:
            GeocodingFailure / InvalidCoordinates: endpoint cannot be resolved
            NoApplicableTariffBand: no tariff band covers the cargo
            NoRouteFound: every candidate chain failed distance resolution
        """
        origin_point = await self.geo_resolver.resolve(origin)
        destination_point = await self.geo_resolver.resolve(destination)

        # Band selection first: a tariff gap must not cost provider calls
        tariff = await TariffResolver.resolve_active_tariff(self.db)
        band = TariffEngine.select_band(tariff, cargo.weight_kg, cargo.volume_m3)

        origin_stop = RouteStop(point=origin_point, label=ORIGIN_LABEL)
        destination_stop = RouteStop(point=destination_point, label=DESTINATION_LABEL)

        chains = await self._candidate_chains(origin_stop, destination_stop, via_deposit_ids)

        options: List[RouteOption] = []
        for chain in chains:
            try:
                stops = [stop if isinstance(stop, RouteStop) else _deposit_stop(stop) for stop in chain]
                legs = await self._plan_legs(stops, band, tariff)
            except DistanceResolutionError as exc:
                logger.warning("Dropping candidate chain: %s", exc.message)
                continue

            total_distance = sum((leg.distance_km for leg in legs), Decimal("0.00"))
            total_duration = sum((leg.duration_minutes for leg in legs), Decimal("0.00"))
            geometries = [leg.geometry for leg in legs if leg.geometry]

            options.append(RouteOption(
                option_id=str(uuid.uuid4()),
                rank_index=0,
                legs=legs,
                total_distance_km=total_distance,
                total_duration_minutes=total_duration,
                management_fee=money(Decimal(str(tariff.fixed_management_fee))),
                total_cost=TariffEngine.price(cargo.weight_kg, cargo.volume_m3, total_distance, tariff),
                geometry=GEOMETRY_SEPARATOR.join(geometries) if geometries else None,
                cargo=cargo,
                tariff_id=tariff.id,
                band_id=band.id,
            ))

        if not options:
            raise NoRouteFound(candidates_tried=len(chains))

        ranked = rank_options(options)
        if self.store is not None:
            for option in ranked:
                await self.store.save(option)

        logger.info(
            "Generated %d route options from %d candidates (best total %s)",
            len(ranked), len(chains), ranked[0].total_cost,
        )
        return ranked

    async def _candidate_chains(
        self,
        origin: RouteStop,
        destination: RouteStop,
        via_deposit_ids: Optional[Sequence[int]],
    ) -> List[List[Any]]:
        """
        Candidate stop sequences.

        Explicit deposits give one chain through them in order; otherwise the
        direct chain plus one chain per nearby deposit.
        """
        if via_deposit_ids:
            result = await self.db.execute(
                select(Deposit).where(Deposit.id.in_(via_deposit_ids), Deposit.is_active == True)
            )
            by_id = {deposit.id: deposit for deposit in result.scalars().all()}
            missing = [deposit_id for deposit_id in via_deposit_ids if deposit_id not in by_id]
            if missing:
                raise ResourceNotFoundError("Deposit", missing[0])
            return [[origin] + [by_id[deposit_id] for deposit_id in via_deposit_ids] + [destination]]

        chains: List[List[Any]] = [[origin, destination]]
        for deposit in await self.nearby_deposits(origin.point, destination.point):
            chains.append([origin, deposit, destination])
        return chains

    async def nearby_deposits(self, origin: GeoPoint, destination: GeoPoint) -> List[Deposit]:
        """
        Active deposits whose detour stays within the configured budget,
        smallest detour first, capped at MAX_DEPOSIT_CANDIDATES.
        """
        result = await self.db.execute(
            select(Deposit).where(
                Deposit.is_active == True,
                Deposit.latitude.is_not(None),
                Deposit.longitude.is_not(None),
            )
        )

        scored = []
        for deposit in result.scalars().all():
            point = GeoPoint(latitude=deposit.latitude, longitude=deposit.longitude)
            if point == origin or point == destination:
                continue
            detour = detour_distance(origin, point, destination)
            if detour <= settings.deposit_detour_budget_km:
                scored.append((detour, deposit.id, deposit))

        scored.sort(key=lambda item: (item[0], item[1]))
        return [deposit for _, _, deposit in scored[:settings.max_deposit_candidates]]

    async def _plan_legs(self, stops: List[RouteStop], band, tariff) -> List[LegPlan]:
        legs = []
        for sequence, (start, end) in enumerate(zip(stops, stops[1:]), start=1):
            result = await self.distance_engine.distance(start.point, end.point)
            legs.append(LegPlan(
                sequence_number=sequence,
                origin=start,
                destination=end,
                distance_km=result.distance_km,
                duration_minutes=result.duration_minutes,
                estimated_cost=TariffEngine.variable_cost(band, tariff, result.distance_km),
                geometry=result.geometry,
                distance_source=result.source,
            ))
        return legs
