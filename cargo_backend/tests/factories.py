"""
Test data builders.
"""

from datetime import datetime
from decimal import Decimal

from cargo_backend.app.models.carrier import Carrier
from cargo_backend.app.models.deposit import Deposit
from cargo_backend.app.models.tariff import Tariff, TariffBand
from cargo_backend.app.schemas.geo import GeoPoint
from cargo_backend.app.schemas.route_option import CargoSpec, LegPlan, RouteOption, RouteStop
from cargo_backend.app.services.route_decomposer import RouteDecomposer


async def create_tariff(db, fee="50", fuel="1.5", bands=None, effective_from=None, name="Standard"):
    bands = bands or [dict(volume_min=0, volume_max=10, weight_min=0, weight_max=1000, cost_per_distance_unit="2.0")]
    tariff = Tariff(
        name=name,
        fixed_management_fee=Decimal(fee),
        fuel_unit_price=Decimal(fuel),
        is_active=True,
        effective_from=effective_from or datetime(2020, 1, 1),
        bands=[
            TariffBand(**{k: (Decimal(str(v)) if v is not None else None) for k, v in band.items()})
            for band in bands
        ],
    )
    db.add(tariff)
    await db.commit()
    return tariff


async def create_carrier(db, plate, max_weight="1000", max_volume="10", cost_base="10",
                         cost_per_km="1.0", fuel_rate=None, available=True):
    carrier = Carrier(
        plate=plate,
        carrier_name=f"Truck {plate}",
        max_weight_kg=Decimal(max_weight),
        max_volume_m3=Decimal(max_volume),
        cost_base=Decimal(cost_base),
        cost_per_distance_unit=Decimal(cost_per_km),
        fuel_consumption_rate=Decimal(fuel_rate) if fuel_rate is not None else None,
        available=available,
        is_active=True,
        version=0,
    )
    db.add(carrier)
    await db.commit()
    return carrier


async def create_deposit(db, name, latitude, longitude, is_active=True):
    deposit = Deposit(name=name, address=name, latitude=latitude, longitude=longitude, is_active=is_active)
    db.add(deposit)
    await db.commit()
    return deposit


def build_option(leg_count=3, distance_km="100.00", weight="500", volume="5", option_id="opt-1"):
    """A contiguous route option along the equator, one degree per leg."""
    stops = [
        RouteStop(point=GeoPoint(latitude=0.0, longitude=float(i)), label=f"Stop {i}")
        for i in range(leg_count + 1)
    ]
    legs = [
        LegPlan(
            sequence_number=i + 1,
            origin=stops[i],
            destination=stops[i + 1],
            distance_km=Decimal(distance_km),
            duration_minutes=Decimal("100.00"),
            estimated_cost=Decimal(distance_km) * 2,
            distance_source="haversine",
        )
        for i in range(leg_count)
    ]
    total = Decimal(distance_km) * leg_count
    return RouteOption(
        option_id=option_id,
        rank_index=1,
        legs=legs,
        total_distance_km=total,
        total_duration_minutes=Decimal("100.00") * leg_count,
        management_fee=Decimal("50.00"),
        total_cost=Decimal("50.00") + total * 2,
        cargo=CargoSpec(weight_kg=Decimal(weight), volume_m3=Decimal(volume)),
        tariff_id=1,
        band_id=1,
    )


async def materialize_route(db, leg_count=3, shipment_id=42, **carrier_kwargs):
    """Tariff, one carrier per leg and a materialized route. Returns (route_id, leg_ids, carrier_ids)."""
    await create_tariff(db)
    for i in range(leg_count):
        await create_carrier(db, f"S{shipment_id}-TRK{i}", **carrier_kwargs)

    route = await RouteDecomposer(db).materialize(
        shipment_id, build_option(leg_count=leg_count), datetime(2026, 3, 1, 8, 0)
    )
    return route.id, [leg.id for leg in route.legs], [leg.assigned_carrier_id for leg in route.legs]
