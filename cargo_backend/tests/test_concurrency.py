"""
Concurrency Tests.

Validates that carrier claims and the completion cascade hold up when two
callers race for the same row.
"""

import pytest
from sqlalchemy import select, update

from cargo_backend.app.core.exceptions import NoCarrierAvailable
from cargo_backend.app.models.carrier import Carrier
from cargo_backend.app.models.leg import Leg
from cargo_backend.app.models.route import Route
from cargo_backend.app.models.route_enums import LegState, RouteStatus
from cargo_backend.app.services import route_decomposer
from cargo_backend.app.services.carrier_locking import claim_carrier, release_carrier
from cargo_backend.app.services.leg_lifecycle import LegLifecycle
from cargo_backend.app.services.route_decomposer import RouteDecomposer
from cargo_backend.tests.factories import build_option, create_carrier, create_tariff, materialize_route


@pytest.mark.asyncio
async def test_stale_version_claim_fails(db_session):
    """Two callers read version 0; only the first claim wins."""
    carrier = await create_carrier(db_session, "RACE01")
    seen_version = carrier.version

    assert await claim_carrier(db_session, carrier.id, seen_version) is True
    await db_session.commit()

    assert await claim_carrier(db_session, carrier.id, seen_version) is False


@pytest.mark.asyncio
async def test_claim_bumps_version_and_release_restores(db_session):
    carrier = await create_carrier(db_session, "RACE02")
    carrier_id = carrier.id

    assert await claim_carrier(db_session, carrier_id, 0) is True
    assert await release_carrier(db_session, carrier_id) is True
    assert await release_carrier(db_session, carrier_id) is False
    await db_session.commit()

    result = await db_session.execute(
        select(Carrier.available, Carrier.version).where(Carrier.id == carrier_id)
    )
    available, version = result.one()
    assert available is True
    assert version == 2


@pytest.mark.asyncio
async def test_single_carrier_serves_one_shipment(db_session):
    """Two shipments compete for the only carrier: one route, one NoCarrierAvailable."""
    await create_tariff(db_session)
    await create_carrier(db_session, "SOLO")
    decomposer = RouteDecomposer(db_session)

    await decomposer.materialize(1, build_option(leg_count=1, option_id="a"))

    with pytest.raises(NoCarrierAvailable):
        await decomposer.materialize(2, build_option(leg_count=1, option_id="b"))

    result = await db_session.execute(select(Route.shipment_id))
    assert result.scalars().all() == [1]


@pytest.mark.asyncio
async def test_lost_claim_falls_through_to_next_candidate(db_session, mocker):
    """The cheapest carrier is taken between read and claim; the next one is used."""
    await create_tariff(db_session)
    cheapest = await create_carrier(db_session, "CHEAP", cost_base="1")
    fallback = await create_carrier(db_session, "NEXT", cost_base="50")

    real_claim = route_decomposer.claim_carrier

    async def contended_claim(db, carrier_id, expected_version):
        if carrier_id == cheapest.id:
            # Someone else claimed it first
            await db.execute(
                update(Carrier)
                .where(Carrier.id == carrier_id)
                .values(available=False, version=Carrier.version + 1)
                .execution_options(synchronize_session=False)
            )
        return await real_claim(db, carrier_id, expected_version)

    mocker.patch.object(route_decomposer, "claim_carrier", side_effect=contended_claim)

    route = await RouteDecomposer(db_session).materialize(5, build_option(leg_count=1))

    assert route.legs[0].assigned_carrier_id == fallback.id


@pytest.mark.asyncio
async def test_cascade_fires_once_when_last_legs_finish_together(db_session, shipment_port):
    """
    Both remaining legs commit COMPLETED before either completer evaluates
    the cascade. Both evaluations see every leg completed; only one wins
    the route flip and notifies.
    """
    route_id, _, _ = await materialize_route(db_session, leg_count=2)
    await db_session.execute(
        update(Leg)
        .where(Leg.route_id == route_id)
        .values(state=LegState.COMPLETED, actual_cost=100, actual_duration_minutes=60)
        .execution_options(synchronize_session=False)
    )
    await db_session.commit()

    lifecycle = LegLifecycle(db_session, shipment_port)
    outcomes = []
    for _ in range(2):
        outcome = await lifecycle._evaluate_cascade(route_id)
        await db_session.commit()
        if outcome.triggered:
            await lifecycle._notify(outcome, "token")
        outcomes.append(outcome)

    assert [o.triggered for o in outcomes].count(True) == 1
    assert len(shipment_port.calls) == 1
    assert shipment_port.calls[0]["final_cost"] == 200

    result = await db_session.execute(select(Route.status).where(Route.id == route_id))
    assert result.scalar_one() == RouteStatus.COMPLETED
