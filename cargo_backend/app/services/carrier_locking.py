"""
Carrier locking service.

Claims and releases a carrier's availability with an optimistic
compare-and-swap on its version column, so two concurrent materializations
can never both take the same truck.
"""

from decimal import Decimal
from typing import Any, Iterable, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from cargo_backend.app.models.carrier import Carrier


async def find_candidate_carriers(
    db: AsyncSession,
    weight: Decimal,
    volume: Decimal,
    exclude_ids: Iterable[int] = (),
) -> List[Carrier]:
    """
    Available, active carriers with enough capacity for the cargo.

    Args:
        db: Database session
        weight: Cargo weight in kg
        volume: Cargo volume in cubic meters
        exclude_ids: Carriers already taken by the caller

    Returns:
        Carriers as currently stored (unordered)
    """
    query = select(Carrier).where(
        Carrier.available == True,
        Carrier.is_active == True,
        Carrier.max_weight_kg >= weight,
        Carrier.max_volume_m3 >= volume,
    ).execution_options(populate_existing=True)

    excluded = list(exclude_ids)
    if excluded:
        query = query.where(Carrier.id.not_in(excluded))

    result = await db.execute(query)
    return list(result.scalars().all())


async def claim_carrier(
    db: AsyncSession,
    carrier_id: int,
    expected_version: int
) -> bool:
    """
    Mark a carrier unavailable if nobody changed it since it was read.

    Args:
        db: Database session
        carrier_id: Carrier to claim
        expected_version: Version seen when the carrier was read

    Returns:
        True if this caller now holds the carrier, False if the race was lost
    """
    result = await db.execute(
        update(Carrier)
        .where(
            Carrier.id == carrier_id,
            Carrier.version == expected_version,
            Carrier.available == True,
        )
        .values(available=False, version=Carrier.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_carrier(
    db: AsyncSession,
    carrier_id: Any
) -> bool:
    """
    Make a carrier available again when its leg reaches a terminal state.

    Returns:
        True if the carrier was released, False if it was already available
    """
    if carrier_id is None:
        return False

    result = await db.execute(
        update(Carrier)
        .where(
            Carrier.id == carrier_id,
            Carrier.available == False,
        )
        .values(available=True, version=Carrier.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
