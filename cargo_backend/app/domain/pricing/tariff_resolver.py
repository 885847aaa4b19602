"""
Tariff Resolver.

Responsible for determining the tariff in force.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from datetime import datetime
from cargo_backend.app.core.exceptions import NoApplicableTariffBand
from cargo_backend.app.models.tariff import Tariff


class TariffResolver:

    @staticmethod
    async def resolve_active_tariff(db: AsyncSession) -> Tariff:
        """
        Find the most recent active tariff already in effect.

        Raises:
            NoApplicableTariffBand: If no active tariff is found.
        """
        now = datetime.utcnow()

        query = select(Tariff).options(selectinload(Tariff.bands)).where(
            Tariff.is_active == True,
            Tariff.effective_from <= now,
        ).order_by(Tariff.effective_from.desc(), Tariff.id.desc()).limit(1)

        result = await db.execute(query)
        tariff = result.scalar_one_or_none()

        if not tariff:
            raise NoApplicableTariffBand(message="No active tariff found. Cannot price cargo.")

        return tariff
