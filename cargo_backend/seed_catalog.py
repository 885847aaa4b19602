"""
Database seeding script for reference data.

Creates a tariff with weight/volume bands, a few deposits and a small
carrier fleet for testing and development.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from cargo_backend.app.db.session import AsyncSessionLocal, engine, Base
from cargo_backend.app.models.tariff import Tariff, TariffBand
from cargo_backend.app.models.deposit import Deposit
from cargo_backend.app.models.carrier import Carrier
from sqlalchemy import select


async def seed_catalog():
    """
    Seed reference data.

    Creates:
    - 1 tariff with 3 bands
    - 3 deposits
    - 3 carriers of different sizes
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Starting catalog seeding...")

        result = await db.execute(select(Tariff).limit(1))
        if result.scalar_one_or_none():
            print("A tariff already exists, skipping seeding")
            return

        db.add(Tariff(
            name="Standard",
            fixed_management_fee=Decimal("50.00"),
            fuel_unit_price=Decimal("1.50"),
            is_active=True,
            bands=[
                TariffBand(volume_min=0, volume_max=10, weight_min=0, weight_max=1000,
                           cost_per_distance_unit=Decimal("2.00")),
                TariffBand(volume_min=10, volume_max=40, weight_min=0, weight_max=10000,
                           cost_per_distance_unit=Decimal("3.50")),
                TariffBand(volume_min=40, volume_max=None, weight_min=0, weight_max=None,
                           cost_per_distance_unit=Decimal("5.00")),
            ],
        ))
        print("Created tariff 'Standard'")

        db.add_all([
            Deposit(name="Cordoba Central", address="Cordoba", latitude=-31.4201, longitude=-64.1888),
            Deposit(name="Rosario Norte", address="Rosario", latitude=-32.9442, longitude=-60.6505),
            Deposit(name="Villa Maria", address="Villa Maria", latitude=-32.4075, longitude=-63.2403),
        ])
        print("Created 3 deposits")

        db.add_all([
            Carrier(plate="AA100BB", carrier_name="Light Van", max_weight_kg=1500, max_volume_m3=12,
                    cost_base=Decimal("20.00"), cost_per_distance_unit=Decimal("0.80"),
                    fuel_consumption_rate=Decimal("0.12")),
            Carrier(plate="AC200DD", carrier_name="Rigid Truck", max_weight_kg=8000, max_volume_m3=40,
                    cost_base=Decimal("60.00"), cost_per_distance_unit=Decimal("1.40"),
                    fuel_consumption_rate=Decimal("0.28")),
            Carrier(plate="AE300FF", carrier_name="Semi Trailer", max_weight_kg=28000, max_volume_m3=90,
                    cost_base=Decimal("120.00"), cost_per_distance_unit=Decimal("2.10"),
                    fuel_consumption_rate=Decimal("0.38")),
        ])
        print("Created 3 carriers")

        await db.commit()

        print("\nCatalog seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_catalog())
