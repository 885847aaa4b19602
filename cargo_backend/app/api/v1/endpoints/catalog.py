"""
Catalog API Endpoints.

Registration of the reference data the routing core reads: tariffs with
their bands, deposits and carriers.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from cargo_backend.app.db.session import get_db
from cargo_backend.app.core.clock import as_naive_utc
from cargo_backend.app.core.dependencies import get_caller
from cargo_backend.app.models.carrier import Carrier
from cargo_backend.app.models.deposit import Deposit
from cargo_backend.app.models.tariff import Tariff, TariffBand
from cargo_backend.app.schemas.catalog import (
    CarrierCreate, CarrierResponse, DepositCreate, DepositResponse, TariffCreate, TariffResponse
)
from cargo_backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/admin/catalog", tags=["Admin - Catalog"])


@router.post("/tariffs", response_model=TariffResponse, status_code=status.HTTP_201_CREATED)
async def create_tariff(
    tariff_data: TariffCreate,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a tariff with its bands.

    The newest active tariff in effect is the one used for pricing.
    """
    for band in tariff_data.bands:
        if band.volume_max is not None and band.volume_max < band.volume_min:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="volume_max is below volume_min")
        if band.weight_max is not None and band.weight_max < band.weight_min:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="weight_max is below weight_min")

    tariff = Tariff(
        name=tariff_data.name,
        fixed_management_fee=tariff_data.fixed_management_fee,
        fuel_unit_price=tariff_data.fuel_unit_price,
        is_active=True,
        bands=[TariffBand(**band.model_dump()) for band in tariff_data.bands],
    )
    if tariff_data.effective_from:
        tariff.effective_from = as_naive_utc(tariff_data.effective_from)

    db.add(tariff)
    await db.commit()

    result = await db.execute(
        select(Tariff).options(selectinload(Tariff.bands)).where(Tariff.id == tariff.id)
    )
    tariff = result.scalar_one()

    await log_event(
        db=db,
        action=AuditAction.TARIFF_CREATED,
        actor=current_user,
        target_type="tariff",
        target_id=tariff.id,
        metadata={"name": tariff.name, "bands": len(tariff.bands)}
    )

    return tariff


@router.post("/deposits", response_model=DepositResponse, status_code=status.HTTP_201_CREATED)
async def create_deposit(
    deposit_data: DepositCreate,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Register a deposit."""
    deposit = Deposit(**deposit_data.model_dump(), is_active=True)

    db.add(deposit)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.DEPOSIT_CREATED,
        actor=current_user,
        target_type="deposit",
        target_id=deposit.id,
        metadata={"name": deposit.name}
    )

    return deposit


@router.post("/carriers", response_model=CarrierResponse, status_code=status.HTTP_201_CREATED)
async def create_carrier(
    carrier_data: CarrierCreate,
    current_user: dict = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Register a carrier. New carriers start available."""
    existing = await db.execute(select(Carrier).where(Carrier.plate == carrier_data.plate))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Carrier with plate {carrier_data.plate} already exists"
        )

    carrier = Carrier(**carrier_data.model_dump(), available=True, is_active=True, version=0)

    db.add(carrier)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.CARRIER_CREATED,
        actor=current_user,
        target_type="carrier",
        target_id=carrier.id,
        metadata={"plate": carrier.plate}
    )

    return carrier
