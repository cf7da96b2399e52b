"""
Logistics Service — Supply output routes

Every write here moves stock: create debits lots FIFO-by-expiry, update
re-allocates when product or quantity changes, delete gives the stock back.
"""
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.api.deps import get_cache, require_roles
from logistics_service.core.policy import Principal, Role
from logistics_service.core.redis_client import InventoryCache
from logistics_service.db import output_ops
from logistics_service.db.database import get_db
from logistics_service.schemas.common import ok
from logistics_service.schemas.supply_output import (
    SupplyOutputOut,
    SupplyOutputRequest,
    SupplyOutputUpdateRequest,
)

router = APIRouter(prefix="/api/supply-outputs", tags=["supply-outputs"])

output_managers = require_roles(Role.ADMIN, Role.STATION_MANAGER)


@router.get("")
async def list_supply_outputs(
    receiving_unit: str | None = Query(None, alias="receivingUnit"),
    product_id: str | None = Query(None, alias="productId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    principal: Principal = Depends(output_managers),
    db: AsyncSession = Depends(get_db),
):
    outputs = await output_ops.list_supply_outputs(
        db,
        receiving_unit=receiving_unit,
        product_id=product_id,
        start_date=start_date,
        end_date=end_date,
    )
    return ok([SupplyOutputOut.from_model(o) for o in outputs], count=len(outputs))


@router.get("/{output_id}")
async def get_supply_output(
    output_id: str,
    principal: Principal = Depends(output_managers),
    db: AsyncSession = Depends(get_db),
):
    output, allocations = await output_ops.get_supply_output(db, output_id)
    return ok(SupplyOutputOut.from_model(output, allocations))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_supply_output(
    payload: SupplyOutputRequest,
    principal: Principal = Depends(output_managers),
    db: AsyncSession = Depends(get_db),
    cache: InventoryCache = Depends(get_cache),
):
    output, allocations = await output_ops.create_supply_output(
        db,
        principal,
        receiving_unit=payload.receiving_unit,
        product_id=payload.product_id,
        quantity=payload.quantity,
        output_date=payload.output_date,
        receiver=payload.receiver,
        note=payload.note,
    )
    await cache.invalidate(output.product_id)
    return ok(
        {
            "supplyOutputId": output.id,
            "allocations": [{"lotId": a.lot_id, "quantity": a.quantity} for a in allocations],
        },
        message="Supply output recorded.",
    )


@router.patch("/{output_id}")
async def update_supply_output(
    output_id: str,
    payload: SupplyOutputUpdateRequest,
    principal: Principal = Depends(output_managers),
    db: AsyncSession = Depends(get_db),
    cache: InventoryCache = Depends(get_cache),
):
    output, allocations, previous_product = await output_ops.update_supply_output(
        db,
        principal,
        output_id,
        receiving_unit=payload.receiving_unit,
        product_id=payload.product_id,
        quantity=payload.quantity,
        output_date=payload.output_date,
        receiver=payload.receiver,
        status=payload.status,
        note=payload.note,
    )
    await cache.invalidate(previous_product, output.product_id)
    return ok(SupplyOutputOut.from_model(output, allocations), message="Supply output updated.")


@router.delete("/{output_id}")
async def delete_supply_output(
    output_id: str,
    principal: Principal = Depends(output_managers),
    db: AsyncSession = Depends(get_db),
    cache: InventoryCache = Depends(get_cache),
):
    output = await output_ops.delete_supply_output(db, principal, output_id)
    await cache.invalidate(output.product_id)
    return ok(message="Supply output deleted.")
