"""
Logistics Service — Processing station inventory routes
"""
import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.api.deps import get_cache, get_principal, require_roles
from logistics_service.core.policy import Principal, Role
from logistics_service.core.redis_client import InventoryCache
from logistics_service.db import inventory_ops
from logistics_service.db.database import get_db
from logistics_service.db.reference_data import get_product
from logistics_service.schemas.common import ok
from logistics_service.schemas.supply_output import (
    AvailabilityOut,
    ExpireLotsRequest,
    InventorySummaryItem,
    LotOut,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/summary")
async def inventory_summary(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    rows = await inventory_ops.inventory_summary(db)
    return ok([InventorySummaryItem(**row) for row in rows])


@router.get("/lots")
async def list_lots(
    product_id: str | None = Query(None, alias="productId"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    lots = await inventory_ops.list_lots(db, product_id)
    return ok([LotOut.model_validate(lot) for lot in lots], count=len(lots))


@router.get("/available/{product_id}")
async def available_quantity(
    product_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    cache: InventoryCache = Depends(get_cache),
):
    """Non-expired quantity on hand. Served from Redis when warm; never used for allocation."""
    cached = await cache.get_available(product_id)
    if cached is not None:
        return ok(AvailabilityOut(product_id=product_id, available_quantity=cached, cached=True))

    await get_product(db, product_id)
    quantity = await inventory_ops.available_quantity(db, product_id)
    await cache.set_available(product_id, quantity)
    return ok(AvailabilityOut(product_id=product_id, available_quantity=quantity, cached=False))


@router.post("/expire")
async def expire_lots(
    payload: ExpireLotsRequest | None = None,
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.STATION_MANAGER)),
    db: AsyncSession = Depends(get_db),
    cache: InventoryCache = Depends(get_cache),
):
    as_of = (payload.as_of if payload else None) or date.today()
    async with db.begin():
        product_ids = await inventory_ops.expire_lots(db, as_of)
    await cache.invalidate(*product_ids)
    logger.info("%s expired lots as of %s (%d products)", principal.id, as_of, len(product_ids))
    return ok({"asOf": as_of.isoformat(), "productIds": product_ids}, message="Expired lots written off.")
