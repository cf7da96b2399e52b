"""
Logistics Service — Supply intake routes

Flow:
  1. Unit assistant creates a supply           → pending
  2. Brigade assistant approves or rejects it  → approved / rejected
  3. Station manager receives it               → received (+ new inventory lot)
Role gating happens at the route and again inside each workflow step.
"""
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.api.deps import get_app_settings, get_cache, get_principal, require_roles
from logistics_service.core.config import Settings
from logistics_service.core.policy import Principal, Role
from logistics_service.core.redis_client import InventoryCache
from logistics_service.db import reference_data, supply_ops
from logistics_service.db.database import get_db
from logistics_service.schemas.common import ok
from logistics_service.schemas.supply import (
    CategoryOut,
    ProductOut,
    SupplyApproveRequest,
    SupplyCreateRequest,
    SupplyOut,
    SupplyReceiveRequest,
    SupplyRejectRequest,
    SupplyUpdateRequest,
)

router = APIRouter(prefix="/api/supplies", tags=["supplies"])


@router.get("")
async def list_supplies(
    unit: str | None = Query(None),
    category: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    station_entry_from_date: date | None = Query(None, alias="stationEntryFromDate"),
    station_entry_to_date: date | None = Query(None, alias="stationEntryToDate"),
    created_from_date: date | None = Query(None, alias="createdFromDate"),
    created_to_date: date | None = Query(None, alias="createdToDate"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    supplies = await supply_ops.list_supplies(
        db,
        principal,
        unit=unit,
        category=category,
        status=status_filter,
        station_entry_from=station_entry_from_date,
        station_entry_to=station_entry_to_date,
        created_from=created_from_date,
        created_to=created_to_date,
    )
    return ok([SupplyOut.from_model(s) for s in supplies], count=len(supplies))


@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await reference_data.list_categories(db)
    return ok([CategoryOut.model_validate(c) for c in categories])


@router.get("/products/{category_id}")
async def list_products(category_id: str, db: AsyncSession = Depends(get_db)):
    products = await reference_data.list_products(db, category_id)
    return ok([ProductOut.model_validate(p) for p in products])


@router.get("/{supply_id}")
async def get_supply(
    supply_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    supply = await supply_ops.get_supply(db, principal, supply_id)
    return ok(SupplyOut.from_model(supply))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_supply(
    payload: SupplyCreateRequest,
    principal: Principal = Depends(require_roles(Role.UNIT_ASSISTANT)),
    db: AsyncSession = Depends(get_db),
):
    supply = await supply_ops.create_supply(
        db,
        principal,
        category=payload.category,
        product=payload.product,
        supply_quantity=payload.supply_quantity,
        expiry_date=payload.expiry_date,
        note=payload.note,
    )
    return ok({"supplyId": supply.id}, message="Supply created. Status: pending approval.")


@router.patch("/{supply_id}")
async def update_supply(
    supply_id: str,
    payload: SupplyUpdateRequest,
    principal: Principal = Depends(require_roles(Role.UNIT_ASSISTANT)),
    db: AsyncSession = Depends(get_db),
):
    supply = await supply_ops.update_supply(
        db,
        principal,
        supply_id,
        category=payload.category,
        product=payload.product,
        supply_quantity=payload.supply_quantity,
        expiry_date=payload.expiry_date,
        actual_quantity=payload.actual_quantity,
        unit_price=payload.unit_price,
        note=payload.note,
    )
    return ok(SupplyOut.from_model(supply), message="Supply updated.")


@router.delete("/{supply_id}")
async def delete_supply(
    supply_id: str,
    principal: Principal = Depends(require_roles(Role.UNIT_ASSISTANT)),
    db: AsyncSession = Depends(get_db),
):
    await supply_ops.delete_supply(db, principal, supply_id)
    return ok(message="Supply deleted.")


@router.patch("/{supply_id}/approve")
async def approve_supply(
    supply_id: str,
    payload: SupplyApproveRequest,
    principal: Principal = Depends(require_roles(Role.BRIGADE_ASSISTANT, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    supply = await supply_ops.approve_supply(
        db,
        principal,
        supply_id,
        station_entry_date=payload.station_entry_date,
        requested_quantity=payload.requested_quantity,
        unit_price=payload.unit_price,
        expiry_date=payload.expiry_date,
        note=payload.note,
    )
    return ok(SupplyOut.from_model(supply), message="Supply approved. Status: approved.")


@router.patch("/{supply_id}/reject")
async def reject_supply(
    supply_id: str,
    payload: SupplyRejectRequest | None = None,
    principal: Principal = Depends(require_roles(Role.BRIGADE_ASSISTANT, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    note = payload.note if payload else None
    supply = await supply_ops.reject_supply(db, principal, supply_id, note=note)
    return ok(SupplyOut.from_model(supply), message="Supply rejected.")


@router.patch("/{supply_id}/receive")
async def receive_supply(
    supply_id: str,
    payload: SupplyReceiveRequest,
    principal: Principal = Depends(require_roles(Role.STATION_MANAGER, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
    cache: InventoryCache = Depends(get_cache),
    settings: Settings = Depends(get_app_settings),
):
    supply = await supply_ops.receive_supply(
        db,
        principal,
        supply_id,
        actual_quantity=payload.actual_quantity,
        received_quantity=payload.received_quantity,
        enforce_same_day=settings.ENFORCE_SAME_DAY_RECEIPT,
    )
    await cache.invalidate(supply.product)
    return ok(SupplyOut.from_model(supply), message="Supply received. Status: received.")
