"""
Logistics Service — Supply lifecycle (record manager, approval and receipt)

    pending ──approve──▶ approved ──receive──▶ received
       │
       ├──reject──▶ rejected
       └──delete──▶ deleted

Each operation is one transaction against one supply row. The row's
mapper-managed version_id turns a concurrent transition into a stale-data
conflict; the retry re-reads the row and re-checks the preconditions, so the
loser of a race fails with InvalidStateError instead of overwriting.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.core.config import get_settings
from logistics_service.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from logistics_service.core.optimistic_lock import with_optimistic_retry
from logistics_service.core.policy import Principal, SUPPLY_APPROVERS, SUPPLY_CREATORS, SUPPLY_RECEIVERS
from logistics_service.db.inventory_ops import create_lot_from_supply
from logistics_service.db.reference_data import get_unit, validate_catalog_entry
from logistics_service.models.supply import Supply, SupplyStatus, can_transition

settings = get_settings()
logger = logging.getLogger(__name__)


def _require_positive(value: float | None, field: str) -> float:
    if value is None or value <= 0:
        raise InvalidInputError(f"'{field}' must be a number greater than 0.")
    return float(value)


def _require_transition(supply: Supply, target: SupplyStatus, action: str) -> None:
    if not can_transition(supply.status, target):
        raise InvalidStateError(SupplyStatus(supply.status).value, action)


async def _load(db: AsyncSession, supply_id: str) -> Supply:
    result = await db.execute(
        select(Supply).where(Supply.id == supply_id).execution_options(populate_existing=True)
    )
    supply = result.scalar_one_or_none()
    if supply is None:
        raise NotFoundError("Supply not found.")
    return supply


# ─── Supply Record Manager ────────────────────────────────────────────────────

async def create_supply(
    db: AsyncSession,
    principal: Principal,
    category: str,
    product: str,
    supply_quantity: float,
    expiry_date: date | None = None,
    note: str | None = None,
) -> Supply:
    principal.require(SUPPLY_CREATORS, "create supplies")
    if not principal.unit_id:
        raise InvalidInputError("Your account is not assigned to a unit.")
    quantity = _require_positive(supply_quantity, "supplyQuantity")

    async with db.begin():
        await get_unit(db, principal.unit_id)
        await validate_catalog_entry(db, category, product)
        supply = Supply(
            unit_id=principal.unit_id,
            category=category,
            product=product,
            supply_quantity=quantity,
            station_entry_date=None,
            requested_quantity=None,
            actual_quantity=None,
            received_quantity=None,
            unit_price=None,
            total_price=None,
            expiry_date=expiry_date,
            status=SupplyStatus.PENDING,
            note=note or "",
            created_by_id=principal.id,
            created_by_name=principal.name,
            approved_by_id=None,
            approved_by_name=None,
        )
        db.add(supply)

    logger.info("Supply %s created by %s for unit %s (%s x %g)",
                supply.id, principal.id, supply.unit_id, product, quantity)
    return supply


async def get_supply(db: AsyncSession, principal: Principal, supply_id: str) -> Supply:
    supply = await _load(db, supply_id)
    if principal.is_unit_scoped and not principal.owns_unit(supply.unit_id):
        raise ForbiddenError("You cannot view supplies of another unit.")
    return supply


async def list_supplies(
    db: AsyncSession,
    principal: Principal,
    unit: str | None = None,
    category: str | None = None,
    status: str | None = None,
    station_entry_from: date | None = None,
    station_entry_to: date | None = None,
    created_from: date | None = None,
    created_to: date | None = None,
) -> list[Supply]:
    query = select(Supply)

    if principal.is_unit_scoped:
        query = query.where(Supply.unit_id == principal.unit_id)
    elif unit and unit != "all":
        query = query.where(Supply.unit_id == unit)

    if category:
        query = query.where(Supply.category == category)

    if status and status != "all":
        try:
            query = query.where(Supply.status == SupplyStatus(status))
        except ValueError:
            raise InvalidInputError(f"Unknown status '{status}'.")
    else:
        query = query.where(Supply.status != SupplyStatus.DELETED)

    if station_entry_from:
        query = query.where(Supply.station_entry_date >= station_entry_from)
    if station_entry_to:
        query = query.where(Supply.station_entry_date <= station_entry_to)
    if created_from:
        query = query.where(Supply.created_at >= _start_of(created_from))
    if created_to:
        query = query.where(Supply.created_at < _start_of(created_to + timedelta(days=1)))

    result = await db.execute(query.order_by(Supply.created_at.desc()))
    return list(result.scalars().all())


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


@with_optimistic_retry()
async def update_supply(
    db: AsyncSession,
    principal: Principal,
    supply_id: str,
    category: str,
    product: str,
    supply_quantity: float,
    expiry_date: date | None = None,
    actual_quantity: float | None = None,
    unit_price: float | None = None,
    note: str | None = None,
) -> Supply:
    quantity = _require_positive(supply_quantity, "supplyQuantity")

    async with db.begin():
        supply = await _load(db, supply_id)
        principal.require_owner(supply.unit_id, "edit")
        if supply.status != SupplyStatus.PENDING:
            raise InvalidStateError(SupplyStatus(supply.status).value, "edit")
        await validate_catalog_entry(db, category, product)

        supply.category = category
        supply.product = product
        supply.supply_quantity = quantity
        supply.expiry_date = expiry_date
        supply.actual_quantity = actual_quantity or None
        supply.unit_price = unit_price or None
        if actual_quantity and unit_price:
            supply.total_price = float(actual_quantity) * float(unit_price)
        else:
            supply.total_price = None
        supply.note = note or ""

    logger.info("Supply %s updated by %s", supply.id, principal.id)
    return supply


@with_optimistic_retry()
async def delete_supply(db: AsyncSession, principal: Principal, supply_id: str) -> Supply:
    async with db.begin():
        supply = await _load(db, supply_id)
        principal.require_owner(supply.unit_id, "delete")
        _require_transition(supply, SupplyStatus.DELETED, "delete")
        supply.status = SupplyStatus.DELETED

    logger.info("Supply %s soft-deleted by %s", supply.id, principal.id)
    return supply


# ─── Approval Engine ──────────────────────────────────────────────────────────

@with_optimistic_retry()
async def approve_supply(
    db: AsyncSession,
    principal: Principal,
    supply_id: str,
    station_entry_date: date | None,
    requested_quantity: float | None,
    unit_price: float | None,
    expiry_date: date | None = None,
    note: str | None = None,
) -> Supply:
    principal.require(SUPPLY_APPROVERS, "approve supplies")
    if station_entry_date is None or not requested_quantity or not unit_price:
        raise InvalidInputError("stationEntryDate, requestedQuantity and unitPrice are required.")
    requested = _require_positive(requested_quantity, "requestedQuantity")
    price = _require_positive(unit_price, "unitPrice")

    async with db.begin():
        supply = await _load(db, supply_id)
        _require_transition(supply, SupplyStatus.APPROVED, "approve")

        supply.status = SupplyStatus.APPROVED
        supply.station_entry_date = station_entry_date
        supply.requested_quantity = requested
        supply.unit_price = price
        supply.total_price = requested * price
        supply.actual_quantity = None  # entered by the station manager at receipt
        if expiry_date:
            supply.expiry_date = expiry_date
        if note:
            supply.note = note
        supply.approved_by_id = principal.id
        supply.approved_by_name = principal.name

    logger.info("Supply %s approved by %s: %g x %g = %g",
                supply.id, principal.id, requested, price, supply.total_price)
    return supply


@with_optimistic_retry()
async def reject_supply(
    db: AsyncSession,
    principal: Principal,
    supply_id: str,
    note: str | None = None,
) -> Supply:
    principal.require(SUPPLY_APPROVERS, "reject supplies")

    async with db.begin():
        supply = await _load(db, supply_id)
        _require_transition(supply, SupplyStatus.REJECTED, "reject")
        supply.status = SupplyStatus.REJECTED
        supply.note = note or settings.DEFAULT_REJECTION_NOTE
        supply.approved_by_id = principal.id
        supply.approved_by_name = principal.name

    logger.info("Supply %s rejected by %s", supply.id, principal.id)
    return supply


# ─── Receipt Engine ───────────────────────────────────────────────────────────

@with_optimistic_retry()
async def receive_supply(
    db: AsyncSession,
    principal: Principal,
    supply_id: str,
    actual_quantity: float | None,
    received_quantity: float | None,
    today: date | None = None,
    enforce_same_day: bool = False,
) -> Supply:
    principal.require(SUPPLY_RECEIVERS, "receive supplies")
    actual = _require_positive(actual_quantity, "actualQuantity")
    received = _require_positive(received_quantity, "receivedQuantity")
    today = today or date.today()

    async with db.begin():
        supply = await _load(db, supply_id)
        _require_transition(supply, SupplyStatus.RECEIVED, "receive")
        if enforce_same_day and supply.station_entry_date != today:
            raise ConflictError("Supplies can only be received on their station entry date.")

        supply.actual_quantity = actual
        supply.received_quantity = received
        supply.status = SupplyStatus.RECEIVED
        if supply.unit_price:
            supply.total_price = actual * supply.unit_price
        lot = await create_lot_from_supply(db, supply, received_on=today)

    logger.info("Supply %s received by %s: %g %s booked into lot %s",
                supply.id, principal.id, actual, supply.product, lot.id)
    return supply
