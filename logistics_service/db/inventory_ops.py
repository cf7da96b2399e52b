"""
Logistics Service — Inventory lot operations with optimistic locking

Lots are consumed oldest-expiry first. Every debit is a conditional UPDATE:

  - READ:  fetch allocatable lots + their version_id
  - WRITE: UPDATE ... WHERE id = :id AND version_id = :v AND non_expired_quantity >= :n
  - If another transaction touched the lot first -> StaleDataError -> the
    caller's transaction rolls back and with_optimistic_retry re-runs it

None of these functions commit; they run inside the caller's transaction.
"""
import logging
from datetime import date

from sqlalchemy import and_, case, or_, select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.core.exceptions import InsufficientInventoryError
from logistics_service.core.optimistic_lock import StaleDataError
from logistics_service.models.inventory import InventoryLot, OutputAllocation, LOT_TYPE_FOOD
from logistics_service.models.reference import Product
from logistics_service.models.supply import Supply

logger = logging.getLogger(__name__)

# Float leftovers below this are treated as zero when splitting quantities
QUANTITY_EPSILON = 1e-9


async def allocatable_lots(db: AsyncSession, product_id: str) -> list[InventoryLot]:
    """Lots of the product with stock left, soonest expiry first (undated lots last)."""
    result = await db.execute(
        select(InventoryLot)
        .where(
            InventoryLot.type == LOT_TYPE_FOOD,
            InventoryLot.product_id == product_id,
            InventoryLot.non_expired_quantity > 0,
        )
        .order_by(
            InventoryLot.expiry_date.is_(None),
            InventoryLot.expiry_date,
            InventoryLot.created_at,
        )
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def available_quantity(db: AsyncSession, product_id: str) -> float:
    result = await db.execute(
        select(func.coalesce(func.sum(InventoryLot.non_expired_quantity), 0.0)).where(
            InventoryLot.type == LOT_TYPE_FOOD,
            InventoryLot.product_id == product_id,
            InventoryLot.non_expired_quantity > 0,
        )
    )
    return float(result.scalar_one())


def plan_fifo(lots: list[InventoryLot], quantity: float) -> list[tuple[InventoryLot, float]]:
    """
    Split `quantity` across `lots` in the given order, never taking more than a
    lot's non-expired quantity. Raises InsufficientInventoryError when the lots
    cannot cover it.
    """
    available = sum(lot.non_expired_quantity for lot in lots)
    if available + QUANTITY_EPSILON < quantity:
        product_id = lots[0].product_id if lots else ""
        raise InsufficientInventoryError(product_id, available, quantity)

    plan: list[tuple[InventoryLot, float]] = []
    remaining = quantity
    for lot in lots:
        if remaining <= QUANTITY_EPSILON:
            break
        if lot.non_expired_quantity <= QUANTITY_EPSILON:
            continue
        take = min(lot.non_expired_quantity, remaining)
        if lot.non_expired_quantity - take <= QUANTITY_EPSILON:
            take = lot.non_expired_quantity
        plan.append((lot, take))
        remaining -= take
    return plan


async def _debit_lot(db: AsyncSession, lot: InventoryLot, amount: float) -> None:
    result = await db.execute(
        update(InventoryLot)
        .where(
            InventoryLot.id == lot.id,
            InventoryLot.version_id == lot.version_id,
            InventoryLot.non_expired_quantity >= amount,
        )
        .values(
            non_expired_quantity=InventoryLot.non_expired_quantity - amount,
            quantity=InventoryLot.quantity - amount,
            version_id=InventoryLot.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise StaleDataError(f"Lot {lot.id} changed concurrently (expected version {lot.version_id}).")


async def _credit_lot(db: AsyncSession, lot_id: str, amount: float, today: date) -> None:
    """Put `amount` back on the lot's books; only a lot still in date takes it back as usable stock."""
    usable = and_(
        InventoryLot.written_off_on.is_(None),
        or_(InventoryLot.expiry_date.is_(None), InventoryLot.expiry_date >= today),
    )
    result = await db.execute(
        update(InventoryLot)
        .where(InventoryLot.id == lot_id)
        .values(
            non_expired_quantity=case(
                (usable, InventoryLot.non_expired_quantity + amount),
                else_=InventoryLot.non_expired_quantity,
            ),
            quantity=InventoryLot.quantity + amount,
            version_id=InventoryLot.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise StaleDataError(f"Lot {lot_id} disappeared while restoring {amount:g}.")


async def deduct_fifo(
    db: AsyncSession,
    output_id: str,
    product_id: str,
    quantity: float,
) -> list[OutputAllocation]:
    """Debit `quantity` of the product from its lots and record one allocation per lot."""
    lots = await allocatable_lots(db, product_id)
    if not lots:
        raise InsufficientInventoryError(product_id, 0.0, quantity)

    allocations = []
    for lot, take in plan_fifo(lots, quantity):
        await _debit_lot(db, lot, take)
        allocation = OutputAllocation(output_id=output_id, lot_id=lot.id, quantity=take)
        db.add(allocation)
        allocations.append(allocation)

    logger.info(
        "Deducted %g of %s across %d lot(s) for output %s",
        quantity, product_id, len(allocations), output_id,
    )
    return allocations


async def list_allocations(db: AsyncSession, output_id: str) -> list[OutputAllocation]:
    result = await db.execute(
        select(OutputAllocation).where(OutputAllocation.output_id == output_id)
    )
    return list(result.scalars().all())


async def reverse_allocations(db: AsyncSession, output_id: str, today: date | None = None) -> float:
    """
    Credit every lot an output debited by exactly what it took, then drop the
    allocations. Expired or written-off lots get the quantity back but not the
    non-expired quantity, so the returned stock is never allocated again.
    """
    today = today or date.today()
    restored = 0.0
    for allocation in await list_allocations(db, output_id):
        await _credit_lot(db, allocation.lot_id, allocation.quantity, today)
        restored += allocation.quantity
        await db.delete(allocation)
    logger.info("Restored %g to inventory from output %s", restored, output_id)
    return restored


async def create_lot_from_supply(db: AsyncSession, supply: Supply, received_on: date) -> InventoryLot:
    """Book a received supply into the processing station as a new lot."""
    lot = InventoryLot(
        type=LOT_TYPE_FOOD,
        product_id=supply.product,
        quantity=supply.actual_quantity,
        non_expired_quantity=supply.actual_quantity,
        unit_price=supply.unit_price,
        expiry_date=supply.expiry_date,
        received_date=received_on,
        source_supply_id=supply.id,
    )
    db.add(lot)
    return lot


async def list_lots(db: AsyncSession, product_id: str | None = None) -> list[InventoryLot]:
    query = select(InventoryLot).where(InventoryLot.type == LOT_TYPE_FOOD)
    if product_id:
        query = query.where(InventoryLot.product_id == product_id)
    result = await db.execute(
        query.order_by(InventoryLot.product_id, InventoryLot.expiry_date.is_(None), InventoryLot.expiry_date)
    )
    return list(result.scalars().all())


async def inventory_summary(db: AsyncSession) -> list[dict]:
    result = await db.execute(
        select(
            Product.id,
            Product.name,
            Product.unit,
            func.sum(InventoryLot.quantity),
            func.sum(InventoryLot.non_expired_quantity),
            func.count(InventoryLot.id),
        )
        .select_from(InventoryLot)
        .join(Product, Product.id == InventoryLot.product_id)
        .where(InventoryLot.type == LOT_TYPE_FOOD)
        .group_by(Product.id, Product.name, Product.unit)
        .order_by(Product.id)
    )
    return [
        {
            "product_id": product_id,
            "product_name": name,
            "unit": unit,
            "total_quantity": float(total or 0),
            "non_expired_quantity": float(non_expired or 0),
            "lot_count": lot_count,
        }
        for product_id, name, unit, total, non_expired, lot_count in result.all()
    ]


async def expire_lots(db: AsyncSession, as_of: date) -> list[str]:
    """
    Write off lots past their expiry date: zero their non-expired quantity and
    stamp written_off_on. Returns the ids of products that lost usable stock.
    """
    result = await db.execute(
        select(InventoryLot.product_id)
        .where(
            InventoryLot.type == LOT_TYPE_FOOD,
            InventoryLot.expiry_date < as_of,
            InventoryLot.non_expired_quantity > 0,
        )
        .distinct()
    )
    product_ids = list(result.scalars().all())
    # drained lots are marked too, so a later reversal cannot revive them
    await db.execute(
        update(InventoryLot)
        .where(
            InventoryLot.type == LOT_TYPE_FOOD,
            InventoryLot.expiry_date < as_of,
            InventoryLot.written_off_on.is_(None),
        )
        .values(
            non_expired_quantity=0,
            written_off_on=as_of,
            version_id=InventoryLot.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if product_ids:
        logger.info("Expired lots as of %s for products %s", as_of, product_ids)
    return product_ids
