"""
Logistics Service — Supply outputs (goods leaving the station)

Creating an output debits inventory lots FIFO-by-expiry inside the same
transaction that inserts the output; update and delete credit back exactly
the lots recorded in the output's allocations. A lot touched concurrently
raises StaleDataError, which rolls the whole operation back and retries it.
"""
import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.core.exceptions import NotFoundError
from logistics_service.core.optimistic_lock import with_optimistic_retry
from logistics_service.core.policy import Principal, OUTPUT_MANAGERS
from logistics_service.db.inventory_ops import deduct_fifo, list_allocations, reverse_allocations
from logistics_service.db.reference_data import get_product, get_unit
from logistics_service.models.inventory import OutputAllocation, SupplyOutput, OUTPUT_STATUS_COMPLETED

logger = logging.getLogger(__name__)


async def _load(db: AsyncSession, output_id: str) -> SupplyOutput:
    result = await db.execute(
        select(SupplyOutput).where(SupplyOutput.id == output_id).execution_options(populate_existing=True)
    )
    output = result.scalar_one_or_none()
    if output is None:
        raise NotFoundError("Supply output not found.")
    return output


@with_optimistic_retry()
async def create_supply_output(
    db: AsyncSession,
    principal: Principal,
    receiving_unit: str,
    product_id: str,
    quantity: float,
    output_date: date,
    receiver: str,
    note: str | None = None,
) -> tuple[SupplyOutput, list[OutputAllocation]]:
    principal.require(OUTPUT_MANAGERS, "record supply outputs")

    async with db.begin():
        await get_unit(db, receiving_unit)
        await get_product(db, product_id)

        output = SupplyOutput(
            id=str(uuid.uuid4()),
            receiving_unit_id=receiving_unit,
            product_id=product_id,
            quantity=float(quantity),
            output_date=output_date,
            receiver=receiver,
            status=OUTPUT_STATUS_COMPLETED,
            note=note or "",
            created_by_id=principal.id,
            created_by_name=principal.name,
        )
        db.add(output)
        await db.flush()
        allocations = await deduct_fifo(db, output.id, product_id, float(quantity))

    logger.info("Supply output %s: %g %s to unit %s", output.id, quantity, product_id, receiving_unit)
    return output, allocations


@with_optimistic_retry()
async def update_supply_output(
    db: AsyncSession,
    principal: Principal,
    output_id: str,
    receiving_unit: str,
    product_id: str,
    quantity: float,
    output_date: date,
    receiver: str,
    status: str | None = None,
    note: str | None = None,
) -> tuple[SupplyOutput, list[OutputAllocation], str]:
    """Returns the output, its allocations and the product it held before the edit."""
    principal.require(OUTPUT_MANAGERS, "edit supply outputs")

    async with db.begin():
        output = await _load(db, output_id)
        previous_product_id = output.product_id
        await get_unit(db, receiving_unit)
        await get_product(db, product_id)

        if product_id != output.product_id or float(quantity) != output.quantity:
            await reverse_allocations(db, output.id)
            await db.flush()
            allocations = await deduct_fifo(db, output.id, product_id, float(quantity))
            logger.info(
                "Supply output %s re-allocated: %g %s -> %g %s",
                output.id, output.quantity, output.product_id, quantity, product_id,
            )
        else:
            allocations = await list_allocations(db, output.id)

        output.receiving_unit_id = receiving_unit
        output.product_id = product_id
        output.quantity = float(quantity)
        output.output_date = output_date
        output.receiver = receiver
        output.status = status or OUTPUT_STATUS_COMPLETED
        output.note = note or ""

    return output, allocations, previous_product_id


@with_optimistic_retry()
async def delete_supply_output(db: AsyncSession, principal: Principal, output_id: str) -> SupplyOutput:
    principal.require(OUTPUT_MANAGERS, "delete supply outputs")

    async with db.begin():
        output = await _load(db, output_id)
        await reverse_allocations(db, output.id)
        await db.delete(output)

    logger.info("Supply output %s deleted, %g %s returned to stock", output.id, output.quantity, output.product_id)
    return output


async def get_supply_output(db: AsyncSession, output_id: str) -> tuple[SupplyOutput, list[OutputAllocation]]:
    output = await _load(db, output_id)
    return output, await list_allocations(db, output_id)


async def list_supply_outputs(
    db: AsyncSession,
    receiving_unit: str | None = None,
    product_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[SupplyOutput]:
    query = select(SupplyOutput)
    if receiving_unit:
        query = query.where(SupplyOutput.receiving_unit_id == receiving_unit)
    if product_id:
        query = query.where(SupplyOutput.product_id == product_id)
    if start_date:
        query = query.where(SupplyOutput.output_date >= start_date)
    if end_date:
        query = query.where(SupplyOutput.output_date <= end_date)
    result = await db.execute(query.order_by(SupplyOutput.output_date.desc(), SupplyOutput.created_at.desc()))
    return list(result.scalars().all())
