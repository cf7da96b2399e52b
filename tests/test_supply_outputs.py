"""
Supply output tests: FIFO-by-expiry deduction and exact reversal

  1. Deduction drains the soonest-expiring lot first
  2. Insufficient stock fails without touching any lot
  3. Deleting an output gives back exactly what it took
  4. Editing product or quantity re-allocates
  5. Expired lots are never allocated, not even after a reversal
"""
from datetime import date, timedelta

import pytest

from logistics_service.core.exceptions import InsufficientInventoryError
from logistics_service.db import inventory_ops, output_ops
from logistics_service.models.inventory import InventoryLot


def in_days(days: int) -> date:
    return date.today() + timedelta(days=days)


def output_payload(**overrides) -> dict:
    payload = {
        "receivingUnit": "tieu-doan-1",
        "productId": "gao",
        "quantity": 7,
        "outputDate": date.today().isoformat(),
        "receiver": "Kitchen team A",
        "note": "lunch",
    }
    payload.update(overrides)
    return payload


async def record_output(client, headers, **overrides):
    return await client.post("/api/supply-outputs", json=output_payload(**overrides), headers=headers)


# ─── FIFO deduction ────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_output_drains_soonest_expiry_first(client, station_manager, add_lot, lot_levels):
    later = await add_lot("gao", 10, in_days(60))
    sooner = await add_lot("gao", 5, in_days(10))

    r = await record_output(client, station_manager)
    assert r.status_code == 201, r.text
    allocations = r.json()["data"]["allocations"]
    assert allocations == [
        {"lotId": sooner, "quantity": 5},
        {"lotId": later, "quantity": 2},
    ]
    assert await lot_levels("gao") == [0, 8]


@pytest.mark.asyncio
async def test_undated_lots_are_consumed_last(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 4, None)
    await add_lot("gao", 3, in_days(30))

    r = await record_output(client, station_manager, quantity=5)
    assert r.status_code == 201, r.text
    assert await lot_levels("gao") == [0, 2]


@pytest.mark.asyncio
async def test_exhausted_stock_rejects_next_output(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 3, in_days(10))
    await add_lot("gao", 4, in_days(20))

    assert (await record_output(client, station_manager, quantity=7)).status_code == 201
    assert await lot_levels("gao") == [0, 0]

    r = await record_output(client, station_manager, quantity=8)
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert "Insufficient inventory" in r.json()["message"]


@pytest.mark.asyncio
async def test_insufficient_stock_leaves_lots_untouched(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 3, in_days(10))
    await add_lot("gao", 4, in_days(20))

    r = await record_output(client, station_manager, quantity=8)
    assert r.status_code == 400
    assert r.json()["message"] == "Insufficient inventory for 'gao': available=7, requested=8"
    assert await lot_levels("gao") == [3, 4]

    r = await client.get("/api/supply-outputs", headers=station_manager)
    assert r.json()["count"] == 0


@pytest.mark.asyncio
async def test_overdraw_of_single_lot_is_rejected(client, admin, add_lot, lot_levels):
    await add_lot("gao", 10, in_days(10))

    r = await record_output(client, admin, quantity=11)
    assert r.status_code == 400
    assert r.json()["message"] == "Insufficient inventory for 'gao': available=10, requested=11"
    assert await lot_levels("gao") == [10]


@pytest.mark.asyncio
async def test_no_lots_at_all_is_insufficient(client, admin):
    r = await record_output(client, admin, productId="bun")
    assert r.status_code == 400
    assert "available=0" in r.json()["message"]


# ─── Reversal ──────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_delete_restores_exact_lots(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 5, in_days(10))
    await add_lot("gao", 10, in_days(60))
    r = await record_output(client, station_manager)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.delete(f"/api/supply-outputs/{output_id}", headers=station_manager)
    assert r.status_code == 200, r.text
    assert await lot_levels("gao") == [5, 10]

    r = await client.get(f"/api/supply-outputs/{output_id}", headers=station_manager)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_quantity_reallocates(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 5, in_days(10))
    await add_lot("gao", 10, in_days(60))
    r = await record_output(client, station_manager)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.patch(
        f"/api/supply-outputs/{output_id}",
        json=output_payload(quantity=12),
        headers=station_manager,
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["quantity"] == 12
    assert sum(a["quantity"] for a in data["allocations"]) == 12
    assert await lot_levels("gao") == [0, 3]


@pytest.mark.asyncio
async def test_update_product_moves_stock_between_products(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 10, in_days(10))
    await add_lot("bun", 6, in_days(10))
    r = await record_output(client, station_manager, quantity=4)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.patch(
        f"/api/supply-outputs/{output_id}",
        json=output_payload(productId="bun", quantity=4),
        headers=station_manager,
    )
    assert r.status_code == 200, r.text
    assert await lot_levels("gao") == [10]
    assert await lot_levels("bun") == [2]


@pytest.mark.asyncio
async def test_failed_update_keeps_original_allocation(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 10, in_days(10))
    r = await record_output(client, station_manager, quantity=4)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.patch(
        f"/api/supply-outputs/{output_id}",
        json=output_payload(quantity=11),
        headers=station_manager,
    )
    assert r.status_code == 400
    assert await lot_levels("gao") == [6]

    r = await client.get(f"/api/supply-outputs/{output_id}", headers=station_manager)
    assert r.json()["data"]["quantity"] == 4


@pytest.mark.asyncio
async def test_metadata_only_update_keeps_allocations(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 10, in_days(10))
    r = await record_output(client, station_manager, quantity=4)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.patch(
        f"/api/supply-outputs/{output_id}",
        json=output_payload(quantity=4, receiver="Kitchen team B", status="completed"),
        headers=station_manager,
    )
    assert r.status_code == 200, r.text
    assert r.json()["data"]["receiver"] == "Kitchen team B"
    assert len(r.json()["data"]["allocations"]) == 1
    assert await lot_levels("gao") == [6]


# ─── Expiry ────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_expired_lots_are_written_off_and_skipped(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 5, date.today() - timedelta(days=1))
    await add_lot("gao", 3, in_days(5))

    r = await client.post("/api/inventory/expire", headers=station_manager)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["productIds"] == ["gao"]
    assert await lot_levels("gao") == [0, 3]

    r = await record_output(client, station_manager, quantity=4)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_deleting_output_does_not_revive_written_off_stock(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 10, in_days(2))
    r = await record_output(client, station_manager, quantity=5)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.post("/api/inventory/expire", json={"asOf": in_days(5).isoformat()}, headers=station_manager)
    assert r.status_code == 200, r.text
    assert await lot_levels("gao") == [0]

    r = await client.delete(f"/api/supply-outputs/{output_id}", headers=station_manager)
    assert r.status_code == 200, r.text
    assert await lot_levels("gao") == [0]

    r = await client.get("/api/inventory/lots", params={"productId": "gao"}, headers=station_manager)
    [written_off] = r.json()["data"]
    assert written_off["quantity"] == 10
    assert written_off["writtenOffOn"] == in_days(5).isoformat()

    r = await record_output(client, station_manager, quantity=5)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_drained_lot_is_still_written_off(client, station_manager, add_lot, lot_levels):
    await add_lot("gao", 4, in_days(2))
    r = await record_output(client, station_manager, quantity=4)
    output_id = r.json()["data"]["supplyOutputId"]

    r = await client.post("/api/inventory/expire", json={"asOf": in_days(5).isoformat()}, headers=station_manager)
    assert r.json()["data"]["productIds"] == []

    await client.delete(f"/api/supply-outputs/{output_id}", headers=station_manager)
    assert await lot_levels("gao") == [0]


@pytest.mark.asyncio
async def test_reversal_into_lot_past_expiry_keeps_it_unusable(db_session, add_lot):
    lot_id = await add_lot("gao", 6, in_days(3))
    async with db_session() as session:
        async with session.begin():
            await inventory_ops.deduct_fifo(session, "output-1", "gao", 4)
    async with db_session() as session:
        async with session.begin():
            restored = await inventory_ops.reverse_allocations(session, "output-1", today=in_days(4))
        lot = await session.get(InventoryLot, lot_id)
    assert restored == 4
    assert lot.quantity == 6
    assert lot.non_expired_quantity == 2


@pytest.mark.asyncio
async def test_reversal_into_lot_in_date_restores_usable_stock(db_session, add_lot):
    lot_id = await add_lot("gao", 6, in_days(3))
    async with db_session() as session:
        async with session.begin():
            await inventory_ops.deduct_fifo(session, "output-1", "gao", 4)
    async with db_session() as session:
        async with session.begin():
            await inventory_ops.reverse_allocations(session, "output-1", today=in_days(3))
        lot = await session.get(InventoryLot, lot_id)
    assert lot.non_expired_quantity == 6


@pytest.mark.asyncio
async def test_expire_leaves_non_food_lots_alone(client, station_manager, db_session, add_lot):
    await add_lot("gao", 5, date.today() - timedelta(days=1))
    async with db_session() as session:
        async with session.begin():
            other = InventoryLot(
                type="equipment", product_id="bun", quantity=3, non_expired_quantity=3,
                expiry_date=date.today() - timedelta(days=1),
            )
            session.add(other)

    r = await client.post("/api/inventory/expire", headers=station_manager)
    assert r.json()["data"]["productIds"] == ["gao"]

    async with db_session() as session:
        untouched = await session.get(InventoryLot, other.id)
    assert untouched.non_expired_quantity == 3
    assert untouched.written_off_on is None


# ─── Access and listing ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_only_admin_and_station_manager_record_outputs(client, unit_assistant, brigade_assistant, add_lot):
    await add_lot("gao", 10, in_days(10))
    for headers in (unit_assistant, brigade_assistant):
        r = await record_output(client, headers)
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_unknown_receiving_unit_is_rejected(client, admin, add_lot, lot_levels):
    await add_lot("gao", 10, in_days(10))
    r = await record_output(client, admin, receivingUnit="tieu-doan-9")
    assert r.status_code == 404
    assert await lot_levels("gao") == [10]


@pytest.mark.asyncio
async def test_list_filters_by_unit_and_product(client, admin, add_lot):
    await add_lot("gao", 20, in_days(10))
    await add_lot("bun", 20, in_days(10))
    await record_output(client, admin, quantity=1)
    await record_output(client, admin, quantity=2, receivingUnit="tieu-doan-2")
    await record_output(client, admin, quantity=3, productId="bun")

    r = await client.get("/api/supply-outputs", params={"receivingUnit": "tieu-doan-1"}, headers=admin)
    assert sorted(o["quantity"] for o in r.json()["data"]) == [1, 3]

    r = await client.get("/api/supply-outputs", params={"productId": "bun"}, headers=admin)
    assert [o["quantity"] for o in r.json()["data"]] == [3]


# ─── Operation level ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_create_supply_output_raises_domain_error(db_session, manager_principal, add_lot):
    await add_lot("gao", 2, in_days(10))
    async with db_session() as session:
        with pytest.raises(InsufficientInventoryError) as excinfo:
            await output_ops.create_supply_output(
                session, manager_principal,
                receiving_unit="tieu-doan-1", product_id="gao", quantity=3,
                output_date=date.today(), receiver="Kitchen",
            )
    assert excinfo.value.available == 2
    assert excinfo.value.requested == 3
