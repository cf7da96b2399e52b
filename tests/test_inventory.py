"""
Inventory tests: FIFO planning, summary, and the Redis availability cache
"""
from datetime import date, timedelta

import pytest

from logistics_service.core.exceptions import InsufficientInventoryError
from logistics_service.db.inventory_ops import plan_fifo
from logistics_service.models.inventory import InventoryLot


def lot(lot_id: str, remaining: float) -> InventoryLot:
    return InventoryLot(id=lot_id, product_id="gao", quantity=remaining, non_expired_quantity=remaining)


# ─── plan_fifo ─────────────────────────────────────────────────────────────────
def test_plan_takes_lots_in_order():
    a, b = lot("a", 5), lot("b", 10)
    plan = plan_fifo([a, b], 7)
    assert [(l.id, take) for l, take in plan] == [("a", 5), ("b", 2)]


def test_plan_stops_once_covered():
    a, b = lot("a", 5), lot("b", 10)
    plan = plan_fifo([a, b], 5)
    assert [(l.id, take) for l, take in plan] == [("a", 5)]


def test_plan_skips_empty_lots():
    plan = plan_fifo([lot("a", 0), lot("b", 4)], 3)
    assert [(l.id, take) for l, take in plan] == [("b", 3)]


def test_plan_exact_total_drains_everything():
    plan = plan_fifo([lot("a", 3), lot("b", 4)], 7)
    assert sum(take for _, take in plan) == 7


def test_plan_raises_when_short():
    with pytest.raises(InsufficientInventoryError) as excinfo:
        plan_fifo([lot("a", 3), lot("b", 4)], 8)
    assert excinfo.value.product_id == "gao"
    assert excinfo.value.available == 7
    assert excinfo.value.requested == 8


def test_plan_ignores_float_leftovers():
    plan = plan_fifo([lot("a", 0.7), lot("b", 0.1), lot("c", 5)], 0.8)
    assert [(l.id, take) for l, take in plan] == [("a", 0.7), ("b", 0.1)]


def test_plan_drains_lot_left_with_float_dust():
    plan = plan_fifo([lot("a", 0.1), lot("b", 0.2), lot("c", 5)], 0.3)
    assert [(l.id, take) for l, take in plan] == [("a", 0.1), ("b", 0.2)]


# ─── Summary ───────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_summary_groups_lots_by_product(client, commander, add_lot):
    in_ten = date.today() + timedelta(days=10)
    await add_lot("gao", 5, in_ten)
    await add_lot("gao", 10, in_ten)
    await add_lot("ca", 2, in_ten)

    r = await client.get("/api/inventory/summary", headers=commander)
    assert r.status_code == 200, r.text
    rows = {row["productId"]: row for row in r.json()["data"]}
    assert rows["gao"]["nonExpiredQuantity"] == 15
    assert rows["gao"]["lotCount"] == 2
    assert rows["gao"]["productName"] == "Gạo"
    assert rows["ca"]["totalQuantity"] == 2


# ─── Availability cache ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_availability_is_cached_and_invalidated_by_outputs(client, station_manager, add_lot):
    await add_lot("gao", 10, date.today() + timedelta(days=10))

    r = await client.get("/api/inventory/available/gao", headers=station_manager)
    assert r.json()["data"] == {"productId": "gao", "availableQuantity": 10, "cached": False}

    r = await client.get("/api/inventory/available/gao", headers=station_manager)
    assert r.json()["data"]["cached"] is True

    await client.post(
        "/api/supply-outputs",
        json={
            "receivingUnit": "tieu-doan-1",
            "productId": "gao",
            "quantity": 4,
            "outputDate": date.today().isoformat(),
            "receiver": "Kitchen",
        },
        headers=station_manager,
    )

    r = await client.get("/api/inventory/available/gao", headers=station_manager)
    assert r.json()["data"] == {"productId": "gao", "availableQuantity": 6, "cached": False}


@pytest.mark.asyncio
async def test_availability_of_unknown_product_is_not_found(client, station_manager):
    r = await client.get("/api/inventory/available/caviar", headers=station_manager)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_expire_requires_output_manager(client, unit_assistant):
    r = await client.post("/api/inventory/expire", headers=unit_assistant)
    assert r.status_code == 403
