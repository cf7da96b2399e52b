"""
Logistics Service — Reference data loading and catalog lookups

Categories, products and units come from a JSON file rather than hardcoded
maps; seeding inserts missing rows only, so it is safe on every startup.
"""
import json
import logging
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from logistics_service.core.exceptions import InvalidInputError, NotFoundError
from logistics_service.models.reference import FoodCategory, Product, Unit

logger = logging.getLogger(__name__)


def load_reference_file(path: Path) -> dict:
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


async def seed_reference_data(db: AsyncSession, path: Path) -> dict[str, int]:
    data = load_reference_file(path)
    inserted = {"categories": 0, "products": 0, "units": 0}

    async with db.begin():
        known = set((await db.execute(select(FoodCategory.id))).scalars())
        for row in data.get("categories", []):
            if row["id"] not in known:
                db.add(FoodCategory(id=row["id"], name=row["name"]))
                inserted["categories"] += 1
        await db.flush()

        known = set((await db.execute(select(Product.id))).scalars())
        for row in data.get("products", []):
            if row["id"] not in known:
                db.add(Product(
                    id=row["id"],
                    name=row["name"],
                    unit=row.get("unit", "kg"),
                    category_id=row["category"],
                ))
                inserted["products"] += 1

        known = set((await db.execute(select(Unit.id))).scalars())
        for row in data.get("units", []):
            if row["id"] not in known:
                db.add(Unit(id=row["id"], name=row["name"]))
                inserted["units"] += 1

    logger.info("Reference data seeded from %s: %s", path, inserted)
    return inserted


async def list_categories(db: AsyncSession) -> list[FoodCategory]:
    result = await db.execute(select(FoodCategory).order_by(FoodCategory.id))
    return list(result.scalars().all())


async def list_products(db: AsyncSession, category_id: str) -> list[Product]:
    if await db.get(FoodCategory, category_id) is None:
        raise NotFoundError(f"Category '{category_id}' does not exist.")
    result = await db.execute(
        select(Product).where(Product.category_id == category_id).order_by(Product.id)
    )
    return list(result.scalars().all())


async def validate_catalog_entry(db: AsyncSession, category_id: str, product_id: str) -> Product:
    """The product must exist and belong to the given category."""
    if await db.get(FoodCategory, category_id) is None:
        raise InvalidInputError(f"Invalid category '{category_id}'.")
    product = await db.get(Product, product_id)
    if product is None or product.category_id != category_id:
        raise InvalidInputError(f"Invalid product '{product_id}' for category '{category_id}'.")
    return product


async def get_unit(db: AsyncSession, unit_id: str) -> Unit:
    unit = await db.get(Unit, unit_id)
    if unit is None:
        raise NotFoundError(f"Unit '{unit_id}' does not exist.")
    return unit


async def get_product(db: AsyncSession, product_id: str) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product '{product_id}' does not exist.")
    return product
