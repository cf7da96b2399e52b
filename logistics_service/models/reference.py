"""
Logistics Service — Reference data models

[CONFIG DATA] food_categories, products, units — seeded from the reference
data file on startup and preserved across resets.
"""
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from logistics_service.db.database import Base


class FoodCategory(Base):
    __tablename__ = "food_categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # slug, e.g. "luong-thuc"
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # slug, e.g. "gao"
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="kg")  # unit of measure
    category_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("food_categories.id"), index=True, nullable=False
    )


class Unit(Base):
    """A military unit (battalion, company) that raises supplies and receives outputs."""
    __tablename__ = "units"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
