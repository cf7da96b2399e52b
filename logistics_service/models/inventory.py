"""
Logistics Service — Processing station inventory models

[TRANSACTIONAL DATA] inventory_lots             — batches sitting in the station
[TRANSACTIONAL DATA] supply_outputs             — goods leaving to a receiving unit
[TRANSACTIONAL DATA] supply_output_allocations  — which lots each output debited
"""
import uuid
from datetime import date, datetime
from sqlalchemy import String, Integer, Float, Date, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from logistics_service.db.database import Base
from logistics_service.models.supply import utcnow

LOT_TYPE_FOOD = "food"
OUTPUT_STATUS_COMPLETED = "completed"


class InventoryLot(Base):
    """
    version_id is the optimistic locking column, bumped by every conditional
    UPDATE in logistics_service.db.inventory_ops.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        CheckConstraint("non_expired_quantity >= 0", name="ck_lot_non_expired_non_negative"),
        CheckConstraint("non_expired_quantity <= quantity", name="ck_lot_non_expired_le_quantity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type: Mapped[str] = mapped_column(String(32), default=LOT_TYPE_FOOD, nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), ForeignKey("products.id"), index=True, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    non_expired_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    unit_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, index=True, nullable=True)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    source_supply_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("supplies.id"), unique=True, nullable=True
    )
    written_off_on: Mapped[date | None] = mapped_column(Date, nullable=True)  # set by the expiry sweep
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # optimistic lock
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SupplyOutput(Base):
    __tablename__ = "supply_outputs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    receiving_unit_id: Mapped[str] = mapped_column(String(64), ForeignKey("units.id"), index=True, nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), ForeignKey("products.id"), index=True, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    output_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    receiver: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default=OUTPUT_STATUS_COMPLETED, nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}


class OutputAllocation(Base):
    """One debit of one lot by one output; reversal credits exactly these rows back."""
    __tablename__ = "supply_output_allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    output_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("supply_outputs.id", ondelete="CASCADE"), index=True, nullable=False
    )
    lot_id: Mapped[str] = mapped_column(String(36), ForeignKey("inventory_lots.id"), index=True, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
