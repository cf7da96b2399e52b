"""
Logistics Service — Supply intake model

[TRANSACTIONAL DATA] supplies — one intake request per unit and product.
Never physically deleted; soft delete flips status to "deleted".
"""
import uuid
from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Float, Date, DateTime, Text, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from logistics_service.db.database import Base


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class SupplyStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECEIVED = "received"
    DELETED = "deleted"


# One-directional lifecycle; no transition skips a state.
ALLOWED_TRANSITIONS: dict[SupplyStatus, frozenset[SupplyStatus]] = {
    SupplyStatus.PENDING: frozenset({SupplyStatus.APPROVED, SupplyStatus.REJECTED, SupplyStatus.DELETED}),
    SupplyStatus.APPROVED: frozenset({SupplyStatus.RECEIVED}),
    SupplyStatus.REJECTED: frozenset(),
    SupplyStatus.RECEIVED: frozenset(),
    SupplyStatus.DELETED: frozenset(),
}


def can_transition(current: SupplyStatus, target: SupplyStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[SupplyStatus(current)]


class Supply(Base):
    __tablename__ = "supplies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    unit_id: Mapped[str] = mapped_column(String(64), ForeignKey("units.id"), index=True, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    product: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    supply_quantity: Mapped[float] = mapped_column(Float, nullable=False)

    # Filled by the brigade assistant at approval
    station_entry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    requested_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit_price: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Filled by the station manager at receipt
    actual_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    received_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)

    total_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[SupplyStatus] = mapped_column(
        Enum(SupplyStatus, name="supply_status", values_callable=lambda e: [m.value for m in e]),
        default=SupplyStatus.PENDING,
        index=True,
        nullable=False,
    )
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)

    created_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    approved_by_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)  # optimistic lock
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Supply {self.id} {self.product} status={self.status}>"
