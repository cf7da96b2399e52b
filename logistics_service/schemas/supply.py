"""
Logistics Service — Supply Pydantic schemas
"""
from datetime import date, datetime
from pydantic import Field

from logistics_service.models.supply import Supply, SupplyStatus
from logistics_service.schemas.common import CamelModel, UserRef


class SupplyCreateRequest(CamelModel):
    category: str = Field(..., min_length=1, max_length=64, examples=["luong-thuc"])
    product: str = Field(..., min_length=1, max_length=64, examples=["gao"])
    supply_quantity: float = Field(..., gt=0, examples=[100])
    expiry_date: date | None = None
    note: str | None = Field(None, max_length=1000)


class SupplyUpdateRequest(SupplyCreateRequest):
    actual_quantity: float | None = Field(None, ge=0)
    unit_price: float | None = Field(None, ge=0)


class SupplyApproveRequest(CamelModel):
    station_entry_date: date | None = None
    requested_quantity: float | None = None
    unit_price: float | None = None
    expiry_date: date | None = None
    note: str | None = Field(None, max_length=1000)


class SupplyRejectRequest(CamelModel):
    note: str | None = Field(None, max_length=1000)


class SupplyReceiveRequest(CamelModel):
    actual_quantity: float | None = None
    received_quantity: float | None = None


class SupplyOut(CamelModel):
    id: str
    unit_id: str
    category: str
    product: str
    supply_quantity: float
    station_entry_date: date | None
    requested_quantity: float | None
    actual_quantity: float | None
    received_quantity: float | None
    unit_price: float | None
    total_price: float | None
    expiry_date: date | None
    status: SupplyStatus
    note: str
    created_by: UserRef
    approved_by: UserRef | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_model(cls, supply: Supply) -> "SupplyOut":
        approved_by = None
        if supply.approved_by_id:
            approved_by = UserRef(id=supply.approved_by_id, name=supply.approved_by_name or "Unknown")
        return cls(
            id=supply.id,
            unit_id=supply.unit_id,
            category=supply.category,
            product=supply.product,
            supply_quantity=supply.supply_quantity,
            station_entry_date=supply.station_entry_date,
            requested_quantity=supply.requested_quantity,
            actual_quantity=supply.actual_quantity,
            received_quantity=supply.received_quantity,
            unit_price=supply.unit_price,
            total_price=supply.total_price,
            expiry_date=supply.expiry_date,
            status=supply.status,
            note=supply.note,
            created_by=UserRef(id=supply.created_by_id, name=supply.created_by_name),
            approved_by=approved_by,
            created_at=supply.created_at,
            updated_at=supply.updated_at,
        )


class CategoryOut(CamelModel):
    id: str
    name: str


class ProductOut(CamelModel):
    id: str
    name: str
    unit: str
    category_id: str
