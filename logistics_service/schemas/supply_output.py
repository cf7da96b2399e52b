"""
Logistics Service — Supply output and inventory Pydantic schemas
"""
from datetime import date, datetime
from pydantic import Field

from logistics_service.models.inventory import OutputAllocation, SupplyOutput
from logistics_service.schemas.common import CamelModel, UserRef


class SupplyOutputRequest(CamelModel):
    receiving_unit: str = Field(..., min_length=1, max_length=64)
    product_id: str = Field(..., min_length=1, max_length=64)
    quantity: float = Field(..., gt=0)
    output_date: date
    receiver: str = Field(..., min_length=1, max_length=255)
    note: str | None = Field(None, max_length=1000)


class SupplyOutputUpdateRequest(SupplyOutputRequest):
    status: str | None = Field(None, max_length=32)


class AllocationOut(CamelModel):
    lot_id: str
    quantity: float


class SupplyOutputOut(CamelModel):
    id: str
    receiving_unit_id: str
    product_id: str
    quantity: float
    output_date: date
    receiver: str
    status: str
    note: str
    created_by: UserRef
    allocations: list[AllocationOut] = []
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_model(
        cls, output: SupplyOutput, allocations: list[OutputAllocation] | None = None
    ) -> "SupplyOutputOut":
        return cls(
            id=output.id,
            receiving_unit_id=output.receiving_unit_id,
            product_id=output.product_id,
            quantity=output.quantity,
            output_date=output.output_date,
            receiver=output.receiver,
            status=output.status,
            note=output.note,
            created_by=UserRef(id=output.created_by_id, name=output.created_by_name),
            allocations=[AllocationOut.model_validate(a) for a in allocations or []],
            created_at=output.created_at,
            updated_at=output.updated_at,
        )


class LotOut(CamelModel):
    id: str
    product_id: str
    quantity: float
    non_expired_quantity: float
    unit_price: float | None
    expiry_date: date | None
    received_date: date | None
    source_supply_id: str | None
    written_off_on: date | None = None


class InventorySummaryItem(CamelModel):
    product_id: str
    product_name: str
    unit: str
    total_quantity: float
    non_expired_quantity: float
    lot_count: int


class AvailabilityOut(CamelModel):
    product_id: str
    available_quantity: float
    cached: bool


class ExpireLotsRequest(CamelModel):
    as_of: date | None = None
