from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


TransactionType = Literal["INBOUND", "OUTBOUND"]


class MovementCreate(BaseModel):
    # Required fields are checked by the ledger workflows so that a missing
    # field reports VALIDATION_ERROR like every other rejected request.
    lot_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    unit_id: Optional[int] = None
    quantity: Optional[Decimal] = None
    transaction_date: Optional[datetime] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    barcode_data: Optional[str] = None


class InboundCreate(MovementCreate):
    pass


class OutboundCreate(MovementCreate):
    allocation_id: Optional[int] = Field(None, description="Allocation consumed by this shipment, if any.")


class MovementResponse(BaseModel):
    id: int
    transaction_type: TransactionType
    lot_id: int
    lot_number: str
    item_id: int
    item_code: str
    item_name: str
    warehouse_id: int
    warehouse_name: str
    unit_id: int
    unit_name: str
    quantity: Decimal
    transaction_date: datetime
    reference_number: Optional[str] = None
    barcode_data: Optional[str] = None
    created_at: datetime


class AllocationCreate(BaseModel):
    lot_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    unit_id: Optional[int] = None
    quantity: Optional[Decimal] = None
    allocation_date: Optional[datetime] = None
    reference_number: Optional[str] = Field(None, max_length=100)


class AllocationUpdate(BaseModel):
    quantity: Optional[Decimal] = None
    allocation_date: Optional[datetime] = None
    reference_number: Optional[str] = Field(None, max_length=100)


class AllocationResponse(BaseModel):
    id: int
    lot_id: int
    lot_number: str
    item_id: int
    item_name: str
    warehouse_id: int
    warehouse_name: str
    unit_id: int
    unit_name: str
    quantity: Decimal
    allocation_date: datetime
    reference_number: Optional[str] = None


class AllocationDetailResponse(AllocationResponse):
    inventory_qty: Decimal
    other_allocations_qty: Decimal
    available_qty: Decimal


class AllocationDeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted_allocation: AllocationResponse


class InventoryRecordResponse(BaseModel):
    id: int
    lot_id: int
    lot_number: str
    production_date: date
    item_id: int
    item_code: str
    item_name: str
    warehouse_id: int
    warehouse_name: str
    unit_id: int
    unit_name: str
    quantity: Decimal
    allocated_qty: Decimal
    available_qty: Decimal
    last_updated_at: datetime


class UnitTotalResponse(BaseModel):
    unit_id: int
    unit_name: str
    quantity: Decimal
    allocated_qty: Decimal
    available_qty: Decimal


class ScopedInventoryResponse(BaseModel):
    scope: Literal["lot", "warehouse", "item"]
    scope_id: int
    scope_label: str
    records: List[InventoryRecordResponse]
    totals: List[UnitTotalResponse]


class LedgerQuantityResponse(BaseModel):
    lot_id: int
    warehouse_id: int
    unit_id: int
    quantity: Decimal
    allocated_qty: Decimal
    available_qty: Decimal

