from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from stockledger.monthly.schemas import MonthlyInventoryResponse


class InventoryReportLot(BaseModel):
    lot_id: int
    lot_number: str
    production_date: date
    unit_id: int
    unit_name: str
    quantity: Decimal
    allocated_qty: Decimal
    available_qty: Decimal


class InventoryReportWarehouse(BaseModel):
    warehouse_id: int
    warehouse_name: str
    total_qty: Decimal
    total_allocated_qty: Decimal
    total_available_qty: Decimal
    lots: List[InventoryReportLot]


class InventoryReportItem(BaseModel):
    item_id: int
    item_code: str
    item_name: str
    item_type: str
    total_qty: Decimal
    total_allocated_qty: Decimal
    total_available_qty: Decimal
    warehouses: List[InventoryReportWarehouse]


class MonthlyReportResponse(BaseModel):
    year: int
    month: int
    count: int
    data: List[MonthlyInventoryResponse]
