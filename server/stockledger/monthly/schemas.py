from datetime import date, datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel


class MonthlyInventoryResponse(BaseModel):
    id: int
    month: date
    item_id: int
    item_code: str
    item_name: str
    lot_id: int
    lot_number: str
    warehouse_id: int
    warehouse_name: str
    unit_id: int
    unit_name: str
    opening_quantity: Decimal
    incoming_quantity: Decimal
    outgoing_quantity: Decimal
    closing_quantity: Decimal
    created_at: datetime


class MonthlyRollupResponse(BaseModel):
    year: int
    month: int
    count: int
    data: List[MonthlyInventoryResponse]


class MonthlyLotEntry(BaseModel):
    lot_id: int
    lot_number: str
    unit_id: int
    unit_name: str
    opening_quantity: Decimal
    incoming_quantity: Decimal
    outgoing_quantity: Decimal
    closing_quantity: Decimal


class MonthlyWarehouseGroup(BaseModel):
    warehouse_id: int
    warehouse_name: str
    lots: List[MonthlyLotEntry]


class MonthlyItemGroup(BaseModel):
    item_id: int
    item_code: str
    item_name: str
    warehouses: List[MonthlyWarehouseGroup]


class MonthlyGroupedResponse(BaseModel):
    year: int
    month: int
    data: List[MonthlyItemGroup]
