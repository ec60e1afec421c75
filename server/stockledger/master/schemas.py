from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal


ItemType = Literal["MANUFACTURED", "EXTERNAL", "RAW_MATERIAL"]
ConversionRate = condecimal(max_digits=18, decimal_places=6, gt=0)


class UnitBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None


class UnitCreate(UnitBase):
    pass


class UnitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None


class UnitResponse(UnitBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ItemUnitPayload(BaseModel):
    unit_id: int
    conversion_rate: ConversionRate = Decimal("1")
    is_default: bool = False


class ItemUnitResponse(BaseModel):
    unit_id: int
    unit_name: str
    conversion_rate: Decimal
    is_default: bool


class ItemCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    item_type: ItemType
    units: List[ItemUnitPayload] = Field(default_factory=list)


class ItemUpdate(BaseModel):
    code: Optional[str] = Field(None, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    item_type: ItemType
    units: Optional[List[ItemUnitPayload]] = None


class ItemResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    item_type: ItemType
    units: List[ItemUnitResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class WarehouseBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None


class WarehouseCreate(WarehouseBase):
    pass


class WarehouseUpdate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None


class WarehouseResponse(WarehouseBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LotCreate(BaseModel):
    lot_number: str = Field(..., min_length=1, max_length=100)
    item_id: int
    production_date: date


class LotUpdate(BaseModel):
    lot_number: str = Field(..., min_length=1, max_length=100)
    production_date: date


class LotResponse(BaseModel):
    id: int
    lot_number: str
    item_id: int
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    production_date: date
    created_at: datetime
