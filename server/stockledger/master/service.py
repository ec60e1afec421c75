from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from stockledger.errors import DuplicateError, NotFoundError, ReferenceInUseError, ValidationFailedError
from stockledger.models import (
    Allocation,
    Inventory,
    InventoryTransaction,
    Item,
    ItemUnit,
    Lot,
    MonthlyInventory,
    Unit,
    Warehouse,
)


def get_item(db: Session, item_id: int) -> Item:
    item = db.query(Item).filter(Item.id == item_id).first()
    if not item:
        raise NotFoundError("Item not found.", item_id=item_id)
    return item


def get_unit(db: Session, unit_id: int) -> Unit:
    unit = db.query(Unit).filter(Unit.id == unit_id).first()
    if not unit:
        raise NotFoundError("Unit not found.", unit_id=unit_id)
    return unit


def get_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()
    if not warehouse:
        raise NotFoundError("Warehouse not found.", warehouse_id=warehouse_id)
    return warehouse


def get_lot(db: Session, lot_id: int) -> Lot:
    lot = db.query(Lot).filter(Lot.id == lot_id).first()
    if not lot:
        raise NotFoundError("Lot not found.", lot_id=lot_id)
    return lot


def lot_exists(db: Session, lot_id: int) -> bool:
    return db.query(Lot.id).filter(Lot.id == lot_id).scalar() is not None


def warehouse_exists(db: Session, warehouse_id: int) -> bool:
    return db.query(Warehouse.id).filter(Warehouse.id == warehouse_id).scalar() is not None


def unit_exists(db: Session, unit_id: int) -> bool:
    return db.query(Unit.id).filter(Unit.id == unit_id).scalar() is not None


def _is_referenced(db: Session, column_name: str, value: int, models: tuple) -> bool:
    return any(
        db.query(model.id).filter(getattr(model, column_name) == value).first() is not None
        for model in models
    )


# Items


def _apply_item_units(db: Session, item: Item, units_payload: list[dict]) -> None:
    seen: set[int] = set()
    item.item_units.clear()
    db.flush()
    for entry in units_payload:
        unit = get_unit(db, entry["unit_id"])
        if unit.id in seen:
            raise ValidationFailedError("Each unit may only be linked to an item once.", unit_id=unit.id)
        seen.add(unit.id)
        item.item_units.append(
            ItemUnit(
                unit_id=unit.id,
                conversion_rate=Decimal(str(entry.get("conversion_rate") or 1)),
                is_default=bool(entry.get("is_default")),
            )
        )


def create_item(db: Session, payload: dict) -> Item:
    units_payload = payload.pop("units", None) or []
    if db.query(Item.id).filter(Item.code == payload["code"]).first() is not None:
        raise DuplicateError("Item code already exists.", code_value=payload["code"])

    item = Item(**payload)
    db.add(item)
    db.flush()
    _apply_item_units(db, item, units_payload)
    return item


def update_item(db: Session, item: Item, payload: dict) -> Item:
    units_payload = payload.pop("units", None)
    new_code = payload.get("code")
    if new_code and new_code != item.code:
        duplicate = db.query(Item.id).filter(Item.code == new_code, Item.id != item.id).first()
        if duplicate is not None:
            raise DuplicateError("Item code already exists.", code_value=new_code)

    for key, value in payload.items():
        if key == "code" and not value:
            continue
        setattr(item, key, value)

    if units_payload is not None:
        _apply_item_units(db, item, units_payload)
    return item


def delete_item(db: Session, item: Item) -> Item:
    if db.query(Lot.id).filter(Lot.item_id == item.id).first() is not None:
        raise ReferenceInUseError("Cannot delete item because lots exist for it.", item_id=item.id)
    db.delete(item)
    return item


# Units


def create_unit(db: Session, payload: dict) -> Unit:
    if db.query(Unit.id).filter(Unit.name == payload["name"]).first() is not None:
        raise DuplicateError("Unit name already exists.", name=payload["name"])
    unit = Unit(**payload)
    db.add(unit)
    return unit


def update_unit(db: Session, unit: Unit, payload: dict) -> Unit:
    new_name = payload.get("name")
    if new_name and new_name != unit.name:
        if db.query(Unit.id).filter(Unit.name == new_name, Unit.id != unit.id).first() is not None:
            raise DuplicateError("Unit name already exists.", name=new_name)
    for key, value in payload.items():
        if key == "name" and not value:
            continue
        setattr(unit, key, value)
    return unit


def delete_unit(db: Session, unit: Unit) -> Unit:
    models = (ItemUnit, Inventory, InventoryTransaction, MonthlyInventory, Allocation)
    if _is_referenced(db, "unit_id", unit.id, models):
        raise ReferenceInUseError("Cannot delete unit because it is in use.", unit_id=unit.id)
    db.delete(unit)
    return unit


# Warehouses


def create_warehouse(db: Session, payload: dict) -> Warehouse:
    if db.query(Warehouse.id).filter(Warehouse.code == payload["code"]).first() is not None:
        raise DuplicateError("Warehouse code already exists.", code_value=payload["code"])
    warehouse = Warehouse(**payload)
    db.add(warehouse)
    return warehouse


def update_warehouse(db: Session, warehouse: Warehouse, payload: dict) -> Warehouse:
    new_code = payload.get("code")
    if new_code and new_code != warehouse.code:
        if db.query(Warehouse.id).filter(Warehouse.code == new_code, Warehouse.id != warehouse.id).first() is not None:
            raise DuplicateError("Warehouse code already exists.", code_value=new_code)
    for key, value in payload.items():
        if key == "code" and not value:
            continue
        setattr(warehouse, key, value)
    return warehouse


def delete_warehouse(db: Session, warehouse: Warehouse) -> Warehouse:
    models = (Inventory, InventoryTransaction, MonthlyInventory, Allocation)
    if _is_referenced(db, "warehouse_id", warehouse.id, models):
        raise ReferenceInUseError("Cannot delete warehouse because it is in use.", warehouse_id=warehouse.id)
    db.delete(warehouse)
    return warehouse


# Lots


def create_lot(db: Session, payload: dict) -> Lot:
    get_item(db, payload["item_id"])
    if db.query(Lot.id).filter(Lot.lot_number == payload["lot_number"]).first() is not None:
        raise DuplicateError("Lot number already exists.", lot_number=payload["lot_number"])
    lot = Lot(**payload)
    db.add(lot)
    return lot


def update_lot(db: Session, lot: Lot, payload: dict) -> Lot:
    new_number = payload.get("lot_number")
    if new_number and new_number != lot.lot_number:
        if db.query(Lot.id).filter(Lot.lot_number == new_number, Lot.id != lot.id).first() is not None:
            raise DuplicateError("Lot number already exists.", lot_number=new_number)
    for key, value in payload.items():
        setattr(lot, key, value)
    return lot


def delete_lot(db: Session, lot: Lot) -> Lot:
    models = (Inventory, InventoryTransaction, MonthlyInventory, Allocation)
    if _is_referenced(db, "lot_id", lot.id, models):
        raise ReferenceInUseError("Cannot delete lot because it is in use.", lot_id=lot.id)
    db.delete(lot)
    return lot


def list_lots(db: Session, item_id: Optional[int] = None) -> list[Lot]:
    query = db.query(Lot)
    if item_id is not None:
        query = query.filter(Lot.item_id == item_id)
    return query.order_by(Lot.production_date.desc(), Lot.id.desc()).all()
