from datetime import date, datetime
from decimal import Decimal
import logging

from sqlalchemy.orm import Session

from . import config
from .db import SessionLocal
from .inventory.service import create_allocation, record_inbound, record_outbound
from .models import InventoryTransaction, Item, ItemUnit, Lot, Unit, Warehouse


logger = logging.getLogger(__name__)

UNITS = [
    ("EA", "Each"),
    ("KG", "Kilogram"),
    ("BOX", "Box of 12"),
]

WAREHOUSES = [
    ("WH-MAIN", "Main Warehouse", "1 Industrial Way"),
    ("WH-EAST", "East Distribution Center", "42 Harbor Road"),
]

ITEMS = [
    ("FG-100", "Finished Widget", "MANUFACTURED", [("EA", "1", True), ("BOX", "12", False)]),
    ("RM-200", "Steel Pellets", "RAW_MATERIAL", [("KG", "1", True)]),
    ("EX-300", "Packaging Sleeve", "EXTERNAL", [("EA", "1", True)]),
]

LOTS = [
    ("LOT-FG-2401", "FG-100", date(2024, 1, 15)),
    ("LOT-FG-2402", "FG-100", date(2024, 2, 10)),
    ("LOT-RM-2401", "RM-200", date(2024, 1, 5)),
    ("LOT-EX-2401", "EX-300", date(2024, 1, 20)),
]

# (lot, warehouse, unit, quantity, occurred_at, reference)
DEMO_INBOUND = [
    ("LOT-FG-2401", "WH-MAIN", "EA", "500", datetime(2024, 2, 1, 9, 0), "RCV-0001"),
    ("LOT-FG-2402", "WH-MAIN", "EA", "250", datetime(2024, 3, 1, 9, 0), "RCV-0002"),
    ("LOT-RM-2401", "WH-EAST", "KG", "1250.5", datetime(2024, 2, 3, 14, 30), "RCV-0003"),
    ("LOT-EX-2401", "WH-EAST", "EA", "1000", datetime(2024, 2, 5, 8, 0), "RCV-0004"),
]

DEMO_OUTBOUND = [
    ("LOT-FG-2401", "WH-MAIN", "EA", "120", datetime(2024, 2, 20, 16, 0), "SHP-0001"),
    ("LOT-RM-2401", "WH-EAST", "KG", "300.25", datetime(2024, 2, 25, 11, 0), "SHP-0002"),
]


def _get_or_create_unit(db: Session, name: str, description: str) -> Unit:
    unit = db.query(Unit).filter(Unit.name == name).first()
    if unit:
        return unit
    unit = Unit(name=name, description=description)
    db.add(unit)
    db.flush()
    return unit


def _get_or_create_warehouse(db: Session, code: str, name: str, address: str) -> Warehouse:
    warehouse = db.query(Warehouse).filter(Warehouse.code == code).first()
    if warehouse:
        return warehouse
    warehouse = Warehouse(code=code, name=name, address=address)
    db.add(warehouse)
    db.flush()
    return warehouse


def _get_or_create_item(db: Session, code: str, name: str, item_type: str, units: dict[str, Unit], links) -> Item:
    item = db.query(Item).filter(Item.code == code).first()
    if item:
        return item
    item = Item(code=code, name=name, item_type=item_type)
    for unit_name, rate, is_default in links:
        item.item_units.append(
            ItemUnit(unit_id=units[unit_name].id, conversion_rate=Decimal(rate), is_default=is_default)
        )
    db.add(item)
    db.flush()
    return item


def _get_or_create_lot(db: Session, lot_number: str, item: Item, production_date: date) -> Lot:
    lot = db.query(Lot).filter(Lot.lot_number == lot_number).first()
    if lot:
        return lot
    lot = Lot(lot_number=lot_number, item_id=item.id, production_date=production_date)
    db.add(lot)
    db.flush()
    return lot


def _seed_reference_data(db: Session) -> dict:
    units = {name: _get_or_create_unit(db, name, description) for name, description in UNITS}
    warehouses = {code: _get_or_create_warehouse(db, code, name, address) for code, name, address in WAREHOUSES}
    items = {
        code: _get_or_create_item(db, code, name, item_type, units, links)
        for code, name, item_type, links in ITEMS
    }
    lots = {
        lot_number: _get_or_create_lot(db, lot_number, items[item_code], production_date)
        for lot_number, item_code, production_date in LOTS
    }
    return {"units": units, "warehouses": warehouses, "items": items, "lots": lots}


def _seed_demo_movements(db: Session, refs: dict) -> None:
    if db.query(InventoryTransaction.id).first() is not None:
        logger.info("Movements already present; skipping demo stock")
        return

    def key_of(lot_number, warehouse_code, unit_name):
        return {
            "lot_id": refs["lots"][lot_number].id,
            "warehouse_id": refs["warehouses"][warehouse_code].id,
            "unit_id": refs["units"][unit_name].id,
        }

    for lot_number, warehouse_code, unit_name, quantity, occurred_at, reference in DEMO_INBOUND:
        record_inbound(
            db,
            **key_of(lot_number, warehouse_code, unit_name),
            quantity=Decimal(quantity),
            occurred_at=occurred_at,
            reference_number=reference,
        )
    for lot_number, warehouse_code, unit_name, quantity, occurred_at, reference in DEMO_OUTBOUND:
        record_outbound(
            db,
            **key_of(lot_number, warehouse_code, unit_name),
            quantity=Decimal(quantity),
            occurred_at=occurred_at,
            reference_number=reference,
        )
    create_allocation(
        db,
        **key_of("LOT-FG-2401", "WH-MAIN", "EA"),
        quantity=Decimal("80"),
        reference_number="SO-1001",
    )


def run_seed(with_movements: bool | None = None):
    if with_movements is None:
        with_movements = config.SEED_DEMO_DATA

    db: Session = SessionLocal()
    try:
        refs = _seed_reference_data(db)
        if with_movements:
            _seed_demo_movements(db, refs)
        db.commit()
        logger.info("Seed complete (demo movements: %s)", with_movements)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL)
    run_seed()
