from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from stockledger.inventory.reservations import annotate_inventory
from stockledger.models import Allocation, Inventory, Item, Lot, Warehouse


def list_inventory(
    db: Session,
    *,
    item_id: Optional[int] = None,
    lot_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
) -> list[dict]:
    """Inventory rows in item/warehouse/lot order, annotated with reservations."""
    query = (
        db.query(Inventory)
        .join(Lot, Lot.id == Inventory.lot_id)
        .join(Item, Item.id == Lot.item_id)
        .join(Warehouse, Warehouse.id == Inventory.warehouse_id)
        .options(
            selectinload(Inventory.lot).selectinload(Lot.item),
            selectinload(Inventory.warehouse),
            selectinload(Inventory.unit),
        )
    )
    if item_id is not None:
        query = query.filter(Lot.item_id == item_id)
    if lot_id is not None:
        query = query.filter(Inventory.lot_id == lot_id)
    if warehouse_id is not None:
        query = query.filter(Inventory.warehouse_id == warehouse_id)
    records = query.order_by(Item.name.asc(), Warehouse.name.asc(), Lot.lot_number.asc(), Inventory.unit_id.asc()).all()
    return annotate_inventory(db, records)


def unit_totals(rows: list[dict]) -> list[dict]:
    totals: dict[int, dict] = {}
    for row in rows:
        unit = row["record"].unit
        entry = totals.setdefault(
            unit.id,
            {
                "unit_id": unit.id,
                "unit_name": unit.name,
                "quantity": Decimal("0"),
                "allocated_qty": Decimal("0"),
                "available_qty": Decimal("0"),
            },
        )
        entry["quantity"] += row["quantity"]
        entry["allocated_qty"] += row["allocated_qty"]
        entry["available_qty"] += row["available_qty"]
    return [totals[unit_id] for unit_id in sorted(totals)]


def list_allocations(
    db: Session,
    *,
    item_id: Optional[int] = None,
    lot_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    reference_number: Optional[str] = None,
) -> list[Allocation]:
    query = db.query(Allocation).options(
        selectinload(Allocation.lot).selectinload(Lot.item),
        selectinload(Allocation.warehouse),
        selectinload(Allocation.unit),
    )
    if item_id is not None:
        query = query.join(Lot, Lot.id == Allocation.lot_id).filter(Lot.item_id == item_id)
    if lot_id is not None:
        query = query.filter(Allocation.lot_id == lot_id)
    if warehouse_id is not None:
        query = query.filter(Allocation.warehouse_id == warehouse_id)
    if reference_number:
        query = query.filter(Allocation.reference_number.ilike(f"%{reference_number.strip()}%"))
    return query.order_by(Allocation.allocation_date.desc(), Allocation.id.desc()).all()
