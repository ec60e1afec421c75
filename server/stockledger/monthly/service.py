from datetime import date, datetime, timedelta
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from stockledger.errors import ValidationFailedError
from stockledger.models import INBOUND, OUTBOUND, InventoryTransaction, Item, Lot, MonthlyInventory, Warehouse


logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def month_start(year: int, month: int) -> date:
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ValidationFailedError("Invalid year or month.", year=year, month=month)
    return date(year, month, 1)


def next_month_start(start: date) -> date:
    if start.month == 12:
        return date(start.year + 1, 1, 1)
    return date(start.year, start.month + 1, 1)


def previous_month_start(start: date) -> date:
    if start.month == 1:
        return date(start.year - 1, 12, 1)
    return date(start.year, start.month - 1, 1)


def _movement_totals(db: Session, start: date, end: date) -> dict[tuple[int, int, int], dict[str, Decimal]]:
    rows = (
        db.query(
            InventoryTransaction.lot_id,
            InventoryTransaction.warehouse_id,
            InventoryTransaction.unit_id,
            InventoryTransaction.transaction_type,
            func.coalesce(func.sum(InventoryTransaction.quantity), 0),
        )
        .filter(
            InventoryTransaction.transaction_date >= datetime.combine(start, datetime.min.time()),
            InventoryTransaction.transaction_date < datetime.combine(end, datetime.min.time()),
        )
        .group_by(
            InventoryTransaction.lot_id,
            InventoryTransaction.warehouse_id,
            InventoryTransaction.unit_id,
            InventoryTransaction.transaction_type,
        )
        .all()
    )
    totals: dict[tuple[int, int, int], dict[str, Decimal]] = {}
    for lot_id, warehouse_id, unit_id, direction, total in rows:
        entry = totals.setdefault((lot_id, warehouse_id, unit_id), {INBOUND: ZERO, OUTBOUND: ZERO})
        entry[direction] += Decimal(total or 0)
    return totals


def compute_monthly_rollup(db: Session, year: int, month: int) -> dict:
    """Recompute every snapshot row for the month from scratch.

    Existing rows for the month are discarded first so a re-run after
    back-dated movements always yields a consistent set. Only lots produced
    on or before the last day of the previous month are in scope, and
    all-zero rows are not stored.
    """
    target = month_start(year, month)
    following = next_month_start(target)
    previous = previous_month_start(target)
    last_day_of_previous = target - timedelta(days=1)

    deleted = db.query(MonthlyInventory).filter(MonthlyInventory.month == target).delete(synchronize_session="fetch")

    lot_items = dict(
        db.query(Lot.id, Lot.item_id).filter(Lot.production_date <= last_day_of_previous).all()
    )

    opening_by_key: dict[tuple[int, int, int], Decimal] = {
        (row.lot_id, row.warehouse_id, row.unit_id): Decimal(row.closing_quantity or 0)
        for row in db.query(MonthlyInventory).filter(MonthlyInventory.month == previous).all()
    }
    movements_by_key = _movement_totals(db, target, following)

    snapshots: list[MonthlyInventory] = []
    for key in sorted(set(opening_by_key) | set(movements_by_key)):
        lot_id, warehouse_id, unit_id = key
        if lot_id not in lot_items:
            continue
        opening = opening_by_key.get(key, ZERO)
        moved = movements_by_key.get(key, {})
        incoming = moved.get(INBOUND, ZERO)
        outgoing = moved.get(OUTBOUND, ZERO)
        closing = opening + incoming - outgoing
        if opening == 0 and incoming == 0 and outgoing == 0 and closing == 0:
            continue
        snapshots.append(
            MonthlyInventory(
                item_id=lot_items[lot_id],
                lot_id=lot_id,
                warehouse_id=warehouse_id,
                unit_id=unit_id,
                month=target,
                opening_quantity=opening,
                incoming_quantity=incoming,
                outgoing_quantity=outgoing,
                closing_quantity=closing,
                created_at=datetime.utcnow(),
            )
        )

    db.add_all(snapshots)
    db.flush()

    rows = list_snapshots(db, year=year, month=month)
    logger.info(
        "Monthly rollup %04d-%02d: discarded=%s created=%s lots_in_scope=%s",
        year,
        month,
        deleted,
        len(rows),
        len(lot_items),
    )
    return {"year": year, "month": month, "count": len(rows), "rows": rows}


def list_snapshots(
    db: Session,
    *,
    year: Optional[int] = None,
    month: Optional[int] = None,
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
) -> list[MonthlyInventory]:
    query = (
        db.query(MonthlyInventory)
        .join(Item, Item.id == MonthlyInventory.item_id)
        .join(Warehouse, Warehouse.id == MonthlyInventory.warehouse_id)
        .join(Lot, Lot.id == MonthlyInventory.lot_id)
        .options(
            selectinload(MonthlyInventory.item),
            selectinload(MonthlyInventory.lot),
            selectinload(MonthlyInventory.warehouse),
            selectinload(MonthlyInventory.unit),
        )
    )
    if year is not None and month is not None:
        query = query.filter(MonthlyInventory.month == month_start(year, month))
    elif year is not None:
        query = query.filter(MonthlyInventory.month >= date(year, 1, 1), MonthlyInventory.month <= date(year, 12, 1))
    if item_id is not None:
        query = query.filter(MonthlyInventory.item_id == item_id)
    if warehouse_id is not None:
        query = query.filter(MonthlyInventory.warehouse_id == warehouse_id)
    return query.order_by(
        MonthlyInventory.month.desc(),
        Item.name.asc(),
        Warehouse.name.asc(),
        Lot.lot_number.asc(),
        MonthlyInventory.unit_id.asc(),
    ).all()


def group_snapshots_by_item(rows: list[MonthlyInventory]) -> list[dict]:
    """Nest snapshot rows as item -> warehouse -> lots, preserving row order."""
    grouped: dict[int, dict] = {}
    for row in rows:
        item_entry = grouped.setdefault(
            row.item_id,
            {"item_id": row.item_id, "item_code": row.item.code, "item_name": row.item.name, "warehouses": {}},
        )
        warehouse_entry = item_entry["warehouses"].setdefault(
            row.warehouse_id,
            {"warehouse_id": row.warehouse_id, "warehouse_name": row.warehouse.name, "lots": []},
        )
        warehouse_entry["lots"].append(
            {
                "lot_id": row.lot_id,
                "lot_number": row.lot.lot_number,
                "unit_id": row.unit_id,
                "unit_name": row.unit.name,
                "opening_quantity": row.opening_quantity,
                "incoming_quantity": row.incoming_quantity,
                "outgoing_quantity": row.outgoing_quantity,
                "closing_quantity": row.closing_quantity,
            }
        )
    return [
        {**item_entry, "warehouses": list(item_entry["warehouses"].values())}
        for item_entry in grouped.values()
    ]
