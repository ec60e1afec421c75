from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Query, Session, selectinload

from stockledger.inventory.ledger import LedgerKey
from stockledger.models import InventoryTransaction, Lot, TRANSACTION_TYPES


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert offset-aware input before saving."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def append_movement(
    db: Session,
    *,
    key: LedgerKey,
    direction: str,
    quantity: Decimal,
    occurred_at: Optional[datetime] = None,
    reference_number: Optional[str] = None,
    barcode_data: Optional[str] = None,
) -> InventoryTransaction:
    if direction not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown movement direction: {direction}")
    movement = InventoryTransaction(
        transaction_type=direction,
        lot_id=key.lot_id,
        warehouse_id=key.warehouse_id,
        unit_id=key.unit_id,
        quantity=Decimal(quantity),
        transaction_date=to_utc_naive(occurred_at) or datetime.utcnow(),
        reference_number=reference_number,
        barcode_data=barcode_data,
        created_at=datetime.utcnow(),
    )
    db.add(movement)
    db.flush()
    return movement


def query_movements(
    db: Session,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    item_id: Optional[int] = None,
    lot_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    unit_id: Optional[int] = None,
    direction: Optional[str] = None,
    newest_first: bool = True,
) -> Query:
    """Build a movement history query.

    The returned query is lazy and re-executes on every iteration. ``end_date``
    is inclusive of the whole day.
    """
    query = db.query(InventoryTransaction).options(
        selectinload(InventoryTransaction.lot).selectinload(Lot.item),
        selectinload(InventoryTransaction.warehouse),
        selectinload(InventoryTransaction.unit),
    )
    if start_date is not None:
        query = query.filter(InventoryTransaction.transaction_date >= datetime.combine(start_date, time.min))
    if end_date is not None:
        query = query.filter(InventoryTransaction.transaction_date < datetime.combine(end_date + timedelta(days=1), time.min))
    if lot_id is not None:
        query = query.filter(InventoryTransaction.lot_id == lot_id)
    if warehouse_id is not None:
        query = query.filter(InventoryTransaction.warehouse_id == warehouse_id)
    if unit_id is not None:
        query = query.filter(InventoryTransaction.unit_id == unit_id)
    if direction is not None:
        query = query.filter(InventoryTransaction.transaction_type == direction)
    if item_id is not None:
        query = query.join(Lot, Lot.id == InventoryTransaction.lot_id).filter(Lot.item_id == item_id)

    if newest_first:
        return query.order_by(InventoryTransaction.transaction_date.desc(), InventoryTransaction.id.desc())
    return query.order_by(InventoryTransaction.transaction_date.asc(), InventoryTransaction.id.asc())


def net_movement_quantity(db: Session, key: LedgerKey) -> Decimal:
    """Net signed sum of journaled movements for a key, for auditing the ledger."""
    total = Decimal("0")
    for movement in query_movements(db, lot_id=key.lot_id, warehouse_id=key.warehouse_id, unit_id=key.unit_id):
        total += Decimal(movement.signed_quantity)
    return total
