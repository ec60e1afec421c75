from decimal import Decimal
import logging
from typing import Iterable, Optional

from sqlalchemy import func, tuple_
from sqlalchemy.orm import Session

from stockledger.inventory.ledger import LedgerKey, get_quantity
from stockledger.models import Allocation, Inventory


logger = logging.getLogger(__name__)


def other_allocations_qty(db: Session, key: LedgerKey, exclude_allocation_id: Optional[int] = None) -> Decimal:
    query = db.query(func.coalesce(func.sum(Allocation.quantity), 0)).filter(*key.as_filter(Allocation))
    if exclude_allocation_id is not None:
        query = query.filter(Allocation.id != exclude_allocation_id)
    return Decimal(query.scalar() or 0)


def get_available_qty(
    db: Session,
    key: LedgerKey,
    exclude_allocation_id: Optional[int] = None,
    *,
    for_update: bool = False,
) -> Decimal:
    """Single source of truth for reservable stock on a ledger key."""
    on_hand = get_quantity(db, key, for_update=for_update)
    reserved = other_allocations_qty(db, key, exclude_allocation_id)
    available_qty = on_hand - reserved
    logger.debug(
        "Availability lookup: key=%s on_hand=%s reserved=%s exclude_allocation_id=%s available_qty=%s",
        key,
        on_hand,
        reserved,
        exclude_allocation_id,
        available_qty,
    )
    return available_qty


def get_allocated_qty_map(db: Session, keys: Iterable[LedgerKey]) -> dict[LedgerKey, Decimal]:
    keys = list(keys)
    if not keys:
        return {}
    rows = (
        db.query(
            Allocation.lot_id,
            Allocation.warehouse_id,
            Allocation.unit_id,
            func.coalesce(func.sum(Allocation.quantity), 0),
        )
        .filter(
            tuple_(Allocation.lot_id, Allocation.warehouse_id, Allocation.unit_id).in_(
                [(key.lot_id, key.warehouse_id, key.unit_id) for key in keys]
            )
        )
        .group_by(Allocation.lot_id, Allocation.warehouse_id, Allocation.unit_id)
        .all()
    )
    allocated = {LedgerKey(lot_id, warehouse_id, unit_id): Decimal(total or 0) for lot_id, warehouse_id, unit_id, total in rows}
    for key in keys:
        allocated.setdefault(key, Decimal("0"))
    return allocated


def annotate_inventory(db: Session, records: list[Inventory]) -> list[dict]:
    """Pair inventory rows with their allocated and available quantities."""
    keys = [LedgerKey(record.lot_id, record.warehouse_id, record.unit_id) for record in records]
    allocated_by_key = get_allocated_qty_map(db, keys)
    annotated = []
    for record, key in zip(records, keys):
        quantity = Decimal(record.quantity or 0)
        allocated = allocated_by_key.get(key, Decimal("0"))
        annotated.append(
            {
                "record": record,
                "quantity": quantity,
                "allocated_qty": allocated,
                "available_qty": quantity - allocated,
            }
        )
    return annotated
