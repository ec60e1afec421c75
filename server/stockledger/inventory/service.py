"""Ledger workflows: inbound, outbound and allocation create/update/delete.

Each workflow validates in a fixed order (required fields, then referenced
entities, then stock or capacity) and leaves the session untouched on
failure. None of them commit; callers wrap them with ``run_in_transaction``.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session, selectinload

from stockledger.errors import (
    CapacityExceededError,
    InsufficientStockError,
    NotFoundError,
    ValidationFailedError,
)
from stockledger.inventory import ledger
from stockledger.inventory.journal import append_movement, to_utc_naive
from stockledger.inventory.ledger import LedgerKey
from stockledger.inventory.reservations import other_allocations_qty
from stockledger.master.service import get_lot, get_unit, get_warehouse
from stockledger.models import INBOUND, OUTBOUND, Allocation, InventoryTransaction, Lot


logger = logging.getLogger(__name__)

QUANTITY_STEP = Decimal("0.0001")
QUANTITY_LIMIT = Decimal("100000000000000")


def _parse_quantity(value: Any) -> Decimal:
    if value is None:
        raise ValidationFailedError("Quantity is required.")
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailedError("Quantity must be a number.", quantity=value) from None
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationFailedError("Quantity must be greater than zero.", quantity=value)
    if quantity >= QUANTITY_LIMIT:
        raise ValidationFailedError("Quantity is too large.", quantity=value)
    if quantity != quantity.quantize(QUANTITY_STEP):
        raise ValidationFailedError("Quantity supports at most four decimal places.", quantity=value)
    return quantity


def _validate_request(lot_id, warehouse_id, unit_id, quantity) -> tuple[LedgerKey, Decimal]:
    missing = [
        name
        for name, value in (("lot_id", lot_id), ("warehouse_id", warehouse_id), ("unit_id", unit_id), ("quantity", quantity))
        if value is None
    ]
    if missing:
        raise ValidationFailedError(
            "Lot, warehouse, unit and quantity are required.",
            missing_fields=missing,
        )
    return LedgerKey(lot_id, warehouse_id, unit_id), _parse_quantity(quantity)


def _validate_references(db: Session, key: LedgerKey) -> Lot:
    lot = get_lot(db, key.lot_id)
    get_warehouse(db, key.warehouse_id)
    get_unit(db, key.unit_id)
    return lot


def record_inbound(
    db: Session,
    *,
    lot_id: Optional[int],
    warehouse_id: Optional[int],
    unit_id: Optional[int],
    quantity: Any,
    occurred_at: Optional[datetime] = None,
    reference_number: Optional[str] = None,
    barcode_data: Optional[str] = None,
) -> InventoryTransaction:
    key, amount = _validate_request(lot_id, warehouse_id, unit_id, quantity)
    _validate_references(db, key)

    new_quantity = ledger.apply_inbound(db, key, amount)
    movement = append_movement(
        db,
        key=key,
        direction=INBOUND,
        quantity=amount,
        occurred_at=occurred_at,
        reference_number=reference_number,
        barcode_data=barcode_data,
    )
    logger.info(
        "Recorded inbound movement: id=%s key=%s quantity=%s on_hand=%s reference=%s",
        movement.id,
        key,
        amount,
        new_quantity,
        reference_number,
    )
    return movement


def _consume_allocation(db: Session, key: LedgerKey, allocation: Optional[Allocation], amount: Decimal) -> None:
    if allocation is None:
        return
    if Decimal(allocation.quantity) <= amount:
        logger.info("Outbound consumed allocation: id=%s key=%s", allocation.id, key)
        db.delete(allocation)
    else:
        allocation.quantity = Decimal(allocation.quantity) - amount
        logger.info("Outbound reduced allocation: id=%s key=%s remaining=%s", allocation.id, key, allocation.quantity)


def _find_linked_allocation(db: Session, key: LedgerKey, allocation_id: Optional[int]) -> Optional[Allocation]:
    if allocation_id is None:
        return None
    allocation = (
        db.query(Allocation)
        .filter(Allocation.id == allocation_id, *key.as_filter(Allocation))
        .with_for_update()
        .first()
    )
    if allocation is None:
        logger.info("Linked allocation %s not found for key=%s; outbound proceeds without it", allocation_id, key)
    return allocation


def record_outbound(
    db: Session,
    *,
    lot_id: Optional[int],
    warehouse_id: Optional[int],
    unit_id: Optional[int],
    quantity: Any,
    occurred_at: Optional[datetime] = None,
    reference_number: Optional[str] = None,
    barcode_data: Optional[str] = None,
    allocation_id: Optional[int] = None,
) -> InventoryTransaction:
    key, amount = _validate_request(lot_id, warehouse_id, unit_id, quantity)
    _validate_references(db, key)

    on_hand = ledger.get_quantity(db, key, for_update=True)
    if amount > on_hand:
        raise InsufficientStockError(
            "Outbound quantity exceeds on-hand quantity.",
            on_hand_qty=on_hand,
            requested_qty=amount,
        )

    allocation = _find_linked_allocation(db, key, allocation_id)
    consumed = min(Decimal(allocation.quantity), amount) if allocation is not None else Decimal("0")
    reserved = other_allocations_qty(db, key)
    if reserved - consumed > on_hand - amount:
        raise InsufficientStockError(
            "Outbound quantity would leave reserved stock uncovered.",
            on_hand_qty=on_hand,
            reserved_qty=reserved,
            requested_qty=amount,
        )

    new_quantity = ledger.apply_outbound(db, key, amount)
    movement = append_movement(
        db,
        key=key,
        direction=OUTBOUND,
        quantity=amount,
        occurred_at=occurred_at,
        reference_number=reference_number,
        barcode_data=barcode_data,
    )
    _consume_allocation(db, key, allocation, amount)
    logger.info(
        "Recorded outbound movement: id=%s key=%s quantity=%s on_hand=%s allocation_id=%s reference=%s",
        movement.id,
        key,
        amount,
        new_quantity,
        allocation_id,
        reference_number,
    )
    return movement


def create_allocation(
    db: Session,
    *,
    lot_id: Optional[int],
    warehouse_id: Optional[int],
    unit_id: Optional[int],
    quantity: Any,
    allocation_date: Optional[datetime] = None,
    reference_number: Optional[str] = None,
) -> Allocation:
    key, requested = _validate_request(lot_id, warehouse_id, unit_id, quantity)
    _validate_references(db, key)

    record = ledger.get_record(db, key, for_update=True)
    if record is None:
        raise NotFoundError(
            "No inventory exists for this lot, warehouse and unit.",
            lot_id=key.lot_id,
            warehouse_id=key.warehouse_id,
            unit_id=key.unit_id,
        )

    available = Decimal(record.quantity or 0) - other_allocations_qty(db, key)
    if requested > available:
        raise CapacityExceededError(available_qty=available, requested_qty=requested)

    allocation = Allocation(
        lot_id=key.lot_id,
        warehouse_id=key.warehouse_id,
        unit_id=key.unit_id,
        quantity=requested,
        allocation_date=to_utc_naive(allocation_date) or datetime.utcnow(),
        reference_number=reference_number,
    )
    db.add(allocation)
    db.flush()
    logger.info("Created allocation: id=%s key=%s quantity=%s available_before=%s", allocation.id, key, requested, available)
    return allocation


def get_allocation(db: Session, allocation_id: int) -> Allocation:
    allocation = (
        db.query(Allocation)
        .options(
            selectinload(Allocation.lot).selectinload(Lot.item),
            selectinload(Allocation.warehouse),
            selectinload(Allocation.unit),
        )
        .filter(Allocation.id == allocation_id)
        .first()
    )
    if not allocation:
        raise NotFoundError("Allocation not found.", allocation_id=allocation_id)
    return allocation


def update_allocation(
    db: Session,
    allocation_id: int,
    *,
    quantity: Any = None,
    allocation_date: Optional[datetime] = None,
    reference_number: Optional[str] = None,
) -> Allocation:
    requested = _parse_quantity(quantity) if quantity is not None else None
    allocation = get_allocation(db, allocation_id)
    key = LedgerKey(allocation.lot_id, allocation.warehouse_id, allocation.unit_id)

    record = ledger.get_record(db, key, for_update=True)
    if record is None:
        raise NotFoundError(
            "No inventory exists for this allocation's lot, warehouse and unit.",
            allocation_id=allocation_id,
        )

    target = requested if requested is not None else Decimal(allocation.quantity)
    available = Decimal(record.quantity or 0) - other_allocations_qty(db, key, exclude_allocation_id=allocation.id)
    if target > available:
        raise CapacityExceededError(available_qty=available, requested_qty=target)

    allocation.quantity = target
    if allocation_date is not None:
        allocation.allocation_date = to_utc_naive(allocation_date)
    if reference_number is not None:
        allocation.reference_number = reference_number or None
    db.flush()
    logger.info("Updated allocation: id=%s key=%s quantity=%s", allocation.id, key, target)
    return allocation


def delete_allocation(db: Session, allocation_id: int) -> Allocation:
    """Release an allocation and return the removed row with its references loaded."""
    allocation = get_allocation(db, allocation_id)
    db.delete(allocation)
    db.flush()
    logger.info("Released allocation: id=%s quantity=%s", allocation.id, allocation.quantity)
    return allocation
