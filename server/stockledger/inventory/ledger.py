from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from stockledger.errors import InsufficientStockError, ValidationFailedError
from stockledger.models import Inventory


logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerKey:
    lot_id: int
    warehouse_id: int
    unit_id: int

    def as_filter(self, model) -> tuple:
        return (
            model.lot_id == self.lot_id,
            model.warehouse_id == self.warehouse_id,
            model.unit_id == self.unit_id,
        )


def _require_positive(amount: Decimal) -> Decimal:
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationFailedError("Quantity must be greater than zero.", quantity=amount)
    return amount


def get_record(db: Session, key: LedgerKey, *, for_update: bool = False) -> Optional[Inventory]:
    query = db.query(Inventory).filter(*key.as_filter(Inventory))
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_quantity(db: Session, key: LedgerKey, *, for_update: bool = False) -> Decimal:
    """On-hand quantity for a ledger key; a missing record reads as zero."""
    record = get_record(db, key, for_update=for_update)
    return Decimal(record.quantity or 0) if record else ZERO


def apply_inbound(db: Session, key: LedgerKey, amount: Decimal) -> Decimal:
    amount = _require_positive(amount)
    record = get_record(db, key, for_update=True)
    if record is None:
        record = Inventory(
            lot_id=key.lot_id,
            warehouse_id=key.warehouse_id,
            unit_id=key.unit_id,
            quantity=amount,
            last_updated_at=datetime.utcnow(),
        )
        db.add(record)
        # Surfaces a concurrent first insert of the same key as IntegrityError.
        db.flush()
        new_quantity = amount
    else:
        new_quantity = Decimal(record.quantity or 0) + amount
        record.quantity = new_quantity
        record.last_updated_at = datetime.utcnow()

    logger.debug("Ledger inbound: key=%s amount=%s new_quantity=%s", key, amount, new_quantity)
    return new_quantity


def apply_outbound(db: Session, key: LedgerKey, amount: Decimal) -> Decimal:
    amount = _require_positive(amount)
    record = get_record(db, key, for_update=True)
    on_hand = Decimal(record.quantity or 0) if record else ZERO
    if record is None or amount > on_hand:
        raise InsufficientStockError(
            "Outbound quantity exceeds on-hand quantity.",
            on_hand_qty=on_hand,
            requested_qty=amount,
        )

    new_quantity = on_hand - amount
    if new_quantity == 0:
        db.delete(record)
        db.flush()
    else:
        record.quantity = new_quantity
        record.last_updated_at = datetime.utcnow()

    logger.debug("Ledger outbound: key=%s amount=%s new_quantity=%s", key, amount, new_quantity)
    return new_quantity
