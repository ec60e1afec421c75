from decimal import Decimal

import pytest

from stockledger.errors import InsufficientStockError, ValidationFailedError
from stockledger.inventory import ledger
from stockledger.inventory.ledger import LedgerKey
from stockledger.models import Inventory


def test_get_quantity_of_unknown_key_is_zero(db, refs):
    assert ledger.get_quantity(db, LedgerKey(999, 999, 999)) == Decimal("0")
    assert ledger.get_quantity(db, refs["key"]) == Decimal("0")


def test_apply_inbound_creates_then_increments(db, refs):
    key = refs["key"]

    assert ledger.apply_inbound(db, key, Decimal("10.5")) == Decimal("10.5")
    assert ledger.apply_inbound(db, key, Decimal("4.25")) == Decimal("14.75")
    db.commit()

    assert ledger.get_quantity(db, key) == Decimal("14.75")
    assert db.query(Inventory).count() == 1


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
def test_apply_rejects_non_positive_amounts(db, refs, amount):
    with pytest.raises(ValidationFailedError):
        ledger.apply_inbound(db, refs["key"], amount)
    with pytest.raises(ValidationFailedError):
        ledger.apply_outbound(db, refs["key"], amount)


def test_apply_outbound_rejects_more_than_on_hand(db, refs):
    key = refs["key"]
    ledger.apply_inbound(db, key, Decimal("5"))
    db.commit()

    with pytest.raises(InsufficientStockError) as exc_info:
        ledger.apply_outbound(db, key, Decimal("6"))

    assert exc_info.value.extra["on_hand_qty"] == Decimal("5")
    assert exc_info.value.extra["requested_qty"] == Decimal("6")
    assert ledger.get_quantity(db, key) == Decimal("5")


def test_apply_outbound_on_missing_record_is_insufficient_stock(db, refs):
    with pytest.raises(InsufficientStockError):
        ledger.apply_outbound(db, refs["key"], Decimal("1"))


def test_outbound_to_exactly_zero_removes_record(db, refs):
    key = refs["key"]
    ledger.apply_inbound(db, key, Decimal("7"))
    db.commit()

    assert ledger.apply_outbound(db, key, Decimal("7")) == Decimal("0")
    db.commit()

    assert ledger.get_record(db, key) is None
    assert ledger.get_quantity(db, key) == Decimal("0")


def test_keys_are_independent(db, refs):
    key = refs["key"]
    other_unit = LedgerKey(key.lot_id, key.warehouse_id, refs["kilo"].id)
    other_warehouse = LedgerKey(key.lot_id, refs["east"].id, key.unit_id)

    ledger.apply_inbound(db, key, Decimal("3"))
    ledger.apply_inbound(db, other_unit, Decimal("8"))
    db.commit()

    assert ledger.get_quantity(db, key) == Decimal("3")
    assert ledger.get_quantity(db, other_unit) == Decimal("8")
    assert ledger.get_quantity(db, other_warehouse) == Decimal("0")
