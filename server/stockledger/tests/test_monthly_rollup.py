from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stockledger.errors import ValidationFailedError
from stockledger.inventory.journal import append_movement
from stockledger.inventory.ledger import LedgerKey
from stockledger.inventory.service import record_inbound
from stockledger.inventory.transaction import run_in_transaction
from stockledger.models import INBOUND, OUTBOUND, MonthlyInventory
from stockledger.monthly.service import (
    compute_monthly_rollup,
    group_snapshots_by_item,
    list_snapshots,
    next_month_start,
    previous_month_start,
)


def _move(db, key, direction, quantity, occurred_at):
    append_movement(db, key=key, direction=direction, quantity=Decimal(quantity), occurred_at=occurred_at)


def _rollup(db, year, month):
    result = compute_monthly_rollup(db, year, month)
    db.commit()
    return result


def _snapshot_values(rows):
    return sorted(
        (
            row.item_id,
            row.lot_id,
            row.warehouse_id,
            row.unit_id,
            row.month,
            row.opening_quantity,
            row.incoming_quantity,
            row.outgoing_quantity,
            row.closing_quantity,
        )
        for row in rows
    )


def test_month_helpers_wrap_year_boundaries():
    assert next_month_start(date(2024, 12, 1)) == date(2025, 1, 1)
    assert previous_month_start(date(2024, 1, 1)) == date(2023, 12, 1)


@pytest.mark.parametrize("year, month", [(2024, 0), (2024, 13), (0, 5)])
def test_invalid_month_is_rejected(db, year, month):
    with pytest.raises(ValidationFailedError):
        compute_monthly_rollup(db, year, month)


def test_closing_carries_into_next_month_opening(db, refs):
    key = refs["key"]
    _move(db, key, INBOUND, "100", datetime(2024, 2, 5))
    _move(db, key, INBOUND, "30", datetime(2024, 3, 2))
    _move(db, key, OUTBOUND, "45", datetime(2024, 3, 28, 17))
    db.commit()

    february = _rollup(db, 2024, 2)
    assert february["count"] == 1
    assert february["rows"][0].closing_quantity == Decimal("100")

    march = _rollup(db, 2024, 3)
    assert march["count"] == 1
    row = march["rows"][0]
    assert row.item_id == refs["item"].id
    assert row.month == date(2024, 3, 1)
    assert row.opening_quantity == Decimal("100")
    assert row.incoming_quantity == Decimal("30")
    assert row.outgoing_quantity == Decimal("45")
    assert row.closing_quantity == Decimal("85")


def test_month_boundaries_are_half_open(db, refs):
    key = refs["key"]
    _move(db, key, INBOUND, "1", datetime(2024, 2, 29, 23, 59, 59))
    _move(db, key, INBOUND, "2", datetime(2024, 3, 1, 0, 0))
    db.commit()

    row = _rollup(db, 2024, 2)["rows"][0]

    assert row.incoming_quantity == Decimal("1")


def test_offset_timestamps_are_bucketed_by_utc_month(db, refs):
    key = refs["key"]
    eastern = timezone(timedelta(hours=-5))
    movement = run_in_transaction(
        db,
        record_inbound,
        lot_id=key.lot_id,
        warehouse_id=key.warehouse_id,
        unit_id=key.unit_id,
        quantity=Decimal("5"),
        occurred_at=datetime(2024, 3, 31, 22, 0, tzinfo=eastern),
    )

    assert movement.transaction_date == datetime(2024, 4, 1, 3, 0)
    assert _rollup(db, 2024, 3)["rows"] == []
    april = _rollup(db, 2024, 4)["rows"]
    assert [row.incoming_quantity for row in april] == [Decimal("5")]


def test_rerun_is_idempotent_and_picks_up_backdated_movements(db, refs):
    key = refs["key"]
    _move(db, key, INBOUND, "40", datetime(2024, 2, 10))
    _move(db, key, OUTBOUND, "15", datetime(2024, 2, 12))
    db.commit()

    first = _snapshot_values(_rollup(db, 2024, 2)["rows"])
    second = _snapshot_values(_rollup(db, 2024, 2)["rows"])
    assert first == second
    assert db.query(MonthlyInventory).count() == 1

    _move(db, key, INBOUND, "5", datetime(2024, 2, 1))
    db.commit()
    refreshed = _rollup(db, 2024, 2)["rows"]

    assert len(refreshed) == 1
    assert refreshed[0].incoming_quantity == Decimal("45")
    assert refreshed[0].closing_quantity == Decimal("30")


def test_lots_produced_after_prior_month_are_excluded(db, refs):
    late_key = LedgerKey(refs["late_lot"].id, refs["main"].id, refs["each"].id)
    _move(db, late_key, INBOUND, "12", datetime(2024, 3, 20))
    _move(db, late_key, INBOUND, "3", datetime(2024, 4, 2))
    db.commit()

    assert _rollup(db, 2024, 3)["count"] == 0

    april = _rollup(db, 2024, 4)["rows"]
    assert len(april) == 1
    # March was never snapshotted for this lot, so April opens at zero.
    assert april[0].opening_quantity == Decimal("0")
    assert april[0].incoming_quantity == Decimal("3")


def test_all_zero_rows_are_not_stored(db, refs):
    key = refs["key"]
    balanced = LedgerKey(key.lot_id, refs["east"].id, key.unit_id)
    _move(db, key, INBOUND, "9", datetime(2024, 2, 3))
    _move(db, balanced, INBOUND, "5", datetime(2024, 2, 3))
    _move(db, balanced, OUTBOUND, "5", datetime(2024, 2, 4))
    db.commit()

    february = _rollup(db, 2024, 2)
    assert february["count"] == 2

    march = _rollup(db, 2024, 3)
    # The balanced key closed at zero in February and has no March activity.
    assert march["count"] == 1
    assert march["rows"][0].warehouse_id == refs["main"].id
    assert march["rows"][0].opening_quantity == Decimal("9")
    assert march["rows"][0].closing_quantity == Decimal("9")


def test_closing_equals_opening_plus_incoming_minus_outgoing(db, refs):
    key = refs["key"]
    kilo = LedgerKey(key.lot_id, key.warehouse_id, refs["kilo"].id)
    _move(db, key, INBOUND, "10.125", datetime(2024, 2, 1))
    _move(db, kilo, INBOUND, "3.5", datetime(2024, 2, 1))
    _move(db, key, OUTBOUND, "0.125", datetime(2024, 3, 1))
    _move(db, kilo, INBOUND, "1.25", datetime(2024, 3, 3))
    db.commit()
    _rollup(db, 2024, 2)

    for row in _rollup(db, 2024, 3)["rows"]:
        assert row.closing_quantity == row.opening_quantity + row.incoming_quantity - row.outgoing_quantity


def test_listing_and_grouping_snapshots(db, refs):
    key = refs["key"]
    _move(db, key, INBOUND, "4", datetime(2024, 2, 1))
    _move(db, LedgerKey(key.lot_id, refs["east"].id, key.unit_id), INBOUND, "6", datetime(2024, 2, 1))
    db.commit()
    _rollup(db, 2024, 2)

    assert len(list_snapshots(db, year=2024)) == 2
    assert len(list_snapshots(db, year=2024, month=2, warehouse_id=refs["east"].id)) == 1
    assert list_snapshots(db, year=2023) == []

    grouped = group_snapshots_by_item(list_snapshots(db, year=2024, month=2))
    assert len(grouped) == 1
    assert grouped[0]["item_code"] == "FG-1"
    assert [warehouse["warehouse_name"] for warehouse in grouped[0]["warehouses"]] == ["East", "Main"]
    assert grouped[0]["warehouses"][0]["lots"][0]["closing_quantity"] == Decimal("6")
