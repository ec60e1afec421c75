from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stockledger.db import Base, enable_sqlite_write_locking
from stockledger.errors import CapacityExceededError, InsufficientStockError, TransactionFailedError
from stockledger.inventory.ledger import LedgerKey, get_quantity
from stockledger.inventory.reservations import other_allocations_qty
from stockledger.inventory.service import create_allocation, record_inbound, record_outbound
from stockledger.inventory.transaction import run_in_transaction
from stockledger.models import Item, Lot, Unit, Warehouse


@pytest.fixture()
def two_sessions(tmp_path):
    """Two sessions on one file-backed SQLite database, as two requests would see it."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 0.1},
    )
    enable_sqlite_write_locking(engine)
    Base.metadata.create_all(engine)
    SessionFactory = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    with SessionFactory() as setup:
        item = Item(code="FG-1", name="Widget", item_type="MANUFACTURED")
        unit = Unit(name="EA")
        warehouse = Warehouse(code="WH-1", name="Main")
        setup.add_all([item, unit, warehouse])
        setup.flush()
        lot = Lot(lot_number="LOT-1", item_id=item.id, production_date=date(2024, 1, 10))
        setup.add(lot)
        setup.flush()
        key = LedgerKey(lot.id, warehouse.id, unit.id)
        setup.commit()

    first, second = SessionFactory(), SessionFactory()
    try:
        yield key, first, second
    finally:
        first.close()
        second.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


def _key_kwargs(key):
    return {"lot_id": key.lot_id, "warehouse_id": key.warehouse_id, "unit_id": key.unit_id}


def test_second_allocation_waits_for_the_first_and_sees_its_reservation(two_sessions):
    key, first, second = two_sessions
    run_in_transaction(first, record_inbound, **_key_kwargs(key), quantity=Decimal("10"))

    create_allocation(first, **_key_kwargs(key), quantity=Decimal("10"))

    with pytest.raises(TransactionFailedError):
        run_in_transaction(second, create_allocation, **_key_kwargs(key), quantity=Decimal("10"), attempts=1)

    first.commit()

    with pytest.raises(CapacityExceededError) as exc_info:
        run_in_transaction(second, create_allocation, **_key_kwargs(key), quantity=Decimal("10"))
    assert exc_info.value.available_qty == Decimal("0")
    assert other_allocations_qty(second, key) == Decimal("10")
    assert get_quantity(second, key) == Decimal("10")


def test_second_outbound_cannot_overdraw_after_the_first_commits(two_sessions):
    key, first, second = two_sessions
    run_in_transaction(first, record_inbound, **_key_kwargs(key), quantity=Decimal("10"))

    record_outbound(first, **_key_kwargs(key), quantity=Decimal("6"))

    with pytest.raises(TransactionFailedError):
        run_in_transaction(second, record_outbound, **_key_kwargs(key), quantity=Decimal("6"), attempts=1)

    first.commit()

    with pytest.raises(InsufficientStockError):
        run_in_transaction(second, record_outbound, **_key_kwargs(key), quantity=Decimal("6"))
    assert get_quantity(second, key) == Decimal("4")
