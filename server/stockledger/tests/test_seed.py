from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger import seed
from stockledger.db import Base
from stockledger.inventory.journal import net_movement_quantity
from stockledger.inventory.ledger import LedgerKey, get_quantity
from stockledger.models import Allocation, Inventory, InventoryTransaction, Item, Lot, Unit, Warehouse


def _make_session_local():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    return TestingSessionLocal, engine


def test_seed_reference_data_is_idempotent(monkeypatch):
    TestingSessionLocal, engine = _make_session_local()
    monkeypatch.setattr(seed, "SessionLocal", TestingSessionLocal)

    seed.run_seed(with_movements=False)
    seed.run_seed(with_movements=False)

    with TestingSessionLocal() as db:
        assert db.query(Unit).count() == len(seed.UNITS)
        assert db.query(Warehouse).count() == len(seed.WAREHOUSES)
        assert db.query(Item).count() == len(seed.ITEMS)
        assert db.query(Lot).count() == len(seed.LOTS)
        assert db.query(InventoryTransaction).count() == 0

    Base.metadata.drop_all(engine)


def test_seed_demo_movements_keep_ledger_consistent(monkeypatch):
    TestingSessionLocal, engine = _make_session_local()
    monkeypatch.setattr(seed, "SessionLocal", TestingSessionLocal)

    seed.run_seed(with_movements=True)
    seed.run_seed(with_movements=True)

    with TestingSessionLocal() as db:
        assert db.query(InventoryTransaction).count() == len(seed.DEMO_INBOUND) + len(seed.DEMO_OUTBOUND)
        assert db.query(Allocation).count() == 1
        for record in db.query(Inventory).all():
            key = LedgerKey(record.lot_id, record.warehouse_id, record.unit_id)
            assert get_quantity(db, key) == net_movement_quantity(db, key)

        steel = db.query(Lot).filter(Lot.lot_number == "LOT-RM-2401").one()
        kilo = db.query(Unit).filter(Unit.name == "KG").one()
        east = db.query(Warehouse).filter(Warehouse.code == "WH-EAST").one()
        assert get_quantity(db, LedgerKey(steel.id, east.id, kilo.id)) == Decimal("950.25")

    Base.metadata.drop_all(engine)
