from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger.db import Base, get_db
from stockledger.inventory.ledger import LedgerKey
from stockledger.main import app
from stockledger.models import Item, Lot, Unit, Warehouse


@pytest.fixture()
def db():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture()
def refs(db):
    """One item with two lots, two warehouses and two units."""
    item = Item(code="FG-1", name="Widget", item_type="MANUFACTURED")
    each = Unit(name="EA")
    kilo = Unit(name="KG")
    main = Warehouse(code="WH-1", name="Main")
    east = Warehouse(code="WH-2", name="East")
    db.add_all([item, each, kilo, main, east])
    db.flush()
    lot = Lot(lot_number="LOT-1", item_id=item.id, production_date=date(2024, 1, 10))
    late_lot = Lot(lot_number="LOT-2", item_id=item.id, production_date=date(2024, 3, 15))
    db.add_all([lot, late_lot])
    db.commit()
    return {
        "item": item,
        "lot": lot,
        "late_lot": late_lot,
        "each": each,
        "kilo": kilo,
        "main": main,
        "east": east,
        "key": LedgerKey(lot.id, main.id, each.id),
    }


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(engine)


@pytest.fixture()
def api_key(client):
    """Create reference data over HTTP and return the ledger key payload."""
    unit = client.post("/api/units", json={"name": "EA"}).json()
    warehouse = client.post("/api/warehouses", json={"code": "WH-1", "name": "Main"}).json()
    item = client.post(
        "/api/items",
        json={"code": "FG-1", "name": "Widget", "item_type": "MANUFACTURED", "units": [{"unit_id": unit["id"], "is_default": True}]},
    ).json()
    lot = client.post(
        "/api/lots",
        json={"lot_number": "LOT-1", "item_id": item["id"], "production_date": "2024-01-10"},
    ).json()
    return {"lot_id": lot["id"], "warehouse_id": warehouse["id"], "unit_id": unit["id"], "item_id": item["id"]}
