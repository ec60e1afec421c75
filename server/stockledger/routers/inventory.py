from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory import schemas
from stockledger.inventory.ledger import LedgerKey, get_quantity
from stockledger.inventory.queries import list_inventory, unit_totals
from stockledger.inventory.reservations import get_available_qty, other_allocations_qty
from stockledger.master.service import get_item, get_lot, get_warehouse


router = APIRouter(prefix="/api/inventory", tags=["inventory"])


def _to_response(row: dict) -> schemas.InventoryRecordResponse:
    record = row["record"]
    return schemas.InventoryRecordResponse(
        id=record.id,
        lot_id=record.lot_id,
        lot_number=record.lot.lot_number,
        production_date=record.lot.production_date,
        item_id=record.lot.item_id,
        item_code=record.lot.item.code,
        item_name=record.lot.item.name,
        warehouse_id=record.warehouse_id,
        warehouse_name=record.warehouse.name,
        unit_id=record.unit_id,
        unit_name=record.unit.name,
        quantity=row["quantity"],
        allocated_qty=row["allocated_qty"],
        available_qty=row["available_qty"],
        last_updated_at=record.last_updated_at,
    )


def _scoped(scope: str, scope_id: int, scope_label: str, rows: list[dict]) -> schemas.ScopedInventoryResponse:
    return schemas.ScopedInventoryResponse(
        scope=scope,
        scope_id=scope_id,
        scope_label=scope_label,
        records=[_to_response(row) for row in rows],
        totals=[schemas.UnitTotalResponse(**total) for total in unit_totals(rows)],
    )


@router.get("", response_model=List[schemas.InventoryRecordResponse])
def list_inventory_endpoint(
    item_id: Optional[int] = None,
    lot_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    rows = list_inventory(db, item_id=item_id, lot_id=lot_id, warehouse_id=warehouse_id)
    return [_to_response(row) for row in rows]


@router.get("/quantity", response_model=schemas.LedgerQuantityResponse)
def get_ledger_quantity(lot_id: int, warehouse_id: int, unit_id: int, db: Session = Depends(get_db)):
    key = LedgerKey(lot_id, warehouse_id, unit_id)
    return schemas.LedgerQuantityResponse(
        lot_id=lot_id,
        warehouse_id=warehouse_id,
        unit_id=unit_id,
        quantity=get_quantity(db, key),
        allocated_qty=other_allocations_qty(db, key),
        available_qty=get_available_qty(db, key),
    )


@router.get("/lot/{lot_id}", response_model=schemas.ScopedInventoryResponse)
def get_lot_inventory(lot_id: int, db: Session = Depends(get_db)):
    try:
        lot = get_lot(db, lot_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _scoped("lot", lot.id, lot.lot_number, list_inventory(db, lot_id=lot.id))


@router.get("/warehouse/{warehouse_id}", response_model=schemas.ScopedInventoryResponse)
def get_warehouse_inventory(warehouse_id: int, db: Session = Depends(get_db)):
    try:
        warehouse = get_warehouse(db, warehouse_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _scoped("warehouse", warehouse.id, warehouse.name, list_inventory(db, warehouse_id=warehouse.id))


@router.get("/item/{item_id}", response_model=schemas.ScopedInventoryResponse)
def get_item_inventory(item_id: int, db: Session = Depends(get_db)):
    try:
        item = get_item(db, item_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _scoped("item", item.id, item.name, list_inventory(db, item_id=item.id))
