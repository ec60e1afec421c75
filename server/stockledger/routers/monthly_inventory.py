from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory.transaction import run_in_transaction, use_snapshot_isolation
from stockledger.models import MonthlyInventory
from stockledger.monthly import schemas
from stockledger.monthly.service import compute_monthly_rollup, group_snapshots_by_item, list_snapshots


router = APIRouter(prefix="/api/monthly-inventory", tags=["monthly-inventory"])


def to_snapshot_response(row: MonthlyInventory) -> schemas.MonthlyInventoryResponse:
    return schemas.MonthlyInventoryResponse(
        id=row.id,
        month=row.month,
        item_id=row.item_id,
        item_code=row.item.code,
        item_name=row.item.name,
        lot_id=row.lot_id,
        lot_number=row.lot.lot_number,
        warehouse_id=row.warehouse_id,
        warehouse_name=row.warehouse.name,
        unit_id=row.unit_id,
        unit_name=row.unit.name,
        opening_quantity=row.opening_quantity,
        incoming_quantity=row.incoming_quantity,
        outgoing_quantity=row.outgoing_quantity,
        closing_quantity=row.closing_quantity,
        created_at=row.created_at,
    )


@router.get("", response_model=List[schemas.MonthlyInventoryResponse])
def list_monthly_inventory(
    year: Optional[int] = None,
    month: Optional[int] = None,
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    try:
        rows = list_snapshots(db, year=year, month=month, item_id=item_id, warehouse_id=warehouse_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return [to_snapshot_response(row) for row in rows]


@router.get("/{year}/{month}", response_model=schemas.MonthlyGroupedResponse)
def get_monthly_inventory(year: int, month: int, db: Session = Depends(get_db)):
    try:
        rows = list_snapshots(db, year=year, month=month)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return schemas.MonthlyGroupedResponse(year=year, month=month, data=group_snapshots_by_item(rows))


def _rollup(db: Session, year: int, month: int) -> schemas.MonthlyRollupResponse:
    use_snapshot_isolation(db)
    result = compute_monthly_rollup(db, year, month)
    return schemas.MonthlyRollupResponse(
        year=result["year"],
        month=result["month"],
        count=result["count"],
        data=[to_snapshot_response(row) for row in result["rows"]],
    )


@router.post("/calculate/{year}/{month}", response_model=schemas.MonthlyRollupResponse)
def calculate_monthly_inventory(year: int, month: int, db: Session = Depends(get_db)):
    try:
        return run_in_transaction(db, _rollup, year, month)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
