from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory import schemas
from stockledger.inventory.journal import query_movements
from stockledger.inventory.service import record_inbound, record_outbound
from stockledger.inventory.transaction import run_in_transaction
from stockledger.models import InventoryTransaction, Lot


router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _to_response(movement: InventoryTransaction) -> schemas.MovementResponse:
    return schemas.MovementResponse(
        id=movement.id,
        transaction_type=movement.transaction_type,
        lot_id=movement.lot_id,
        lot_number=movement.lot.lot_number,
        item_id=movement.lot.item_id,
        item_code=movement.lot.item.code,
        item_name=movement.lot.item.name,
        warehouse_id=movement.warehouse_id,
        warehouse_name=movement.warehouse.name,
        unit_id=movement.unit_id,
        unit_name=movement.unit.name,
        quantity=movement.quantity,
        transaction_date=movement.transaction_date,
        reference_number=movement.reference_number,
        barcode_data=movement.barcode_data,
        created_at=movement.created_at,
    )


@router.get("", response_model=List[schemas.MovementResponse])
def list_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    item_id: Optional[int] = None,
    lot_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    unit_id: Optional[int] = None,
    transaction_type: Optional[schemas.TransactionType] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = query_movements(
        db,
        start_date=start_date,
        end_date=end_date,
        item_id=item_id,
        lot_id=lot_id,
        warehouse_id=warehouse_id,
        unit_id=unit_id,
        direction=transaction_type,
    )
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return [_to_response(movement) for movement in query]


@router.get("/{transaction_id}", response_model=schemas.MovementResponse)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    movement = (
        db.query(InventoryTransaction)
        .options(
            selectinload(InventoryTransaction.lot).selectinload(Lot.item),
            selectinload(InventoryTransaction.warehouse),
            selectinload(InventoryTransaction.unit),
        )
        .filter(InventoryTransaction.id == transaction_id)
        .first()
    )
    if not movement:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Transaction not found."})
    return _to_response(movement)


@router.post("/inbound", response_model=schemas.MovementResponse, status_code=status.HTTP_201_CREATED)
def create_inbound(payload: schemas.InboundCreate, db: Session = Depends(get_db)):
    try:
        movement = run_in_transaction(
            db,
            record_inbound,
            lot_id=payload.lot_id,
            warehouse_id=payload.warehouse_id,
            unit_id=payload.unit_id,
            quantity=payload.quantity,
            occurred_at=payload.transaction_date,
            reference_number=payload.reference_number,
            barcode_data=payload.barcode_data,
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _to_response(movement)


@router.post("/outbound", response_model=schemas.MovementResponse, status_code=status.HTTP_201_CREATED)
def create_outbound(payload: schemas.OutboundCreate, db: Session = Depends(get_db)):
    try:
        movement = run_in_transaction(
            db,
            record_outbound,
            lot_id=payload.lot_id,
            warehouse_id=payload.warehouse_id,
            unit_id=payload.unit_id,
            quantity=payload.quantity,
            occurred_at=payload.transaction_date,
            reference_number=payload.reference_number,
            barcode_data=payload.barcode_data,
            allocation_id=payload.allocation_id,
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _to_response(movement)
