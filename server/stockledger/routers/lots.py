from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory.transaction import run_in_transaction
from stockledger.master import schemas
from stockledger.master.service import create_lot, delete_lot, get_lot, list_lots, update_lot
from stockledger.models import Lot


router = APIRouter(prefix="/api/lots", tags=["lots"])


def _to_response(lot: Lot) -> schemas.LotResponse:
    return schemas.LotResponse(
        id=lot.id,
        lot_number=lot.lot_number,
        item_id=lot.item_id,
        item_code=lot.item.code if lot.item else None,
        item_name=lot.item.name if lot.item else None,
        production_date=lot.production_date,
        created_at=lot.created_at,
    )


@router.get("", response_model=List[schemas.LotResponse])
def list_lots_endpoint(item_id: Optional[int] = None, db: Session = Depends(get_db)):
    return [_to_response(lot) for lot in list_lots(db, item_id=item_id)]


@router.post("", response_model=schemas.LotResponse, status_code=status.HTTP_201_CREATED)
def create_lot_endpoint(payload: schemas.LotCreate, db: Session = Depends(get_db)):
    try:
        lot = run_in_transaction(db, create_lot, payload.model_dump())
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _to_response(lot)


@router.get("/{lot_id}", response_model=schemas.LotResponse)
def get_lot_endpoint(lot_id: int, db: Session = Depends(get_db)):
    try:
        return _to_response(get_lot(db, lot_id))
    except StockLedgerError as exc:
        raise to_http_exception(exc)


@router.put("/{lot_id}", response_model=schemas.LotResponse)
def update_lot_endpoint(lot_id: int, payload: schemas.LotUpdate, db: Session = Depends(get_db)):
    try:
        lot = run_in_transaction(
            db,
            lambda session: update_lot(session, get_lot(session, lot_id), payload.model_dump(exclude_unset=True)),
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _to_response(lot)


@router.delete("/{lot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lot_endpoint(lot_id: int, db: Session = Depends(get_db)):
    try:
        run_in_transaction(db, lambda session: delete_lot(session, get_lot(session, lot_id)))
    except StockLedgerError as exc:
        raise to_http_exception(exc)
