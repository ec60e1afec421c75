from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory.transaction import run_in_transaction
from stockledger.master import schemas
from stockledger.master.service import create_unit, delete_unit, get_unit, update_unit
from stockledger.models import Unit


router = APIRouter(prefix="/api/units", tags=["units"])


@router.get("", response_model=List[schemas.UnitResponse])
def list_units(db: Session = Depends(get_db)):
    return db.query(Unit).order_by(Unit.name).all()


@router.post("", response_model=schemas.UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit_endpoint(payload: schemas.UnitCreate, db: Session = Depends(get_db)):
    try:
        unit = run_in_transaction(db, create_unit, payload.model_dump())
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    db.refresh(unit)
    return unit


@router.get("/{unit_id}", response_model=schemas.UnitResponse)
def get_unit_endpoint(unit_id: int, db: Session = Depends(get_db)):
    try:
        return get_unit(db, unit_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)


@router.put("/{unit_id}", response_model=schemas.UnitResponse)
def update_unit_endpoint(unit_id: int, payload: schemas.UnitUpdate, db: Session = Depends(get_db)):
    try:
        unit = run_in_transaction(
            db,
            lambda session: update_unit(session, get_unit(session, unit_id), payload.model_dump(exclude_unset=True)),
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    db.refresh(unit)
    return unit


@router.delete("/{unit_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_unit_endpoint(unit_id: int, db: Session = Depends(get_db)):
    try:
        run_in_transaction(db, lambda session: delete_unit(session, get_unit(session, unit_id)))
    except StockLedgerError as exc:
        raise to_http_exception(exc)
