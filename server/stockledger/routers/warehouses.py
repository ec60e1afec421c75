from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory.transaction import run_in_transaction
from stockledger.master import schemas
from stockledger.master.service import create_warehouse, delete_warehouse, get_warehouse, update_warehouse
from stockledger.models import Warehouse


router = APIRouter(prefix="/api/warehouses", tags=["warehouses"])


@router.get("", response_model=List[schemas.WarehouseResponse])
def list_warehouses(search: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(Warehouse)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(Warehouse.name.ilike(like) | Warehouse.code.ilike(like))
    return query.order_by(Warehouse.name).all()


@router.post("", response_model=schemas.WarehouseResponse, status_code=status.HTTP_201_CREATED)
def create_warehouse_endpoint(payload: schemas.WarehouseCreate, db: Session = Depends(get_db)):
    try:
        warehouse = run_in_transaction(db, create_warehouse, payload.model_dump())
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    db.refresh(warehouse)
    return warehouse


@router.get("/{warehouse_id}", response_model=schemas.WarehouseResponse)
def get_warehouse_endpoint(warehouse_id: int, db: Session = Depends(get_db)):
    try:
        return get_warehouse(db, warehouse_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)


@router.put("/{warehouse_id}", response_model=schemas.WarehouseResponse)
def update_warehouse_endpoint(warehouse_id: int, payload: schemas.WarehouseUpdate, db: Session = Depends(get_db)):
    try:
        warehouse = run_in_transaction(
            db,
            lambda session: update_warehouse(
                session, get_warehouse(session, warehouse_id), payload.model_dump(exclude_unset=True)
            ),
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    db.refresh(warehouse)
    return warehouse


@router.delete("/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warehouse_endpoint(warehouse_id: int, db: Session = Depends(get_db)):
    try:
        run_in_transaction(db, lambda session: delete_warehouse(session, get_warehouse(session, warehouse_id)))
    except StockLedgerError as exc:
        raise to_http_exception(exc)
