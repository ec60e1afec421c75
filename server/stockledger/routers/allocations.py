from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory import schemas
from stockledger.inventory.ledger import LedgerKey, get_quantity
from stockledger.inventory.queries import list_allocations
from stockledger.inventory.reservations import other_allocations_qty
from stockledger.inventory.service import create_allocation, delete_allocation, get_allocation, update_allocation
from stockledger.inventory.transaction import run_in_transaction
from stockledger.models import Allocation


router = APIRouter(prefix="/api/allocations", tags=["allocations"])


def _to_response(allocation: Allocation) -> schemas.AllocationResponse:
    return schemas.AllocationResponse(
        id=allocation.id,
        lot_id=allocation.lot_id,
        lot_number=allocation.lot.lot_number,
        item_id=allocation.lot.item_id,
        item_name=allocation.lot.item.name,
        warehouse_id=allocation.warehouse_id,
        warehouse_name=allocation.warehouse.name,
        unit_id=allocation.unit_id,
        unit_name=allocation.unit.name,
        quantity=allocation.quantity,
        allocation_date=allocation.allocation_date,
        reference_number=allocation.reference_number,
    )


@router.get("", response_model=List[schemas.AllocationResponse])
def list_allocations_endpoint(
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    lot_id: Optional[int] = None,
    reference_number: Optional[str] = None,
    db: Session = Depends(get_db),
):
    rows = list_allocations(
        db,
        item_id=item_id,
        warehouse_id=warehouse_id,
        lot_id=lot_id,
        reference_number=reference_number,
    )
    return [_to_response(allocation) for allocation in rows]


@router.post("", response_model=schemas.AllocationResponse, status_code=status.HTTP_201_CREATED)
def create_allocation_endpoint(payload: schemas.AllocationCreate, db: Session = Depends(get_db)):
    try:
        allocation = run_in_transaction(
            db,
            create_allocation,
            lot_id=payload.lot_id,
            warehouse_id=payload.warehouse_id,
            unit_id=payload.unit_id,
            quantity=payload.quantity,
            allocation_date=payload.allocation_date,
            reference_number=payload.reference_number,
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _to_response(allocation)


@router.get("/{allocation_id}", response_model=schemas.AllocationDetailResponse)
def get_allocation_endpoint(allocation_id: int, db: Session = Depends(get_db)):
    try:
        allocation = get_allocation(db, allocation_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)

    key = LedgerKey(allocation.lot_id, allocation.warehouse_id, allocation.unit_id)
    inventory_qty = get_quantity(db, key)
    other_qty = other_allocations_qty(db, key, exclude_allocation_id=allocation.id)
    return schemas.AllocationDetailResponse(
        **_to_response(allocation).model_dump(),
        inventory_qty=inventory_qty,
        other_allocations_qty=other_qty,
        available_qty=inventory_qty - other_qty,
    )


@router.put("/{allocation_id}", response_model=schemas.AllocationResponse)
@router.patch("/{allocation_id}", response_model=schemas.AllocationResponse)
def update_allocation_endpoint(allocation_id: int, payload: schemas.AllocationUpdate, db: Session = Depends(get_db)):
    try:
        allocation = run_in_transaction(
            db,
            update_allocation,
            allocation_id,
            quantity=payload.quantity,
            allocation_date=payload.allocation_date,
            reference_number=payload.reference_number,
        )
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return _to_response(allocation)


def _release(db: Session, allocation_id: int) -> schemas.AllocationResponse:
    return _to_response(delete_allocation(db, allocation_id))


@router.delete("/{allocation_id}", response_model=schemas.AllocationDeleteResponse)
def delete_allocation_endpoint(allocation_id: int, db: Session = Depends(get_db)):
    try:
        released = run_in_transaction(db, _release, allocation_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    return schemas.AllocationDeleteResponse(message="Allocation released.", deleted_allocation=released)
