from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, selectinload

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.inventory.transaction import run_in_transaction
from stockledger.master import schemas
from stockledger.master.service import create_item, delete_item, get_item, update_item
from stockledger.models import Item, ItemUnit


router = APIRouter(prefix="/api/items", tags=["items"])


def _to_response(item: Item) -> schemas.ItemResponse:
    return schemas.ItemResponse(
        id=item.id,
        code=item.code,
        name=item.name,
        description=item.description,
        item_type=item.item_type,
        units=[
            schemas.ItemUnitResponse(
                unit_id=link.unit_id,
                unit_name=link.unit.name,
                conversion_rate=link.conversion_rate,
                is_default=link.is_default,
            )
            for link in item.item_units
        ],
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


@router.get("", response_model=List[schemas.ItemResponse])
def list_items(
    search: Optional[str] = None,
    item_type: Optional[schemas.ItemType] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Item).options(selectinload(Item.item_units).selectinload(ItemUnit.unit))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(Item.name.ilike(like) | Item.code.ilike(like))
    if item_type:
        query = query.filter(Item.item_type == item_type)
    return [_to_response(item) for item in query.order_by(Item.name).all()]


@router.post("", response_model=schemas.ItemResponse, status_code=status.HTTP_201_CREATED)
def create_item_endpoint(payload: schemas.ItemCreate, db: Session = Depends(get_db)):
    def _create(session: Session) -> schemas.ItemResponse:
        item = create_item(session, payload.model_dump())
        session.flush()
        return _to_response(item)

    try:
        return run_in_transaction(db, _create)
    except StockLedgerError as exc:
        raise to_http_exception(exc)


@router.get("/{item_id}", response_model=schemas.ItemResponse)
def get_item_endpoint(item_id: int, db: Session = Depends(get_db)):
    try:
        return _to_response(get_item(db, item_id))
    except StockLedgerError as exc:
        raise to_http_exception(exc)


@router.put("/{item_id}", response_model=schemas.ItemResponse)
def update_item_endpoint(item_id: int, payload: schemas.ItemUpdate, db: Session = Depends(get_db)):
    def _update(session: Session) -> schemas.ItemResponse:
        item = update_item(session, get_item(session, item_id), payload.model_dump(exclude_unset=True))
        session.flush()
        return _to_response(item)

    try:
        return run_in_transaction(db, _update)
    except StockLedgerError as exc:
        raise to_http_exception(exc)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item_endpoint(item_id: int, db: Session = Depends(get_db)):
    try:
        run_in_transaction(db, lambda session: delete_item(session, get_item(session, item_id)))
    except StockLedgerError as exc:
        raise to_http_exception(exc)
