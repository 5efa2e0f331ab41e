from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import Any, Optional
import logging

from app.schemas.common import Page, StatusAction
from app.schemas.item import Item, ItemCreate, ItemUpdate, ItemListItem
from app.db.models.item import Item as DBItem
from app.db.models.trip import TripItem as DBTripItem
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils.pagination import paginate, search_filter

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_item_or_404(db: Session, item_id: int) -> DBItem:
    item = db.query(DBItem).filter(DBItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.get("", response_model=Page[ItemListItem])
def list_items(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Any:
    query = db.query(DBItem)
    condition = search_filter(search, [DBItem.pt_part, DBItem.pt_desc1, DBItem.pt_desc2, DBItem.pt_um])
    if condition is not None:
        query = query.filter(condition)
    if is_active is not None:
        query = query.filter(DBItem.is_active == is_active)

    items, pagination = paginate(query.order_by(DBItem.created_at.desc(), DBItem.id.desc()), page, limit)

    counts = {}
    if items:
        rows = db.query(DBTripItem.item_id, func.count(DBTripItem.id)).filter(
            DBTripItem.item_id.in_([i.id for i in items])
        ).group_by(DBTripItem.item_id).all()
        counts = dict(rows)

    data = []
    for item in items:
        row = ItemListItem.model_validate(item)
        row.trip_item_count = counts.get(item.id, 0)
        data.append(row)
    return {"data": data, "pagination": pagination}


@router.post("", response_model=Item, status_code=status.HTTP_201_CREATED)
def create_item(
    item_in: ItemCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    if db.query(DBItem).filter(DBItem.pt_part == item_in.pt_part).first():
        raise HTTPException(status_code=409, detail=f"Part {item_in.pt_part} already exists")

    user = actor_name(current_user)
    db_item = DBItem(**item_in.model_dump(), created_by=user, updated_by=user)
    try:
        db.add(db_item)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error creating item: {str(e)}")
        raise integrity_error(e, f"Part {item_in.pt_part} already exists")
    db.refresh(db_item)
    return db_item


@router.get("/{item_id}", response_model=Item)
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_item_or_404(db, item_id)


@router.put("/{item_id}", response_model=Item)
def update_item(
    item_id: int,
    item_in: ItemUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_item = _get_item_or_404(db, item_id)
    update_data = item_in.model_dump(exclude_unset=True)

    new_part = update_data.get("pt_part")
    if new_part and new_part != db_item.pt_part:
        if db.query(DBItem).filter(DBItem.pt_part == new_part, DBItem.id != item_id).first():
            raise HTTPException(status_code=409, detail=f"Part {new_part} already exists")

    for field, value in update_data.items():
        setattr(db_item, field, value)
    db_item.updated_by = actor_name(current_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating item {item_id}: {str(e)}")
        raise integrity_error(e, "Part number already exists")
    db.refresh(db_item)
    return db_item


@router.patch("/{item_id}", response_model=Item)
def patch_item(
    item_id: int,
    body: StatusAction,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    if body.action != "toggle-status":
        raise HTTPException(status_code=400, detail=f"Unsupported action: {body.action}")
    db_item = _get_item_or_404(db, item_id)
    db_item.is_active = not db_item.is_active
    db_item.updated_by = actor_name(current_user)
    db.commit()
    db.refresh(db_item)
    return db_item


@router.delete("/{item_id}")
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Delete an item that no trip uses"""
    db_item = _get_item_or_404(db, item_id)
    usage = db.query(func.count(DBTripItem.id)).filter(DBTripItem.item_id == item_id).scalar() or 0
    if usage:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete part {db_item.pt_part}: used in {usage} trip item(s). "
                   "Deactivate the item instead."
        )

    db.delete(db_item)
    db.commit()
    return {"message": "Item deleted successfully", "id": item_id}
