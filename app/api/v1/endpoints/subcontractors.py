from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Any, Optional
import logging

from app.schemas.common import Page
from app.schemas.evaluation import (
    Subcontractor, SubcontractorCreate, SubcontractorUpdate, SubcontractorListItem
)
from app.db.models.evaluation import Subcontractor as DBSubcontractor, Evaluation as DBEvaluation
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils.pagination import paginate, search_filter

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_subcontractor_or_404(db: Session, subcontractor_id: int) -> DBSubcontractor:
    subcontractor = db.query(DBSubcontractor).filter(DBSubcontractor.id == subcontractor_id).first()
    if not subcontractor:
        raise HTTPException(status_code=404, detail="Subcontractor not found")
    return subcontractor


def _code_taken(db: Session, code: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(DBSubcontractor).filter(DBSubcontractor.subcontractor_code == code)
    if exclude_id is not None:
        query = query.filter(DBSubcontractor.id != exclude_id)
    return query.first() is not None


@router.get("", response_model=Page[SubcontractorListItem])
def list_subcontractors(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    show_inactive: bool = False,
) -> Any:
    query = db.query(DBSubcontractor)
    if not show_inactive:
        query = query.filter(DBSubcontractor.is_active == True)
    condition = search_filter(search, [
        DBSubcontractor.subcontractor_code, DBSubcontractor.subcontractor_name,
        DBSubcontractor.contact_person, DBSubcontractor.phone,
    ])
    if condition is not None:
        query = query.filter(condition)

    subcontractors, pagination = paginate(
        query.order_by(DBSubcontractor.subcontractor_code, DBSubcontractor.id), page, limit
    )

    # evaluations reference contractors by name
    names = [s.subcontractor_name for s in subcontractors]
    referenced = set()
    if names:
        rows = db.query(DBEvaluation.contractor_name).filter(
            DBEvaluation.contractor_name.in_(names)
        ).distinct().all()
        referenced = {row[0] for row in rows}

    data = []
    for subcontractor in subcontractors:
        item = SubcontractorListItem.model_validate(subcontractor)
        item.has_references = subcontractor.subcontractor_name in referenced
        data.append(item)
    return {"data": data, "pagination": pagination}


@router.get("/options")
def get_subcontractor_options(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    search: Optional[str] = None,
    transport_type: Optional[str] = Query(None, pattern="^(domestic|international)$"),
) -> Any:
    """Active subcontractors for dropdowns, ordered by name"""
    query = db.query(DBSubcontractor).filter(DBSubcontractor.is_active == True)
    condition = search_filter(search, [DBSubcontractor.subcontractor_code, DBSubcontractor.subcontractor_name])
    if condition is not None:
        query = query.filter(condition)
    if transport_type:
        query = query.filter(DBSubcontractor.transport_type == transport_type)

    subcontractors, pagination = paginate(
        query.order_by(DBSubcontractor.subcontractor_name, DBSubcontractor.id), page, limit
    )
    return {
        "data": [
            {
                "code": s.subcontractor_code,
                "name": s.subcontractor_name,
                "full_name": f"{s.subcontractor_code} - {s.subcontractor_name}",
                "transport_type": s.transport_type,
            }
            for s in subcontractors
        ],
        "pagination": pagination,
    }


@router.post("", response_model=Subcontractor, status_code=status.HTTP_201_CREATED)
def create_subcontractor(
    subcontractor_in: SubcontractorCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    if _code_taken(db, subcontractor_in.subcontractor_code):
        raise HTTPException(
            status_code=409,
            detail=f"Subcontractor code {subcontractor_in.subcontractor_code} already exists"
        )

    user = actor_name(current_user)
    db_subcontractor = DBSubcontractor(**subcontractor_in.model_dump(), created_by=user, updated_by=user)
    try:
        db.add(db_subcontractor)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error creating subcontractor: {str(e)}")
        raise integrity_error(e, "Subcontractor code already exists")
    db.refresh(db_subcontractor)
    return db_subcontractor


@router.get("/{subcontractor_id}", response_model=Subcontractor)
def get_subcontractor(
    subcontractor_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_subcontractor_or_404(db, subcontractor_id)


@router.put("/{subcontractor_id}", response_model=Subcontractor)
def update_subcontractor(
    subcontractor_id: int,
    subcontractor_in: SubcontractorUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_subcontractor = _get_subcontractor_or_404(db, subcontractor_id)
    update_data = subcontractor_in.model_dump(exclude_unset=True)

    new_code = update_data.get("subcontractor_code")
    if new_code and new_code != db_subcontractor.subcontractor_code and _code_taken(db, new_code, subcontractor_id):
        raise HTTPException(status_code=409, detail=f"Subcontractor code {new_code} already exists")

    for field, value in update_data.items():
        setattr(db_subcontractor, field, value)
    db_subcontractor.updated_by = actor_name(current_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating subcontractor {subcontractor_id}: {str(e)}")
        raise integrity_error(e, "Subcontractor code already exists")
    db.refresh(db_subcontractor)
    return db_subcontractor


@router.delete("/{subcontractor_id}")
def delete_subcontractor(
    subcontractor_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_subcontractor = _get_subcontractor_or_404(db, subcontractor_id)
    code = db_subcontractor.subcontractor_code
    db.delete(db_subcontractor)
    db.commit()
    logger.info(f"Subcontractor {code} deleted by {actor_name(current_user)}")
    return {"message": "Subcontractor deleted successfully", "id": subcontractor_id}
