from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import func
from typing import Any, List, Optional, Set
import logging

from app.schemas.common import Page, StatusAction
from app.schemas.customer import Customer, CustomerCreate, CustomerUpdate, CustomerListItem
from app.db.models.customer import Customer as DBCustomer
from app.db.models.trip import TripRecord as DBTripRecord
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils import geo
from app.utils.pagination import paginate, search_filter, apply_sort

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_FIELDS = ["cm_code", "cm_name", "cm_mileage", "created_at", "updated_at"]


def referenced_customer_ids(db: Session, customer_ids: List[int]) -> Set[int]:
    if not customer_ids:
        return set()
    rows = db.query(DBTripRecord.customer_id).filter(
        DBTripRecord.customer_id.in_(customer_ids)
    ).distinct().all()
    return {row[0] for row in rows}


def count_customer_trips(db: Session, customer_id: int) -> int:
    return db.query(func.count(DBTripRecord.id)).filter(DBTripRecord.customer_id == customer_id).scalar() or 0


def _get_customer_or_404(db: Session, customer_id: int) -> DBCustomer:
    customer = db.query(DBCustomer).filter(DBCustomer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("", response_model=Page[CustomerListItem])
def list_customers(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Any:
    """List customers with search, active filter and sorting"""
    query = db.query(DBCustomer)
    condition = search_filter(search, [
        DBCustomer.cm_code, DBCustomer.cm_name, DBCustomer.cm_address,
        DBCustomer.cm_phone, DBCustomer.cm_salesname, DBCustomer.cm_remark,
    ])
    if condition is not None:
        query = query.filter(condition)
    if is_active is not None:
        query = query.filter(DBCustomer.is_active == is_active)

    query = apply_sort(query, DBCustomer, sort_by, sort_order, SORTABLE_FIELDS, "created_at")
    customers, pagination = paginate(query, page, limit)

    referenced = referenced_customer_ids(db, [c.id for c in customers])
    data = []
    for customer in customers:
        item = CustomerListItem.model_validate(customer)
        item.has_references = customer.id in referenced
        data.append(item)
    return {"data": data, "pagination": pagination}


@router.get("/options")
def get_customer_options(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
) -> Any:
    """Active customers for dropdowns"""
    query = db.query(DBCustomer).filter(DBCustomer.is_active == True)
    condition = search_filter(search, [DBCustomer.cm_code, DBCustomer.cm_name])
    if condition is not None:
        query = query.filter(condition)
    customers = query.order_by(DBCustomer.cm_code).limit(limit).all()
    return [
        {
            "id": c.id,
            "cm_code": c.cm_code,
            "cm_name": c.cm_name,
            "cm_mileage": c.cm_mileage,
        }
        for c in customers
    ]


@router.post("", response_model=Customer, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_in: CustomerCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Create a customer; the code must be unique"""
    try:
        existing = db.query(DBCustomer).filter(DBCustomer.cm_code == customer_in.cm_code).first()
        if existing:
            raise HTTPException(status_code=409, detail=f"Customer code {customer_in.cm_code} already exists")

        user = actor_name(current_user)
        db_customer = DBCustomer(**customer_in.model_dump(), created_by=user, updated_by=user)
        db.add(db_customer)
        db.commit()
        db.refresh(db_customer)
        return db_customer
    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error creating customer: {str(e)}")
        raise integrity_error(e, f"Customer code {customer_in.cm_code} already exists")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating customer: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create customer")


@router.get("/{customer_id}", response_model=Customer)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_customer_or_404(db, customer_id)


@router.put("/{customer_id}", response_model=Customer)
def update_customer(
    customer_id: int,
    customer_in: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Update a customer; a changed code is checked against other customers"""
    db_customer = _get_customer_or_404(db, customer_id)

    update_data = customer_in.model_dump(exclude_unset=True)
    new_code = update_data.get("cm_code")
    if new_code and new_code != db_customer.cm_code:
        duplicate = db.query(DBCustomer).filter(
            DBCustomer.cm_code == new_code, DBCustomer.id != customer_id
        ).first()
        if duplicate:
            raise HTTPException(status_code=409, detail=f"Customer code {new_code} already exists")

    for field, value in update_data.items():
        setattr(db_customer, field, value)
    db_customer.updated_by = actor_name(current_user)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating customer {customer_id}: {str(e)}")
        raise integrity_error(e, "Customer code already exists")
    db.refresh(db_customer)
    return db_customer


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Delete a customer that no trip record references"""
    db_customer = _get_customer_or_404(db, customer_id)

    trip_count = count_customer_trips(db, customer_id)
    if trip_count > 0:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete customer {db_customer.cm_code}: used by {trip_count} trip record(s). "
                   "Deactivate the customer instead."
        )

    code = db_customer.cm_code
    db.delete(db_customer)
    db.commit()
    logger.info(f"Customer {code} deleted by {actor_name(current_user)}")
    return {"message": "Customer deleted successfully", "id": customer_id}


@router.patch("/{customer_id}", response_model=Customer)
def patch_customer(
    customer_id: int,
    body: StatusAction,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Toggle the active flag"""
    if body.action != "toggle-status":
        raise HTTPException(status_code=400, detail=f"Unsupported action: {body.action}")

    db_customer = _get_customer_or_404(db, customer_id)
    db_customer.is_active = not db_customer.is_active
    db_customer.updated_by = actor_name(current_user)
    db.commit()
    db.refresh(db_customer)
    return db_customer


@router.post("/{customer_id}/calculate-distance", response_model=Customer)
def calculate_customer_distance(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Geocode the customer if needed and store the driving distance from the depot"""
    db_customer = _get_customer_or_404(db, customer_id)
    if not geo.is_enabled():
        raise HTTPException(status_code=503, detail="Google Maps API key is not configured")

    if db_customer.lat is None or db_customer.long is None:
        location = geo.geocode_address(db_customer.cm_address or "")
        if not location:
            raise HTTPException(status_code=422, detail="Could not geocode the customer address")
        db_customer.lat = location["lat"]
        db_customer.long = location["lng"]

    distance = geo.distance_from_company(db_customer.lat, db_customer.long)
    if not distance:
        raise HTTPException(status_code=502, detail="Distance lookup failed")

    db_customer.cm_mileage = distance["distance_km"]
    db_customer.updated_by = actor_name(current_user)
    db.commit()
    db.refresh(db_customer)
    return db_customer
