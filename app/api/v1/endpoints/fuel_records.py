from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, contains_eager
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Optional
import logging

from app.schemas.common import Page
from app.schemas.trip import FuelRecord, FuelRecordCreate, FuelRecordUpdate
from app.db.models.trip import FuelRecord as DBFuelRecord
from app.db.models.logistics import Vehicle as DBVehicle
from app.api.deps import get_db, get_current_user, actor_name
from app.utils.dates import parse_report_date
from app.utils.pagination import paginate, search_filter, apply_sort

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_FIELDS = ["fuel_date", "fuel_amount", "odometer", "created_at"]


def _fuel_query(db: Session):
    return db.query(DBFuelRecord).join(
        DBVehicle, DBFuelRecord.vehicle_id == DBVehicle.id
    ).options(contains_eager(DBFuelRecord.vehicle))


def _get_fuel_record_or_404(db: Session, record_id: int) -> DBFuelRecord:
    record = _fuel_query(db).filter(DBFuelRecord.id == record_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="Fuel record not found")
    return record


def _require_active_vehicle(db: Session, vehicle_id: int) -> None:
    vehicle = db.query(DBVehicle).filter(DBVehicle.id == vehicle_id).first()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    if not vehicle.is_active:
        raise HTTPException(status_code=400, detail=f"Vehicle {vehicle.license_plate} is inactive")


@router.get("", response_model=Page[FuelRecord])
def list_fuel_records(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    vehicle_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sort_by: str = "fuel_date",
    sort_order: str = "desc",
) -> Any:
    query = _fuel_query(db)
    condition = search_filter(search, [DBFuelRecord.remark, DBFuelRecord.driver_name, DBVehicle.license_plate])
    if condition is not None:
        query = query.filter(condition)
    if vehicle_id:
        query = query.filter(DBFuelRecord.vehicle_id == vehicle_id)

    try:
        start = parse_report_date(start_date)
        end = parse_report_date(end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if start:
        query = query.filter(DBFuelRecord.fuel_date >= start)
    if end:
        query = query.filter(DBFuelRecord.fuel_date <= end)

    query = apply_sort(query, DBFuelRecord, sort_by, sort_order, SORTABLE_FIELDS, "fuel_date")
    records, pagination = paginate(query, page, limit)
    return {"data": records, "pagination": pagination}


@router.post("", response_model=FuelRecord, status_code=status.HTTP_201_CREATED)
def create_fuel_record(
    record_in: FuelRecordCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Record a refuel for an active vehicle"""
    _require_active_vehicle(db, record_in.vehicle_id)

    user = actor_name(current_user)
    db_record = DBFuelRecord(**record_in.model_dump(), created_by=user, updated_by=user)
    try:
        db.add(db_record)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating fuel record: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create fuel record")
    return _get_fuel_record_or_404(db, db_record.id)


@router.get("/{record_id}", response_model=FuelRecord)
def get_fuel_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_fuel_record_or_404(db, record_id)


@router.put("/{record_id}", response_model=FuelRecord)
def update_fuel_record(
    record_id: int,
    record_in: FuelRecordUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_record = _get_fuel_record_or_404(db, record_id)
    update_data = record_in.model_dump(exclude_unset=True)
    if "vehicle_id" in update_data and update_data["vehicle_id"] != db_record.vehicle_id:
        _require_active_vehicle(db, update_data["vehicle_id"])

    for field, value in update_data.items():
        setattr(db_record, field, value)
    db_record.updated_by = actor_name(current_user)
    db.commit()
    db.expire_all()
    return _get_fuel_record_or_404(db, record_id)


@router.delete("/{record_id}")
def delete_fuel_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_record = db.query(DBFuelRecord).filter(DBFuelRecord.id == record_id).first()
    if not db_record:
        raise HTTPException(status_code=404, detail="Fuel record not found")
    db.delete(db_record)
    db.commit()
    return {"message": "Fuel record deleted successfully", "id": record_id}
