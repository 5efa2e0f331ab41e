from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func, or_
from typing import Any, Dict, List, Optional
import logging

from app.schemas.common import Page, StatusAction
from app.schemas.logistics import Driver, DriverCreate, DriverUpdate, Vehicle
from app.db.models.logistics import Driver as DBDriver, Vehicle as DBVehicle
from app.db.models.trip import TripRecord as DBTripRecord, FuelRecord as DBFuelRecord
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils import image_storage
from app.utils.pagination import paginate, search_filter

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_driver_or_404(db: Session, driver_id: int) -> DBDriver:
    driver = db.query(DBDriver).filter(DBDriver.id == driver_id).first()
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


def driver_usage(db: Session, driver: DBDriver) -> Dict[str, Any]:
    """Where a driver is referenced: vehicles by id, trips and fuel records by license"""
    vehicle_count = db.query(func.count(DBVehicle.id)).filter(
        or_(DBVehicle.main_driver_id == driver.id, DBVehicle.backup_driver_id == driver.id)
    ).scalar() or 0
    trip_count = db.query(func.count(DBTripRecord.id)).filter(
        DBTripRecord.driver_license == driver.driver_license
    ).scalar() or 0
    fuel_count = db.query(func.count(DBFuelRecord.id)).filter(
        DBFuelRecord.driver_license == driver.driver_license
    ).scalar() or 0
    substitute_trips = db.query(func.count(DBTripRecord.id)).filter(
        DBTripRecord.driver_license == driver.driver_license, DBTripRecord.driver_type == "other"
    ).scalar() or 0
    substitute_fuel = db.query(func.count(DBFuelRecord.id)).filter(
        DBFuelRecord.driver_license == driver.driver_license, DBFuelRecord.driver_type == "other"
    ).scalar() or 0

    substitute_count = substitute_trips + substitute_fuel
    total_usage = vehicle_count + trip_count + fuel_count
    details = []
    if vehicle_count:
        details.append(f"{vehicle_count} vehicle(s)")
    if trip_count:
        details.append(f"{trip_count} trip record(s)")
    if fuel_count:
        details.append(f"{fuel_count} fuel record(s)")
    if substitute_count:
        details.append(f"{substitute_count} substitute driving record(s)")

    return {
        "can_delete": total_usage == 0 and substitute_count == 0,
        "usage_details": "used in " + ", ".join(details) if details else "not in use",
        "vehicle_count": vehicle_count,
        "trip_count": trip_count,
        "fuel_count": fuel_count,
        "substitute_count": substitute_count,
        "total_usage": total_usage + substitute_count,
    }


@router.get("", response_model=Page[Driver])
def list_drivers(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: str = Query("all", alias="status", pattern="^(all|active|inactive)$"),
    is_active: Optional[bool] = None,
) -> Any:
    """List drivers"""
    query = db.query(DBDriver)
    condition = search_filter(search, [DBDriver.driver_name, DBDriver.driver_license, DBDriver.phone, DBDriver.remark])
    if condition is not None:
        query = query.filter(condition)
    if status_filter == "active":
        query = query.filter(DBDriver.is_active == True)
    elif status_filter == "inactive":
        query = query.filter(DBDriver.is_active == False)
    if is_active is not None:
        query = query.filter(DBDriver.is_active == is_active)

    drivers, pagination = paginate(query.order_by(DBDriver.driver_name, DBDriver.id), page, limit)
    return {"data": drivers, "pagination": pagination}


@router.get("/options")
def get_driver_options(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    active_only: bool = False
) -> Any:
    """Drivers for dropdowns"""
    query = db.query(DBDriver)
    if active_only:
        query = query.filter(DBDriver.is_active == True)
    return [
        {
            "id": d.id,
            "driver_name": d.driver_name,
            "driver_license": d.driver_license,
            "driver_image": d.driver_image,
            "is_active": d.is_active,
        }
        for d in query.order_by(DBDriver.driver_name).all()
    ]


@router.get("/by-license/{driver_license}", response_model=Driver)
def get_driver_by_license(
    driver_license: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    driver = db.query(DBDriver).filter(DBDriver.driver_license == driver_license).first()
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


@router.post("", response_model=Driver, status_code=status.HTTP_201_CREATED)
def create_driver(
    driver_in: DriverCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Create a driver; the license number must be unique"""
    existing = db.query(DBDriver).filter(DBDriver.driver_license == driver_in.driver_license).first()
    if existing:
        raise HTTPException(status_code=409, detail="Driver license number already exists")

    user = actor_name(current_user)
    db_driver = DBDriver(**driver_in.model_dump(), created_by=user, updated_by=user)
    try:
        db.add(db_driver)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error creating driver: {str(e)}")
        raise integrity_error(e, "Driver license number already exists")
    db.refresh(db_driver)
    return db_driver


@router.get("/{driver_id}", response_model=Driver)
def get_driver(
    driver_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_driver_or_404(db, driver_id)


@router.put("/{driver_id}", response_model=Driver)
def update_driver(
    driver_id: int,
    driver_in: DriverUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Update a driver; replacing the image removes the old file"""
    db_driver = _get_driver_or_404(db, driver_id)

    update_data = driver_in.model_dump(exclude_unset=True)
    new_license = update_data.get("driver_license")
    if new_license and new_license != db_driver.driver_license:
        duplicate = db.query(DBDriver).filter(
            DBDriver.driver_license == new_license, DBDriver.id != driver_id
        ).first()
        if duplicate:
            raise HTTPException(status_code=409, detail="Driver license number already exists")

    old_image = db_driver.driver_image
    for field, value in update_data.items():
        setattr(db_driver, field, value)
    db_driver.updated_by = actor_name(current_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating driver {driver_id}: {str(e)}")
        raise integrity_error(e, "Driver license number already exists")
    db.refresh(db_driver)

    if "driver_image" in update_data and old_image and old_image != db_driver.driver_image:
        image_storage.delete_image(old_image)
    return db_driver


@router.post("/{driver_id}/image", response_model=Driver)
async def upload_driver_image(
    driver_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Upload a new driver photo"""
    db_driver = _get_driver_or_404(db, driver_id)
    content = await file.read()
    try:
        new_image = image_storage.save_image(content, file.content_type, "driver")
    except image_storage.ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    old_image = db_driver.driver_image
    db_driver.driver_image = new_image
    db_driver.updated_by = actor_name(current_user)
    db.commit()
    db.refresh(db_driver)
    if old_image and old_image != new_image:
        image_storage.delete_image(old_image)
    return db_driver


@router.delete("/{driver_id}/image", response_model=Driver)
def delete_driver_image(
    driver_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_driver = _get_driver_or_404(db, driver_id)
    old_image = db_driver.driver_image
    db_driver.driver_image = None
    db_driver.updated_by = actor_name(current_user)
    db.commit()
    db.refresh(db_driver)
    image_storage.delete_image(old_image)
    return db_driver


@router.delete("/{driver_id}")
def delete_driver(
    driver_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Delete a driver that no vehicle, trip or fuel record references"""
    db_driver = _get_driver_or_404(db, driver_id)

    usage = driver_usage(db, db_driver)
    if not usage["can_delete"]:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete driver {db_driver.driver_name}: {usage['usage_details']}. "
                   "Deactivate the driver instead."
        )

    image = db_driver.driver_image
    license_number = db_driver.driver_license
    db.delete(db_driver)
    db.commit()
    image_storage.delete_image(image)
    logger.info(f"Driver {license_number} deleted by {actor_name(current_user)}")
    return {"message": "Driver deleted successfully", "id": driver_id}


@router.patch("/{driver_id}", response_model=Driver)
def patch_driver(
    driver_id: int,
    body: StatusAction,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    if body.action != "toggle-status":
        raise HTTPException(status_code=400, detail=f"Unsupported action: {body.action}")
    db_driver = _get_driver_or_404(db, driver_id)
    db_driver.is_active = not db_driver.is_active
    db_driver.updated_by = actor_name(current_user)
    db.commit()
    db.refresh(db_driver)
    return db_driver


@router.get("/{driver_id}/usage")
def get_driver_usage(
    driver_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return driver_usage(db, _get_driver_or_404(db, driver_id))


@router.get("/{driver_id}/vehicles", response_model=List[Vehicle])
def get_driver_vehicles(
    driver_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Vehicles where the driver is the main or backup driver"""
    _get_driver_or_404(db, driver_id)
    return db.query(DBVehicle).filter(
        or_(DBVehicle.main_driver_id == driver_id, DBVehicle.backup_driver_id == driver_id)
    ).order_by(DBVehicle.license_plate).all()
