from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from typing import Any, Dict, Optional
import logging

from app.schemas.common import Page, StatusAction
from app.schemas.logistics import Vehicle, VehicleCreate, VehicleUpdate
from app.db.models.logistics import Vehicle as DBVehicle, Driver as DBDriver
from app.db.models.trip import TripRecord as DBTripRecord, FuelRecord as DBFuelRecord
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils import image_storage
from app.utils.pagination import paginate, search_filter

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_vehicle_or_404(db: Session, vehicle_id: int) -> DBVehicle:
    vehicle = db.query(DBVehicle).options(
        joinedload(DBVehicle.main_driver), joinedload(DBVehicle.backup_driver)
    ).filter(DBVehicle.id == vehicle_id).first()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


def _active_plate_taken(db: Session, license_plate: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(DBVehicle).filter(
        DBVehicle.license_plate == license_plate, DBVehicle.is_active == True
    )
    if exclude_id is not None:
        query = query.filter(DBVehicle.id != exclude_id)
    return query.first() is not None


def _check_driver(db: Session, driver_id: Optional[int], role: str) -> None:
    if driver_id is None:
        return
    driver = db.query(DBDriver).filter(DBDriver.id == driver_id).first()
    if not driver:
        raise HTTPException(status_code=400, detail=f"{role} driver not found")
    if not driver.is_active:
        raise HTTPException(status_code=400, detail=f"{role} driver {driver.driver_name} is inactive")


def vehicle_usage(db: Session, vehicle_id: int) -> Dict[str, Any]:
    trip_count = db.query(func.count(DBTripRecord.id)).filter(DBTripRecord.vehicle_id == vehicle_id).scalar() or 0
    fuel_count = db.query(func.count(DBFuelRecord.id)).filter(DBFuelRecord.vehicle_id == vehicle_id).scalar() or 0
    in_use = trip_count > 0 or fuel_count > 0
    return {
        "is_in_use": in_use,
        "trip_count": trip_count,
        "fuel_count": fuel_count,
        "can_delete": not in_use,
        "can_deactivate": True,
    }


@router.get("", response_model=Page[Vehicle])
def list_vehicles(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: str = Query("active", alias="status", pattern="^(all|active|inactive)$"),
    brand: Optional[str] = None,
    vehicle_type: Optional[str] = None,
    license_plate: Optional[str] = None,
) -> Any:
    """List vehicles with their main and backup drivers"""
    query = db.query(DBVehicle).options(
        joinedload(DBVehicle.main_driver), joinedload(DBVehicle.backup_driver)
    )
    if status_filter == "active":
        query = query.filter(DBVehicle.is_active == True)
    elif status_filter == "inactive":
        query = query.filter(DBVehicle.is_active == False)

    condition = search_filter(search, [
        DBVehicle.license_plate, DBVehicle.brand, DBVehicle.model, DBVehicle.color, DBVehicle.vehicle_type,
    ])
    if condition is not None:
        query = query.filter(condition)
    if brand:
        query = query.filter(DBVehicle.brand == brand)
    if vehicle_type:
        query = query.filter(DBVehicle.vehicle_type == vehicle_type)
    if license_plate:
        query = query.filter(DBVehicle.license_plate.ilike(f"%{license_plate}%"))

    vehicles, pagination = paginate(query.order_by(DBVehicle.license_plate, DBVehicle.id), page, limit)
    return {"data": vehicles, "pagination": pagination}


@router.get("/options")
def get_vehicle_options(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Distinct brands, vehicle types and plates of active vehicles"""
    def distinct(column):
        rows = db.query(column).filter(
            DBVehicle.is_active == True, column.isnot(None), column != ""
        ).distinct().order_by(column).all()
        return [row[0] for row in rows]

    return {
        "brands": distinct(DBVehicle.brand),
        "vehicle_types": distinct(DBVehicle.vehicle_type),
        "license_plates": distinct(DBVehicle.license_plate),
    }


@router.get("/check-license-plate")
def check_license_plate(
    license_plate: str,
    exclude_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return {"exists": _active_plate_taken(db, license_plate, exclude_id)}


@router.post("", response_model=Vehicle, status_code=status.HTTP_201_CREATED)
def create_vehicle(
    vehicle_in: VehicleCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Create a vehicle; the plate must be unique among active vehicles"""
    if _active_plate_taken(db, vehicle_in.license_plate):
        raise HTTPException(status_code=409, detail=f"License plate {vehicle_in.license_plate} already exists")
    _check_driver(db, vehicle_in.main_driver_id, "Main")
    _check_driver(db, vehicle_in.backup_driver_id, "Backup")

    user = actor_name(current_user)
    db_vehicle = DBVehicle(**vehicle_in.model_dump(), created_by=user, updated_by=user)
    db.add(db_vehicle)
    db.commit()
    return _get_vehicle_or_404(db, db_vehicle.id)


@router.get("/{vehicle_id}", response_model=Vehicle)
def get_vehicle(
    vehicle_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_vehicle_or_404(db, vehicle_id)


@router.put("/{vehicle_id}", response_model=Vehicle)
def update_vehicle(
    vehicle_id: int,
    vehicle_in: VehicleUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Partial update; a replaced car image is removed from disk"""
    db_vehicle = _get_vehicle_or_404(db, vehicle_id)
    update_data = vehicle_in.model_dump(exclude_unset=True)

    new_plate = update_data.get("license_plate", db_vehicle.license_plate)
    stays_active = update_data.get("is_active", db_vehicle.is_active)
    if stays_active and _active_plate_taken(db, new_plate, exclude_id=vehicle_id):
        raise HTTPException(status_code=409, detail=f"License plate {new_plate} already exists")
    if "main_driver_id" in update_data:
        _check_driver(db, update_data["main_driver_id"], "Main")
    if "backup_driver_id" in update_data:
        _check_driver(db, update_data["backup_driver_id"], "Backup")

    old_image = db_vehicle.car_image
    for field, value in update_data.items():
        setattr(db_vehicle, field, value)
    db_vehicle.updated_by = actor_name(current_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating vehicle {vehicle_id}: {str(e)}")
        raise integrity_error(e, "License plate already exists")

    if "car_image" in update_data and old_image and old_image != update_data["car_image"]:
        image_storage.delete_image(old_image)
    return _get_vehicle_or_404(db, vehicle_id)


@router.patch("/{vehicle_id}", response_model=Vehicle)
def patch_vehicle(
    vehicle_id: int,
    body: StatusAction,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """toggle-status flips the active flag; reactivate only turns it back on"""
    if body.action not in ("toggle-status", "reactivate"):
        raise HTTPException(status_code=400, detail=f"Unsupported action: {body.action}")

    db_vehicle = _get_vehicle_or_404(db, vehicle_id)
    activate = True if body.action == "reactivate" else not db_vehicle.is_active
    if activate and _active_plate_taken(db, db_vehicle.license_plate, exclude_id=vehicle_id):
        raise HTTPException(
            status_code=409,
            detail=f"Another active vehicle already uses license plate {db_vehicle.license_plate}"
        )

    db_vehicle.is_active = activate
    db_vehicle.updated_by = actor_name(current_user)
    db.commit()
    return _get_vehicle_or_404(db, vehicle_id)


@router.delete("/{vehicle_id}")
def delete_vehicle(
    vehicle_id: int,
    force: bool = False,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """
    Delete a vehicle. A vehicle with trip or fuel history is only deactivated
    unless force is set, in which case that history is removed with it.
    """
    db_vehicle = _get_vehicle_or_404(db, vehicle_id)
    usage = vehicle_usage(db, vehicle_id)

    if usage["is_in_use"] and not force:
        db_vehicle.is_active = False
        db_vehicle.updated_by = actor_name(current_user)
        db.commit()
        return {
            "message": "Vehicle is in use and was deactivated instead of deleted",
            "type": "soft_delete",
            "usage": {"trip_count": usage["trip_count"], "fuel_count": usage["fuel_count"]},
        }

    if usage["is_in_use"]:
        for trip in db.query(DBTripRecord).filter(DBTripRecord.vehicle_id == vehicle_id).all():
            db.delete(trip)
        db.query(DBFuelRecord).filter(DBFuelRecord.vehicle_id == vehicle_id).delete(synchronize_session=False)
        logger.warning(
            f"Force deleting vehicle {db_vehicle.license_plate} with "
            f"{usage['trip_count']} trip(s) and {usage['fuel_count']} fuel record(s)"
        )

    image = db_vehicle.car_image
    db.delete(db_vehicle)
    db.commit()
    image_storage.delete_image(image)
    return {"message": "Vehicle deleted successfully", "type": "hard_delete", "id": vehicle_id}


@router.get("/{vehicle_id}/check-usage")
def check_vehicle_usage(
    vehicle_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    _get_vehicle_or_404(db, vehicle_id)
    return vehicle_usage(db, vehicle_id)
