from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager, selectinload
from sqlalchemy import func
from typing import Any, List, Optional
import logging

from app.schemas.common import Page
from app.schemas.logistics import VehicleBrief
from app.schemas.trip import TripRecord, TripRecordCreate, TripRecordUpdate, TripItemCreate
from app.db.models.trip import TripRecord as DBTripRecord, TripItem as DBTripItem
from app.db.models.logistics import Vehicle as DBVehicle, Driver as DBDriver
from app.db.models.customer import Customer as DBCustomer
from app.db.models.item import Item as DBItem
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils import system_settings
from app.utils.dates import parse_report_date
from app.utils.pagination import paginate, search_filter, apply_sort
from app.utils.trip_calculations import trip_days, total_allowance, round_trip_distance, distance_cost

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_FIELDS = ["departure_date", "created_at", "actual_distance", "total_allowance", "document_number"]


def _trip_query(db: Session):
    return db.query(DBTripRecord).join(
        DBVehicle, DBTripRecord.vehicle_id == DBVehicle.id
    ).join(
        DBCustomer, DBTripRecord.customer_id == DBCustomer.id
    ).options(
        contains_eager(DBTripRecord.vehicle),
        contains_eager(DBTripRecord.customer),
        selectinload(DBTripRecord.trip_items).joinedload(DBTripItem.item),
    )


def _get_trip_or_404(db: Session, trip_id: int) -> DBTripRecord:
    trip = _trip_query(db).filter(DBTripRecord.id == trip_id).first()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip record not found")
    return trip


def _parse_date_param(value: Optional[str], name: str):
    try:
        return parse_report_date(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"{name}: {e}")


def _check_references(db: Session, vehicle_id: Optional[int], customer_id: Optional[int]) -> None:
    if vehicle_id is not None and not db.query(DBVehicle.id).filter(DBVehicle.id == vehicle_id).first():
        raise HTTPException(status_code=404, detail="Vehicle not found")
    if customer_id is not None and not db.query(DBCustomer.id).filter(DBCustomer.id == customer_id).first():
        raise HTTPException(status_code=404, detail="Customer not found")


def _resolve_driver_name(db: Session, driver_license: str) -> str:
    driver = db.query(DBDriver).filter(
        DBDriver.driver_license == driver_license, DBDriver.is_active == True
    ).first()
    if not driver:
        raise HTTPException(status_code=404, detail=f"No active driver with license {driver_license}")
    return driver.driver_name


def _build_trip_items(db: Session, items_in: List[TripItemCreate]) -> List[DBTripItem]:
    item_ids = {i.item_id for i in items_in}
    if item_ids:
        found = {row[0] for row in db.query(DBItem.id).filter(DBItem.id.in_(item_ids)).all()}
        missing = sorted(item_ids - found)
        if missing:
            raise HTTPException(status_code=404, detail=f"Item(s) not found: {', '.join(map(str, missing))}")
    return [DBTripItem(**i.model_dump()) for i in items_in]


def _check_return_time(return_date, return_time) -> None:
    if return_date and not return_time:
        raise HTTPException(status_code=400, detail="return_time is required when return_date is given")


@router.get("", response_model=Page[TripRecord])
def list_trip_records(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    vehicle_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    vehicle_type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sort_by: str = "departure_date",
    sort_order: str = "desc",
) -> Any:
    """List trips with vehicle, customer and date-range filters"""
    query = _trip_query(db)
    condition = search_filter(search, [
        DBTripRecord.document_number, DBTripRecord.remark, DBTripRecord.driver_name,
        DBVehicle.license_plate, DBCustomer.cm_code, DBCustomer.cm_name,
    ])
    if condition is not None:
        query = query.filter(condition)
    if vehicle_id:
        query = query.filter(DBTripRecord.vehicle_id == vehicle_id)
    if customer_id:
        query = query.filter(DBTripRecord.customer_id == customer_id)
    if vehicle_type:
        query = query.filter(DBVehicle.vehicle_type == vehicle_type)

    start = _parse_date_param(start_date, "start_date")
    end = _parse_date_param(end_date, "end_date")
    if start:
        query = query.filter(DBTripRecord.departure_date >= start)
    if end:
        query = query.filter(DBTripRecord.departure_date <= end)

    query = apply_sort(query, DBTripRecord, sort_by, sort_order, SORTABLE_FIELDS, "departure_date")
    trips, pagination = paginate(query, page, limit)
    return {"data": trips, "pagination": pagination}


@router.get("/validate-document")
def validate_document_number(
    document_number: str,
    exclude_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Whether another trip already uses the document number"""
    query = db.query(DBTripRecord).filter(DBTripRecord.document_number == document_number.strip())
    if exclude_id is not None:
        query = query.filter(DBTripRecord.id != exclude_id)
    existing = query.first()
    if not existing:
        return {"exists": False, "record": None}
    return {
        "exists": True,
        "record": {
            "id": existing.id,
            "document_number": existing.document_number,
            "departure_date": existing.departure_date,
            "license_plate": existing.vehicle.license_plate if existing.vehicle else None,
            "customer_name": existing.customer.cm_name if existing.customer else None,
        },
    }


@router.get("/reports/by-vehicle")
def trip_report_by_vehicle(
    vehicle_id: int,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """
    Trips of one vehicle in a date range with cost totals.

    Dates accept DD/MM/YYYY or ISO format. The summary covers every trip in
    the range, not only the requested page.
    """
    vehicle = db.query(DBVehicle).filter(DBVehicle.id == vehicle_id).first()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")

    start = _parse_date_param(start_date, "start_date")
    end = _parse_date_param(end_date, "end_date")

    filters = [DBTripRecord.vehicle_id == vehicle_id]
    if start:
        filters.append(DBTripRecord.departure_date >= start)
    if end:
        filters.append(DBTripRecord.departure_date <= end)

    query = _trip_query(db).filter(*filters).order_by(DBTripRecord.departure_date.desc(), DBTripRecord.id.desc())
    trips, pagination = paginate(query, page, limit)

    stats = db.query(
        func.count(DBTripRecord.id),
        func.sum(DBTripRecord.actual_distance),
        func.avg(DBTripRecord.actual_distance),
        func.avg(DBTripRecord.days),
        func.sum(DBTripRecord.total_allowance),
        func.sum(DBTripRecord.fuel_cost),
        func.sum(DBTripRecord.toll_fee),
        func.sum(DBTripRecord.repair_cost),
        func.sum(DBTripRecord.distance_check_fee),
        func.sum(DBTripRecord.trip_fee),
    ).filter(*filters).one()

    costs = {
        "allowance": float(stats[4] or 0),
        "fuel": float(stats[5] or 0),
        "toll": float(stats[6] or 0),
        "repair": float(stats[7] or 0),
        "distance_check": float(stats[8] or 0),
        "trip_fee": float(stats[9] or 0),
    }
    return {
        "vehicle": VehicleBrief.model_validate(vehicle),
        "data": [TripRecord.model_validate(t) for t in trips],
        "pagination": pagination,
        "summary": {
            "total_trips": stats[0] or 0,
            "total_distance": float(stats[1] or 0),
            "average_distance": round(float(stats[2] or 0), 2),
            "average_days": round(float(stats[3] or 0), 2),
            "costs": costs,
            "grand_total": round(sum(costs.values()), 2),
        },
    }


@router.get("/estimate-cost")
def estimate_trip_cost(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Round-trip distance cost to a customer at the current rates"""
    customer = db.query(DBCustomer).filter(DBCustomer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")

    rate = system_settings.get_distance_rate(db)
    distance = round_trip_distance(customer.cm_mileage)
    return {
        "customer_id": customer.id,
        "estimated_distance": distance,
        "distance_rate": rate,
        "distance_cost": distance_cost(distance, rate),
        "trip_fee": system_settings.get_trip_fee(db),
        "free_distance_threshold": system_settings.get_free_distance_threshold(db),
    }


@router.post("", response_model=TripRecord, status_code=status.HTTP_201_CREATED)
def create_trip_record(
    trip_in: TripRecordCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """
    Record a trip.

    Days and allowance come from the dates and the current allowance rate,
    and the trip fee falls back to the configured default.
    """
    _check_return_time(trip_in.return_date, trip_in.return_time)
    _check_references(db, trip_in.vehicle_id, trip_in.customer_id)

    data = trip_in.model_dump(exclude={"trip_items"})
    if data.get("driver_license"):
        data["driver_name"] = _resolve_driver_name(db, data["driver_license"])
    if data.get("trip_fee") is None:
        data["trip_fee"] = system_settings.get_trip_fee(db)

    rate = system_settings.get_allowance_rate(db)
    days = trip_days(trip_in.departure_date, trip_in.return_date)
    user = actor_name(current_user)

    db_trip = DBTripRecord(
        **data,
        days=days,
        allowance_rate=rate,
        total_allowance=total_allowance(days, rate),
        created_by=user,
        updated_by=user,
    )
    db_trip.trip_items = _build_trip_items(db, trip_in.trip_items)
    db.add(db_trip)
    db.commit()
    logger.info(f"Trip record {db_trip.id} created by {user}")
    return _get_trip_or_404(db, db_trip.id)


@router.get("/{trip_id}", response_model=TripRecord)
def get_trip_record(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_trip_or_404(db, trip_id)


@router.put("/{trip_id}", response_model=TripRecord)
def update_trip_record(
    trip_id: int,
    trip_in: TripRecordUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Update a trip; supplied trip items replace the existing ones"""
    db_trip = _get_trip_or_404(db, trip_id)
    update_data = trip_in.model_dump(exclude_unset=True, exclude={"trip_items"})

    return_date = update_data.get("return_date", db_trip.return_date)
    return_time = update_data.get("return_time", db_trip.return_time)
    _check_return_time(return_date, return_time)
    _check_references(db, update_data.get("vehicle_id"), update_data.get("customer_id"))
    if update_data.get("driver_license"):
        update_data["driver_name"] = _resolve_driver_name(db, update_data["driver_license"])

    for field, value in update_data.items():
        setattr(db_trip, field, value)

    # the rate stored at creation stays with the trip
    db_trip.days = trip_days(db_trip.departure_date, db_trip.return_date)
    db_trip.total_allowance = total_allowance(db_trip.days, db_trip.allowance_rate)

    if trip_in.trip_items is not None:
        db_trip.trip_items = _build_trip_items(db, trip_in.trip_items)

    db_trip.updated_by = actor_name(current_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating trip record {trip_id}: {str(e)}")
        raise integrity_error(e, "Trip record conflicts with an existing record")
    db.expire_all()
    return _get_trip_or_404(db, trip_id)


@router.delete("/{trip_id}")
def delete_trip_record(
    trip_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_trip = db.query(DBTripRecord).filter(DBTripRecord.id == trip_id).first()
    if not db_trip:
        raise HTTPException(status_code=404, detail="Trip record not found")
    db.delete(db_trip)
    db.commit()
    logger.info(f"Trip record {trip_id} deleted by {actor_name(current_user)}")
    return {"message": "Trip record deleted successfully", "id": trip_id}
