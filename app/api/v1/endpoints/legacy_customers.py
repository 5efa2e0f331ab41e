from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Callable, Dict, List, Optional, TypeVar
import logging

from app.schemas.legacy import BulkImportRequest, BulkDeleteRequest
from app.db.models.customer import Customer as DBCustomer
from app.api.deps import get_db, get_current_user, actor_name
from app.api.v1.endpoints.customers import count_customer_trips
from app.utils import geo, legacy_db
from app.utils.pagination import build_pagination

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")


def _legacy(call: Callable[..., T], *args, **kwargs) -> T:
    """Run a legacy query, mapping configuration and driver errors to 503."""
    try:
        return call(*args, **kwargs)
    except legacy_db.LegacyDatabaseError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except (SQLAlchemyError, ConnectionError) as e:
        logger.error(f"Legacy SQL Server query failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=503, detail="Legacy SQL Server is unavailable")


@router.get("")
def list_legacy_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: Optional[str] = None,
    all_rows: bool = Query(False, alias="all"),
    current_user = Depends(get_current_user)
) -> Any:
    """Customers from the legacy master, paged unless all=true"""
    if all_rows:
        rows = _legacy(legacy_db.get_all_customers_no_paging)
        return {
            "data": [legacy_db.to_option(r) for r in rows],
            "pagination": build_pagination(1, max(len(rows), 1), len(rows)),
        }

    result = _legacy(legacy_db.get_all_customers, search, page, limit)
    return {
        "data": [legacy_db.to_option(r) for r in result["customers"]],
        "pagination": build_pagination(page, limit, result["total"]),
    }


@router.get("/test-connection")
def test_legacy_connection(current_user = Depends(get_current_user)) -> Any:
    return _legacy(legacy_db.test_connection)


@router.get("/search")
def search_legacy_customers(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    current_user = Depends(get_current_user)
) -> Any:
    return [legacy_db.to_option(r) for r in _legacy(legacy_db.search_customers, q, limit)]


@router.get("/codes")
def list_legacy_customer_codes(current_user = Depends(get_current_user)) -> Any:
    return _legacy(legacy_db.get_distinct_customer_codes)


@router.get("/account-groups")
def list_legacy_account_groups(current_user = Depends(get_current_user)) -> Any:
    return _legacy(legacy_db.get_distinct_account_groups)


def _locate(address: str) -> Dict[str, Any]:
    """Coordinates and depot distance for an address; empty when unavailable."""
    found: Dict[str, Any] = {}
    if not address or not geo.is_enabled():
        return found
    location = geo.geocode_address(address)
    if not location:
        return found
    found["lat"] = location["lat"]
    found["long"] = location["lng"]
    distance = geo.distance_from_company(location["lat"], location["lng"])
    if distance:
        found["cm_mileage"] = distance["distance_km"]
    return found


@router.post("/bulk-import")
def bulk_import_customers(
    body: BulkImportRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """
    Copy a code range of legacy customers into the customer table.

    Existing codes are skipped. New customers are geocoded and their driving
    distance from the depot is stored when a maps API key is configured. A
    failing row is recorded and the import continues.
    """
    start_code = (body.start_code or "").strip()
    end_code = (body.end_code or "").strip()
    if not start_code or not end_code:
        raise HTTPException(status_code=400, detail="start_code and end_code are required")

    rows = _legacy(legacy_db.get_customers_by_code_range, start_code, end_code)
    if body.preview_only:
        return {"preview_only": True, "total": len(rows), "start_code": start_code, "end_code": end_code}

    if not geo.is_enabled():
        logger.warning("GOOGLE_MAPS_API_KEY is not set; importing customers without coordinates")

    created_by = body.created_by or actor_name(current_user)
    summary: Dict[str, Any] = {
        "total": len(rows),
        "success": 0,
        "skipped": 0,
        "with_gps": 0,
        "with_distance": 0,
        "failed": 0,
        "results": [],
        "errors": [],
    }

    for row in rows:
        option = legacy_db.to_option(row)
        code, name = option["code"], option["name"]
        if not code or not name:
            summary["failed"] += 1
            summary["errors"].append(f"{code or '(no code)'}: missing customer code or name")
            summary["results"].append({"code": code, "name": name, "status": "failed"})
            continue

        existing = db.query(DBCustomer).filter(DBCustomer.cm_code == code).first()
        if existing:
            summary["skipped"] += 1
            summary["results"].append({
                "code": code,
                "name": name,
                "status": "skipped",
                "distance": existing.cm_mileage,
            })
            continue

        try:
            located = _locate(option["address"])
            db_customer = DBCustomer(
                cm_code=code,
                cm_name=name,
                cm_address=option["address"] or None,
                cm_phone=option["phone"],
                created_by=created_by,
                updated_by=created_by,
                **located,
            )
            db.add(db_customer)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to import legacy customer {code}: {str(e)}", exc_info=True)
            summary["failed"] += 1
            summary["errors"].append(f"{code}: {str(e)}")
            summary["results"].append({"code": code, "name": name, "status": "failed"})
            continue

        summary["success"] += 1
        if "lat" in located:
            summary["with_gps"] += 1
        if "cm_mileage" in located:
            summary["with_distance"] += 1
        summary["results"].append({
            "code": code,
            "name": name,
            "status": "created",
            "id": db_customer.id,
            "distance": located.get("cm_mileage"),
        })

    logger.info(
        f"Bulk import {start_code}..{end_code}: {summary['success']} created, "
        f"{summary['skipped']} skipped, {summary['failed']} failed"
    )
    return summary


@router.delete("/bulk-delete")
def bulk_delete_customers(
    body: BulkDeleteRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Delete customers by id or code; customers with trips are left in place"""
    if not body.customer_ids and not body.customer_codes:
        raise HTTPException(status_code=400, detail="customer_ids or customer_codes is required")

    query = db.query(DBCustomer)
    if body.customer_ids:
        query = query.filter(DBCustomer.id.in_(body.customer_ids))
    else:
        query = query.filter(DBCustomer.cm_code.in_(body.customer_codes))
    customers: List[DBCustomer] = query.order_by(DBCustomer.cm_code).all()
    if not customers:
        raise HTTPException(status_code=404, detail="No matching customers found")

    summary: Dict[str, Any] = {"total": len(customers), "deleted": 0, "failed": 0, "results": [], "errors": []}
    for customer in customers:
        code = customer.cm_code
        trip_count = count_customer_trips(db, customer.id)
        if trip_count:
            summary["failed"] += 1
            summary["errors"].append(f"{code}: used by {trip_count} trip record(s)")
            summary["results"].append({"code": code, "status": "failed", "trip_count": trip_count})
            continue
        try:
            db.delete(customer)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            summary["failed"] += 1
            summary["errors"].append(f"{code}: {str(e)}")
            summary["results"].append({"code": code, "status": "failed"})
            continue
        summary["deleted"] += 1
        summary["results"].append({"code": code, "status": "deleted"})

    logger.info(f"Bulk delete by {actor_name(current_user)}: {summary['deleted']} deleted, {summary['failed']} failed")
    return summary


@router.get("/{code}")
def get_legacy_customer(code: str, current_user = Depends(get_current_user)) -> Any:
    row = _legacy(legacy_db.get_customer_by_code, code)
    if not row:
        raise HTTPException(status_code=404, detail=f"Legacy customer {code} not found")
    return legacy_db.to_option(row)
