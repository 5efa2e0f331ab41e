from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Any

from app.api.deps import get_current_user
from app.utils import geo

router = APIRouter()


def _require_geo() -> None:
    if not geo.is_enabled():
        raise HTTPException(status_code=503, detail="Google Maps API key is not configured")


@router.get("/geocode")
def geocode(
    address: str = Query(..., min_length=1),
    current_user = Depends(get_current_user)
) -> Any:
    _require_geo()
    location = geo.geocode_address(address)
    if not location:
        raise HTTPException(status_code=404, detail="Address not found")
    return location


@router.get("/distance")
def distance_from_company(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    current_user = Depends(get_current_user)
) -> Any:
    """Driving distance from the company depot"""
    _require_geo()
    distance = geo.distance_from_company(lat, lng)
    if not distance:
        raise HTTPException(status_code=502, detail="Distance lookup failed")
    company_lat, company_lng = geo.company_location()
    return {"origin": {"lat": company_lat, "lng": company_lng}, "destination": {"lat": lat, "lng": lng}, **distance}
