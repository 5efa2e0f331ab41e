"""Google Maps geocoding and driving distance lookups."""
import logging
from typing import Dict, Optional, Tuple

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


class GeoServiceUnavailable(Exception):
    """Raised when no Google Maps API key is configured."""


def is_enabled() -> bool:
    return bool(settings.GOOGLE_MAPS_API_KEY)


def company_location() -> Tuple[float, float]:
    return settings.COMPANY_LAT, settings.COMPANY_LNG


def _get(url: str, params: Dict[str, str]) -> Optional[dict]:
    if not is_enabled():
        raise GeoServiceUnavailable("GOOGLE_MAPS_API_KEY is not configured")
    params = dict(params, key=settings.GOOGLE_MAPS_API_KEY)
    try:
        response = requests.get(url, params=params, timeout=settings.GOOGLE_MAPS_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"Google Maps request failed: {e}")
        return None
    except ValueError as e:
        logger.error(f"Google Maps returned invalid JSON: {e}")
        return None


def geocode_address(address: str) -> Optional[Dict[str, object]]:
    """
    Geocode an address, biased to Thailand.
    Returns {"lat", "lng", "formatted_address"} or None when nothing matches.
    """
    if not address or not address.strip():
        return None
    data = _get(GEOCODE_URL, {
        "address": address.strip(),
        "region": "th",
        "components": "country:TH",
        "language": "th",
    })
    if not data or data.get("status") != "OK" or not data.get("results"):
        logger.warning(f"Geocoding returned no result for '{address}': {data.get('status') if data else 'error'}")
        return None
    result = data["results"][0]
    location = (result.get("geometry") or {}).get("location")
    if not location or "lat" not in location or "lng" not in location:
        logger.warning(f"Geocoding result for '{address}' has no location")
        return None
    return {
        "lat": location["lat"],
        "lng": location["lng"],
        "formatted_address": result.get("formatted_address"),
    }


def get_driving_distance(origin: Tuple[float, float], destination: Tuple[float, float]) -> Optional[Dict[str, float]]:
    """
    Driving distance between two (lat, lng) points.
    Returns {"distance_km" (2 dp), "duration_seconds"} or None.
    """
    data = _get(DISTANCE_MATRIX_URL, {
        "origins": f"{origin[0]},{origin[1]}",
        "destinations": f"{destination[0]},{destination[1]}",
        "mode": "driving",
        "units": "metric",
    })
    if not data or data.get("status") != "OK":
        return None
    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError):
        return None
    if element.get("status") != "OK":
        logger.warning(f"Distance lookup failed for {destination}: {element.get('status')}")
        return None
    return {
        "distance_km": round(element["distance"]["value"] / 1000, 2),
        "duration_seconds": element["duration"]["value"],
    }


def distance_from_company(lat: float, lng: float) -> Optional[Dict[str, float]]:
    return get_driving_distance(company_location(), (lat, lng))
