from datetime import date
from typing import Optional


def trip_days(departure_date: Optional[date], return_date: Optional[date]) -> int:
    """Whole calendar days between departure and return, never negative."""
    if not departure_date or not return_date:
        return 0
    return max(0, (return_date - departure_date).days)


def total_allowance(days: int, rate: float) -> float:
    if days < 1:
        return 0.0
    return round(days * (rate or 0), 2)


def round_trip_distance(one_way_km: Optional[float]) -> float:
    return round((one_way_km or 0) * 2, 2)


def distance_cost(distance_km: float, rate: float) -> float:
    return round((distance_km or 0) * (rate or 0), 2)
