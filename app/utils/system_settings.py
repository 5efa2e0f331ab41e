"""
Key/value system settings with a short in-process cache.

Values are stored as strings in ``system_settings`` and read back as floats.
A missing or unparsable row falls back to the default for that key.
"""
import logging
import time
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.system_setting import SystemSetting

logger = logging.getLogger(__name__)

ALLOWANCE_RATE = "allowance_rate"
DISTANCE_RATE = "distance_rate"
TRIP_FEE = "trip_fee"
FREE_DISTANCE_THRESHOLD = "free_distance_threshold"

DEFAULT_SETTINGS: Dict[str, Tuple[float, str]] = {
    ALLOWANCE_RATE: (150.0, "Driver allowance per day (THB)"),
    DISTANCE_RATE: (1.2, "Distance cost per km (THB)"),
    TRIP_FEE: (30.0, "Flat fee per trip (THB)"),
    FREE_DISTANCE_THRESHOLD: (1500.0, "Distance (km) below which no distance fee applies"),
}

# key -> (value, expires_at)
_cache: Dict[str, Tuple[float, float]] = {}


def clear_settings_cache(key: Optional[str] = None) -> None:
    if key is None:
        _cache.clear()
    else:
        _cache.pop(key, None)


def get_setting(db: Session, key: str) -> float:
    if key not in DEFAULT_SETTINGS:
        raise KeyError(key)

    cached = _cache.get(key)
    now = time.monotonic()
    if cached and cached[1] > now:
        return cached[0]

    default = DEFAULT_SETTINGS[key][0]
    row = db.query(SystemSetting).filter(SystemSetting.setting_key == key).first()
    value = default
    if row is not None:
        try:
            parsed = float(row.value)
            if parsed >= 0:
                value = parsed
            else:
                logger.warning(f"Negative value for setting {key}: {row.value}, using default")
        except (TypeError, ValueError):
            logger.warning(f"Invalid value for setting {key}: {row.value!r}, using default")

    _cache[key] = (value, now + settings.SETTINGS_CACHE_SECONDS)
    return value


def set_setting(db: Session, key: str, value: float, updated_by: Optional[str] = None) -> SystemSetting:
    if key not in DEFAULT_SETTINGS:
        raise KeyError(key)
    if value < 0:
        raise ValueError("Setting value must be zero or greater")

    row = db.query(SystemSetting).filter(SystemSetting.setting_key == key).first()
    if row is None:
        row = SystemSetting(setting_key=key, description=DEFAULT_SETTINGS[key][1])
        db.add(row)
    row.value = str(value)
    row.updated_by = updated_by
    db.commit()
    db.refresh(row)
    clear_settings_cache(key)
    return row


def ensure_default_settings(db: Session) -> None:
    existing = {row.setting_key for row in db.query(SystemSetting).all()}
    for key, (value, description) in DEFAULT_SETTINGS.items():
        if key not in existing:
            db.add(SystemSetting(setting_key=key, value=str(value), description=description, updated_by="system"))
    db.commit()


def get_allowance_rate(db: Session) -> float:
    return get_setting(db, ALLOWANCE_RATE)


def get_distance_rate(db: Session) -> float:
    return get_setting(db, DISTANCE_RATE)


def get_trip_fee(db: Session) -> float:
    return get_setting(db, TRIP_FEE)


def get_free_distance_threshold(db: Session) -> float:
    return get_setting(db, FREE_DISTANCE_THRESHOLD)
