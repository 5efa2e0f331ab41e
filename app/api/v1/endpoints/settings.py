from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Any, List
import logging

from app.schemas.system_setting import Setting, SettingValue
from app.db.models.system_setting import SystemSetting as DBSystemSetting
from app.api.deps import get_db, get_current_user, actor_name
from app.utils import system_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def _describe(db: Session, key: str) -> dict:
    row = db.query(DBSystemSetting).filter(DBSystemSetting.setting_key == key).first()
    return {
        "key": key,
        "value": system_settings.get_setting(db, key),
        "description": (row.description if row and row.description else system_settings.DEFAULT_SETTINGS[key][1]),
        "updated_by": row.updated_by if row else None,
        "updated_at": (row.updated_at or row.created_at) if row else None,
    }


def _require_known_key(key: str) -> None:
    if key not in system_settings.DEFAULT_SETTINGS:
        raise HTTPException(status_code=404, detail=f"Unknown setting: {key}")


@router.get("", response_model=List[Setting])
def list_settings(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Effective values of every known setting"""
    return [_describe(db, key) for key in system_settings.DEFAULT_SETTINGS]


@router.get("/{key}", response_model=Setting)
def get_setting(
    key: str,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    _require_known_key(key)
    return _describe(db, key)


@router.put("/{key}", response_model=Setting)
def update_setting(
    key: str,
    body: SettingValue,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    _require_known_key(key)
    try:
        system_settings.set_setting(db, key, body.value, updated_by=actor_name(current_user))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Setting {key} set to {body.value} by {actor_name(current_user)}")
    return _describe(db, key)
