from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SettingValue(BaseModel):
    value: float


class Setting(BaseModel):
    key: str
    value: float
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
