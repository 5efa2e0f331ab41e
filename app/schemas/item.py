from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import Optional
from datetime import datetime

from app.schemas.common import reject_null


class ItemBase(BaseModel):
    pt_part: str = Field(..., min_length=1)
    pt_desc1: str = Field(..., min_length=1)
    pt_desc2: Optional[str] = None
    pt_um: str = Field(..., min_length=1)
    pt_price: Optional[float] = Field(None, ge=0)
    is_active: bool = True


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    pt_part: Optional[str] = Field(None, min_length=1)
    pt_desc1: Optional[str] = Field(None, min_length=1)
    pt_desc2: Optional[str] = None
    pt_um: Optional[str] = Field(None, min_length=1)
    pt_price: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("pt_part", "pt_desc1", "pt_um", "is_active")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class Item(ItemBase):
    id: int
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ItemListItem(Item):
    trip_item_count: int = 0


class ItemBrief(BaseModel):
    id: int
    pt_part: str
    pt_desc1: str
    pt_desc2: Optional[str] = None
    pt_um: str

    class Config:
        from_attributes = True
