from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import Optional
from datetime import datetime

from app.schemas.common import reject_null


class CustomerBase(BaseModel):
    cm_code: str = Field(..., min_length=1, max_length=50)
    cm_name: str = Field(..., min_length=1)
    cm_address: Optional[str] = None
    cm_phone: Optional[str] = None
    cm_salesname: Optional[str] = None
    cm_mileage: Optional[float] = Field(None, ge=0)
    cm_remark: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    long: Optional[float] = Field(None, ge=-180, le=180)
    is_active: bool = True


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    cm_code: Optional[str] = Field(None, min_length=1, max_length=50)
    cm_name: Optional[str] = Field(None, min_length=1)
    cm_address: Optional[str] = None
    cm_phone: Optional[str] = None
    cm_salesname: Optional[str] = None
    cm_mileage: Optional[float] = Field(None, ge=0)
    cm_remark: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    long: Optional[float] = Field(None, ge=-180, le=180)
    is_active: Optional[bool] = None

    @field_validator("cm_code", "cm_name", "is_active")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class Customer(CustomerBase):
    id: int
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerListItem(Customer):
    has_references: bool = False


class CustomerBrief(BaseModel):
    id: int
    cm_code: str
    cm_name: str
    cm_address: Optional[str] = None
    cm_mileage: Optional[float] = None

    class Config:
        from_attributes = True
