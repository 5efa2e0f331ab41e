from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import Optional
from datetime import datetime

from app.schemas.common import reject_null


# Driver Schemas
class DriverBase(BaseModel):
    driver_name: str = Field(..., min_length=1)
    driver_license: str = Field(..., min_length=1)
    driver_image: Optional[str] = None
    phone: Optional[str] = None
    remark: Optional[str] = None
    is_active: bool = True


class DriverCreate(DriverBase):
    pass


class DriverUpdate(BaseModel):
    driver_name: Optional[str] = Field(None, min_length=1)
    driver_license: Optional[str] = Field(None, min_length=1)
    driver_image: Optional[str] = None
    phone: Optional[str] = None
    remark: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("driver_name", "driver_license", "is_active")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class Driver(DriverBase):
    id: int
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DriverBrief(BaseModel):
    id: int
    driver_name: str
    driver_license: str
    driver_image: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


# Vehicle Schemas
class VehicleBase(BaseModel):
    license_plate: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    model: Optional[str] = None
    color: Optional[str] = None
    weight: Optional[float] = Field(None, ge=0)
    fuel_tank: Optional[float] = Field(None, ge=0)
    fuel_consume: Optional[float] = Field(None, ge=0)
    fuel_consume_mth: Optional[float] = Field(None, ge=0)
    vehicle_type: str = Field(..., min_length=1)  # Truck, Pickup, Trailer
    main_driver_id: Optional[int] = None
    backup_driver_id: Optional[int] = None
    remark: Optional[str] = None
    car_image: Optional[str] = None
    is_active: bool = True
    owner_id: Optional[int] = None


class VehicleCreate(VehicleBase):
    pass


class VehicleUpdate(BaseModel):
    license_plate: Optional[str] = Field(None, min_length=1)
    brand: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = None
    color: Optional[str] = None
    weight: Optional[float] = Field(None, ge=0)
    fuel_tank: Optional[float] = Field(None, ge=0)
    fuel_consume: Optional[float] = Field(None, ge=0)
    fuel_consume_mth: Optional[float] = Field(None, ge=0)
    vehicle_type: Optional[str] = Field(None, min_length=1)
    main_driver_id: Optional[int] = None
    backup_driver_id: Optional[int] = None
    remark: Optional[str] = None
    car_image: Optional[str] = None
    is_active: Optional[bool] = None
    owner_id: Optional[int] = None

    @field_validator("license_plate", "brand", "vehicle_type", "is_active")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class Vehicle(VehicleBase):
    id: int
    main_driver: Optional[DriverBrief] = None
    backup_driver: Optional[DriverBrief] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VehicleBrief(BaseModel):
    id: int
    license_plate: str
    brand: str
    model: Optional[str] = None
    vehicle_type: str
    car_image: Optional[str] = None

    class Config:
        from_attributes = True
