from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import List, Optional
from datetime import date, datetime

from app.schemas.common import reject_null
from app.schemas.customer import CustomerBrief
from app.schemas.item import ItemBrief
from app.schemas.logistics import VehicleBrief

TIME_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'
DRIVER_TYPE_PATTERN = '^(main|backup|other)$'


# Trip Item Schemas
class TripItemBase(BaseModel):
    item_id: int
    quantity: float = Field(..., gt=0)
    unit: Optional[str] = None
    unit_price: Optional[float] = Field(None, ge=0)
    total_price: Optional[float] = Field(None, ge=0)
    remark: Optional[str] = None


class TripItemCreate(TripItemBase):
    pass


class TripItem(TripItemBase):
    id: int
    item: Optional[ItemBrief] = None

    class Config:
        from_attributes = True


# Trip Record Schemas
class TripRecordBase(BaseModel):
    vehicle_id: int
    customer_id: int
    departure_date: date
    departure_time: str = Field(..., pattern=TIME_PATTERN)
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    odometer_before: Optional[int] = Field(None, ge=0)
    odometer_after: Optional[int] = Field(None, ge=0)
    actual_distance: Optional[float] = Field(None, ge=0)
    estimated_distance: Optional[float] = Field(None, ge=0)
    loading_date: Optional[date] = None
    distance_check_fee: Optional[float] = Field(None, ge=0)
    fuel_cost: Optional[float] = Field(None, ge=0)
    toll_fee: Optional[float] = Field(None, ge=0)
    repair_cost: Optional[float] = Field(None, ge=0)
    trip_fee: Optional[float] = Field(None, ge=0)
    document_number: Optional[str] = None
    remark: Optional[str] = None
    driver_license: Optional[str] = None
    driver_name: Optional[str] = None
    driver_type: Optional[str] = Field(None, pattern=DRIVER_TYPE_PATTERN)


class TripRecordCreate(TripRecordBase):
    trip_items: List[TripItemCreate] = []


class TripRecordUpdate(BaseModel):
    vehicle_id: Optional[int] = None
    customer_id: Optional[int] = None
    departure_date: Optional[date] = None
    departure_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    odometer_before: Optional[int] = Field(None, ge=0)
    odometer_after: Optional[int] = Field(None, ge=0)
    actual_distance: Optional[float] = Field(None, ge=0)
    estimated_distance: Optional[float] = Field(None, ge=0)
    loading_date: Optional[date] = None
    distance_check_fee: Optional[float] = Field(None, ge=0)
    fuel_cost: Optional[float] = Field(None, ge=0)
    toll_fee: Optional[float] = Field(None, ge=0)
    repair_cost: Optional[float] = Field(None, ge=0)
    trip_fee: Optional[float] = Field(None, ge=0)
    document_number: Optional[str] = None
    remark: Optional[str] = None
    driver_license: Optional[str] = None
    driver_name: Optional[str] = None
    driver_type: Optional[str] = Field(None, pattern=DRIVER_TYPE_PATTERN)
    trip_items: Optional[List[TripItemCreate]] = None

    @field_validator("vehicle_id", "customer_id", "departure_date", "departure_time")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class TripRecord(TripRecordBase):
    id: int
    days: int
    allowance_rate: float
    total_allowance: float
    vehicle: Optional[VehicleBrief] = None
    customer: Optional[CustomerBrief] = None
    trip_items: List[TripItem] = []
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Fuel Record Schemas
class FuelRecordBase(BaseModel):
    vehicle_id: int
    fuel_date: date
    fuel_amount: float = Field(..., gt=0)
    odometer: Optional[int] = Field(None, ge=0)
    remark: Optional[str] = None
    driver_type: Optional[str] = Field(None, pattern=DRIVER_TYPE_PATTERN)
    driver_name: Optional[str] = None
    driver_license: Optional[str] = None


class FuelRecordCreate(FuelRecordBase):
    pass


class FuelRecordUpdate(BaseModel):
    vehicle_id: Optional[int] = None
    fuel_date: Optional[date] = None
    fuel_amount: Optional[float] = Field(None, gt=0)
    odometer: Optional[int] = Field(None, ge=0)
    remark: Optional[str] = None
    driver_type: Optional[str] = Field(None, pattern=DRIVER_TYPE_PATTERN)
    driver_name: Optional[str] = None
    driver_license: Optional[str] = None

    @field_validator("vehicle_id", "fuel_date", "fuel_amount")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class FuelRecord(FuelRecordBase):
    id: int
    vehicle: Optional[VehicleBrief] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
