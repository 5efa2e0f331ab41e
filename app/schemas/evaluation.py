from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import Optional
from datetime import date, datetime

from app.schemas.common import reject_null

TRANSPORT_TYPE_PATTERN = '^(domestic|international)$'


# Evaluation Schemas
class EvaluationBase(BaseModel):
    contractor_name: str = Field(..., min_length=1)
    vehicle_plate: str = Field(..., min_length=1)
    site: str = Field(..., min_length=1)
    transport_type: str = Field(default="domestic", pattern=TRANSPORT_TYPE_PATTERN)
    driver_cooperation: Optional[int] = None
    vehicle_condition: Optional[int] = None
    damage_found: bool = False
    damage_value: float = 0
    damage_score: Optional[int] = None
    container_condition: Optional[int] = None
    punctuality: Optional[int] = None
    product_damage: Optional[int] = None
    remark: Optional[str] = None
    evaluated_by: Optional[str] = None
    evaluation_date: date


class EvaluationCreate(EvaluationBase):
    pass


class EvaluationUpdate(BaseModel):
    contractor_name: Optional[str] = Field(None, min_length=1)
    vehicle_plate: Optional[str] = Field(None, min_length=1)
    site: Optional[str] = Field(None, min_length=1)
    transport_type: Optional[str] = Field(None, pattern=TRANSPORT_TYPE_PATTERN)
    driver_cooperation: Optional[int] = None
    vehicle_condition: Optional[int] = None
    damage_found: Optional[bool] = None
    damage_value: Optional[float] = None
    damage_score: Optional[int] = None
    container_condition: Optional[int] = None
    punctuality: Optional[int] = None
    product_damage: Optional[int] = None
    remark: Optional[str] = None
    evaluated_by: Optional[str] = None
    evaluation_date: Optional[date] = None

    @field_validator("contractor_name", "vehicle_plate", "site", "transport_type",
                     "damage_found", "damage_value", "evaluation_date")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class Evaluation(EvaluationBase):
    id: int
    total_score: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Subcontractor Schemas
class SubcontractorBase(BaseModel):
    subcontractor_code: str = Field(..., min_length=1)
    subcontractor_name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    remark: Optional[str] = None
    transport_type: str = Field(default="domestic", pattern=TRANSPORT_TYPE_PATTERN)
    is_active: bool = True


class SubcontractorCreate(SubcontractorBase):
    pass


class SubcontractorUpdate(BaseModel):
    subcontractor_code: Optional[str] = Field(None, min_length=1)
    subcontractor_name: Optional[str] = Field(None, min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    remark: Optional[str] = None
    transport_type: Optional[str] = Field(None, pattern=TRANSPORT_TYPE_PATTERN)
    is_active: Optional[bool] = None

    @field_validator("subcontractor_code", "subcontractor_name", "transport_type", "is_active")
    @classmethod
    def required_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)


class Subcontractor(SubcontractorBase):
    id: int
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubcontractorListItem(Subcontractor):
    has_references: bool = False
