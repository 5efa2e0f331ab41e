from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Float, Date
from sqlalchemy.sql import func
from app.db.base import Base
from app.utils import evaluation_scoring


class Subcontractor(Base):
    """Transport subcontractor that supplies vehicles and drivers"""
    __tablename__ = "subcontractors"

    id = Column(Integer, primary_key=True, index=True)
    subcontractor_code = Column(String, unique=True, index=True, nullable=False)
    subcontractor_name = Column(String, nullable=False, index=True)
    contact_person = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    remark = Column(Text, nullable=True)
    transport_type = Column(String, default="domestic", nullable=False)  # domestic, international
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Evaluation(Base):
    """Per-trip evaluation of a subcontractor vehicle"""
    __tablename__ = "evaluations"

    id = Column(Integer, primary_key=True, index=True)
    contractor_name = Column(String, nullable=False, index=True)
    vehicle_plate = Column(String, nullable=False, index=True)
    site = Column(String, nullable=False)
    transport_type = Column(String, default="domestic", nullable=False)

    # Domestic scoring
    driver_cooperation = Column(Integer, nullable=True)  # 1-4
    vehicle_condition = Column(Integer, nullable=True)  # 0 or 3
    damage_found = Column(Boolean, default=False, nullable=False)
    damage_value = Column(Float, default=0, nullable=False)
    damage_score = Column(Integer, nullable=True)  # 0, 1 or 3

    # International scoring
    container_condition = Column(Integer, nullable=True)  # 0-3
    punctuality = Column(Integer, nullable=True)  # 0-3
    product_damage = Column(Integer, nullable=True)  # 0-4

    remark = Column(Text, nullable=True)
    evaluated_by = Column(String, nullable=True)
    evaluation_date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def total_score(self) -> int:
        return evaluation_scoring.total_score(self)
