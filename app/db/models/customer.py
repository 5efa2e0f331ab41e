from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class Customer(Base):
    """Customer master - delivery destinations"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    cm_code = Column(String, unique=True, index=True, nullable=False)
    cm_name = Column(String, nullable=False, index=True)
    cm_address = Column(Text, nullable=True)
    cm_phone = Column(String, nullable=True)
    cm_salesname = Column(String, nullable=True)
    cm_mileage = Column(Float, nullable=True)  # one-way km from the company depot
    cm_remark = Column(Text, nullable=True)
    lat = Column(Float, nullable=True)
    long = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    trip_records = relationship("TripRecord", back_populates="customer")
