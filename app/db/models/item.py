from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class Item(Base):
    """Item (part) master carried on trips"""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    pt_part = Column(String, unique=True, index=True, nullable=False)
    pt_desc1 = Column(String, nullable=False)
    pt_desc2 = Column(String, nullable=True)
    pt_um = Column(String, nullable=False)  # unit of measure
    pt_price = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    trip_items = relationship("TripItem", back_populates="item")
