from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Float, Date
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class TripRecord(Base):
    """One vehicle dispatch to a customer, with distance and expenses"""
    __tablename__ = "trip_records"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    departure_date = Column(Date, nullable=False, index=True)
    departure_time = Column(String(5), nullable=False)  # HH:MM
    return_date = Column(Date, nullable=True)
    return_time = Column(String(5), nullable=True)

    odometer_before = Column(Integer, nullable=True)
    odometer_after = Column(Integer, nullable=True)
    actual_distance = Column(Float, nullable=True)
    estimated_distance = Column(Float, default=0, nullable=True)

    days = Column(Integer, default=0, nullable=False)
    allowance_rate = Column(Float, default=0, nullable=False)
    total_allowance = Column(Float, default=0, nullable=False)

    loading_date = Column(Date, nullable=True)
    distance_check_fee = Column(Float, nullable=True)
    fuel_cost = Column(Float, nullable=True)
    toll_fee = Column(Float, nullable=True)
    repair_cost = Column(Float, nullable=True)
    trip_fee = Column(Float, nullable=True)

    document_number = Column(String, nullable=True, index=True)
    remark = Column(Text, nullable=True)

    # Drivers are referenced by license so history survives driver edits
    driver_license = Column(String, nullable=True, index=True)
    driver_name = Column(String, nullable=True)
    driver_type = Column(String, nullable=True)  # main, backup, other

    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    vehicle = relationship("Vehicle", back_populates="trip_records")
    customer = relationship("Customer", back_populates="trip_records")
    trip_items = relationship("TripItem", back_populates="trip_record", cascade="all, delete-orphan")


class TripItem(Base):
    __tablename__ = "trip_items"

    id = Column(Integer, primary_key=True, index=True)
    trip_record_id = Column(Integer, ForeignKey("trip_records.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=True)
    unit_price = Column(Float, nullable=True)
    total_price = Column(Float, nullable=True)
    remark = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    trip_record = relationship("TripRecord", back_populates="trip_items")
    item = relationship("Item", back_populates="trip_items")


class FuelRecord(Base):
    __tablename__ = "fuel_records"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    fuel_date = Column(Date, nullable=False, index=True)
    fuel_amount = Column(Float, nullable=False)  # litres
    odometer = Column(Integer, nullable=True)
    remark = Column(Text, nullable=True)
    driver_type = Column(String, nullable=True)  # main, backup, other
    driver_name = Column(String, nullable=True)
    driver_license = Column(String, nullable=True, index=True)

    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    vehicle = relationship("Vehicle", back_populates="fuel_records")
