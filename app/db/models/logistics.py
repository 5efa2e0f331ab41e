from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class Driver(Base):
    """Driver master"""
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    driver_name = Column(String, nullable=False, index=True)
    driver_license = Column(String, nullable=False, unique=True, index=True)
    driver_image = Column(String, nullable=True)  # /uploads/driver/...
    phone = Column(String, nullable=True)
    remark = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    main_vehicles = relationship("Vehicle", foreign_keys="Vehicle.main_driver_id", back_populates="main_driver")
    backup_vehicles = relationship("Vehicle", foreign_keys="Vehicle.backup_driver_id", back_populates="backup_driver")


class Vehicle(Base):
    """Vehicle master"""
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    license_plate = Column(String, nullable=False, index=True)  # unique among active vehicles only
    brand = Column(String, nullable=False)
    model = Column(String, nullable=True)
    color = Column(String, nullable=True)
    weight = Column(Float, nullable=True)
    fuel_tank = Column(Float, nullable=True)
    fuel_consume = Column(Float, nullable=True)
    fuel_consume_mth = Column(Float, nullable=True)
    vehicle_type = Column(String, nullable=False)  # Truck, Pickup, Trailer, etc.
    main_driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True, index=True)
    backup_driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True, index=True)
    remark = Column(Text, nullable=True)
    car_image = Column(String, nullable=True)  # /uploads/car/...
    is_active = Column(Boolean, default=True, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Audit
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    main_driver = relationship("Driver", foreign_keys=[main_driver_id], back_populates="main_vehicles")
    backup_driver = relationship("Driver", foreign_keys=[backup_driver_id], back_populates="backup_vehicles")
    trip_records = relationship("TripRecord", back_populates="vehicle")
    fuel_records = relationship("FuelRecord", back_populates="vehicle")
