from app.db.models.user import User
from app.db.models.customer import Customer
from app.db.models.logistics import Driver, Vehicle
from app.db.models.item import Item
from app.db.models.trip import TripRecord, TripItem, FuelRecord
from app.db.models.evaluation import Evaluation, Subcontractor
from app.db.models.system_setting import SystemSetting

__all__ = [
    "User", "Customer", "Driver", "Vehicle", "Item",
    "TripRecord", "TripItem", "FuelRecord",
    "Evaluation", "Subcontractor", "SystemSetting",
]
