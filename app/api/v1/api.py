from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth, users, customers, drivers, vehicles, items, trip_records, fuel_records,
    evaluations, subcontractors, settings, files, legacy_customers, geo
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(drivers.router, prefix="/drivers", tags=["drivers"])
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(trip_records.router, prefix="/trip-records", tags=["trip-records"])
api_router.include_router(fuel_records.router, prefix="/fuel-records", tags=["fuel-records"])
api_router.include_router(evaluations.router, prefix="/evaluations", tags=["evaluations"])
api_router.include_router(subcontractors.router, prefix="/subcontractors", tags=["subcontractors"])
api_router.include_router(settings.router, prefix="/settings", tags=["system-settings"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(legacy_customers.router, prefix="/legacy-customers", tags=["legacy-customers"])
api_router.include_router(geo.router, prefix="/geo", tags=["geo"])
