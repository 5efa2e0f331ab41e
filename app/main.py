import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.v1.api import api_router
from app.core.config import settings
from app.utils.image_storage import upload_root

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Logistics Back-Office API")

# Set up CORS

app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

# Uploaded car and driver photos
app.mount("/uploads", StaticFiles(directory=upload_root(), check_dir=False), name="uploads")


@app.on_event("startup")
async def startup_event():
    """Create missing tables and seed default settings"""
    from sqlalchemy import inspect
    from sqlalchemy.exc import SQLAlchemyError
    from app.db.database import init_db, seed_defaults
    from app.db.session import engine

    try:
        tables = inspect(engine).get_table_names()
        if "system_settings" not in tables:
            logger.info("Database tables not found. Initializing database...")
            init_db()
        seed_defaults()
    except SQLAlchemyError as e:
        logger.error(f"Could not initialize database: {e}", exc_info=True)
        logger.error("Run 'python init_db.py' manually to create the database tables.")


@app.get("/")
async def root():
    return {"message": "Logistics Back-Office API"}


@app.get("/favicon.ico")
async def favicon():
    """Handle favicon requests to avoid 404 errors"""
    from fastapi.responses import Response
    return Response(status_code=204)
