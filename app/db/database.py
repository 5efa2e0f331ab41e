from sqlalchemy.exc import SQLAlchemyError
from app.db.base import Base
from app.db.session import engine, SessionLocal
import logging

logger = logging.getLogger(__name__)


def init_db():
    """
    Initialize database by creating all tables.
    Importing the models package registers every table on Base.metadata.
    """
    try:
        import app.db.models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database error during initialization: {str(e)}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error during database initialization: {str(e)}", exc_info=True)
        raise


def seed_defaults(db=None):
    """Insert default system settings and the first admin user when missing."""
    from app.core.config import settings
    from app.core.security import get_password_hash
    from app.db.models.user import User
    from app.utils.system_settings import ensure_default_settings

    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        ensure_default_settings(db)
        if settings.FIRST_ADMIN_EMAIL and settings.FIRST_ADMIN_PASSWORD:
            existing = db.query(User).filter(User.email == settings.FIRST_ADMIN_EMAIL).first()
            if not existing:
                db.add(User(
                    username="admin",
                    email=settings.FIRST_ADMIN_EMAIL,
                    hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                    role="admin",
                    is_active=True,
                ))
                db.commit()
                logger.info(f"Created first admin user {settings.FIRST_ADMIN_EMAIL}")
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        if own_session:
            db.close()
