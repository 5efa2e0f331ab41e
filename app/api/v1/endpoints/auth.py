from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from typing import Any
import logging

from app.schemas.user import User, UserLogin, Token, TokenRefresh
from app.db.models.user import User as DBUser
from app.core import security
from app.core.config import settings
from app.api.deps import get_db, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def authenticate_user(db: Session, email: str, password: str):
    user = db.query(DBUser).filter(DBUser.email == email).first()
    if not user:
        logger.warning(f"Login attempt with non-existent email: {email}")
        return False
    if not user.is_active:
        logger.warning(f"Login attempt with inactive user: {email}")
        return False
    if not security.verify_password(password, user.hashed_password):
        logger.warning(f"Login attempt with incorrect password for email: {email}")
        return False
    return user


def _issue_tokens(user: DBUser) -> dict:
    return {
        "access_token": security.create_access_token(
            subject=user.email,
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        ),
        "refresh_token": security.create_refresh_token(
            subject=user.email,
            expires_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        ),
        "token_type": "bearer",
    }


@router.post("/login", response_model=Token)
def login(
    *,
    db: Session = Depends(get_db),
    login_data: UserLogin
) -> Any:
    """
    Log in with email and password to get an access token and a refresh token
    """
    try:
        user = authenticate_user(db, login_data.email, login_data.password)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user.last_login = func.now()
        db.commit()
        return _issue_tokens(user)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error during login: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during login"
        )


@router.post("/refresh", response_model=Token)
def refresh_token(
    *,
    db: Session = Depends(get_db),
    token_data: TokenRefresh
) -> Any:
    """
    Exchange a refresh token for a new token pair
    """
    payload = security.verify_token(token_data.refresh_token, is_refresh=True)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email: str = payload.get("sub")
    user = db.query(DBUser).filter(DBUser.email == email).first() if email else None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _issue_tokens(user)


@router.get("/me", response_model=User)
def get_me(current_user: DBUser = Depends(get_current_user)) -> Any:
    """
    Get current user information.
    """
    return current_user
