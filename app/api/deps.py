from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
from app.db.session import SessionLocal
from app.db.models.user import User as DBUser
from app.core import security


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


security_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db)
) -> DBUser:
    """
    Get the current authenticated user from the JWT bearer token.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing authentication token. Please provide a Bearer token.")

    payload = security.verify_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise _unauthorized("Invalid or expired token. Please login again.")

    email: str = payload.get("sub")
    if email is None:
        raise _unauthorized("Invalid token payload. Please login again.")

    user = db.query(DBUser).filter(DBUser.email == email).first()
    if user is None:
        raise _unauthorized("User not found. Please login again.")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated. Please contact an administrator.",
        )

    return user


def require_role(allowed_roles: List[str]):
    """
    Dependency factory to check if user has required role.
    """
    def role_checker(current_user: DBUser = Depends(get_current_user)) -> DBUser:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(allowed_roles)}. Your role: {current_user.role}"
            )
        return current_user
    return role_checker


get_admin = require_role(["admin"])


def actor_name(user: Optional[DBUser]) -> str:
    """Name stamped into created_by / updated_by columns."""
    if user is None:
        return "system"
    return user.username or user.email or "system"


def integrity_error(error: IntegrityError, duplicate_detail: str) -> HTTPException:
    """409 for a unique-key clash, 400 for any other constraint failure."""
    message = str(getattr(error, "orig", None) or error).lower()
    if "unique" in message or "duplicate" in message:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=duplicate_detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The record violates a database constraint")
