from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Any, Optional
import logging

from app.schemas.common import Page
from app.schemas.user import User, UserCreate, UserUpdate
from app.db.models.user import User as DBUser
from app.core import security
from app.api.deps import get_db, get_current_user, get_admin, integrity_error
from app.utils.pagination import paginate, search_filter, apply_sort

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=Page[User])
def list_users(
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = None,
    status_filter: str = Query("active", alias="status", pattern="^(active|inactive|all)$"),
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Any:
    """List users with search, role and status filters"""
    query = db.query(DBUser)
    condition = search_filter(search, [DBUser.username, DBUser.email, DBUser.first_name, DBUser.last_name])
    if condition is not None:
        query = query.filter(condition)
    if role:
        query = query.filter(DBUser.role == role)
    if status_filter == "active":
        query = query.filter(DBUser.is_active == True)
    elif status_filter == "inactive":
        query = query.filter(DBUser.is_active == False)

    query = apply_sort(query, DBUser, sort_by, sort_order,
                       ["created_at", "username", "email", "role", "last_login"], "created_at")
    users, pagination = paginate(query, page, limit)
    return {"data": users, "pagination": pagination}


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_admin)
) -> Any:
    """Create a user (admin only)"""
    if db.query(DBUser).filter(DBUser.email == user_in.email).first():
        raise HTTPException(status_code=409, detail="The user with this email already exists.")
    if db.query(DBUser).filter(DBUser.username == user_in.username).first():
        raise HTTPException(status_code=409, detail="The username is already taken.")

    data = user_in.model_dump(exclude={"password"})
    db_user = DBUser(**data, hashed_password=security.get_password_hash(user_in.password), is_active=True)
    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error creating user: {str(e)}")
        raise integrity_error(e, "A user with this email or username already exists.")
    logger.info(f"User {db_user.username} created by {current_user.username}")
    return db_user


@router.get("/{user_id}", response_model=User)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    db_user = db.query(DBUser).filter(DBUser.id == user_id).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")
    return db_user


@router.put("/{user_id}", response_model=User)
def update_user(
    user_id: int,
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_admin)
) -> Any:
    """Update a user; a password in the body replaces the stored hash (admin only)"""
    db_user = db.query(DBUser).filter(DBUser.id == user_id).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")

    update_data = user_in.model_dump(exclude_unset=True)
    if "email" in update_data and update_data["email"] != db_user.email:
        if db.query(DBUser).filter(DBUser.email == update_data["email"]).first():
            raise HTTPException(status_code=409, detail="The user with this email already exists.")
    if "username" in update_data and update_data["username"] != db_user.username:
        if db.query(DBUser).filter(DBUser.username == update_data["username"]).first():
            raise HTTPException(status_code=409, detail="The username is already taken.")

    password = update_data.pop("password", None)
    if password:
        db_user.hashed_password = security.get_password_hash(password)
    for field, value in update_data.items():
        setattr(db_user, field, value)

    db.commit()
    db.refresh(db_user)
    return db_user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_admin)
) -> Any:
    db_user = db.query(DBUser).filter(DBUser.id == user_id).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")
    if db_user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    db.delete(db_user)
    db.commit()
    return {"message": "User deleted successfully"}
