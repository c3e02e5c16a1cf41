from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.assets import DeleteResult
from ..schemas.users import UserCreate, UserResponse, UserUpdate
from ..services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return user_service.get_users(db)


@router.post("", response_model=UserResponse)
def create_user(user: UserCreate, db: Session = Depends(get_db)):
    return user_service.create_user(db, user)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(user_id: str, user_update: UserUpdate, db: Session = Depends(get_db)):
    return user_service.update_user(db, user_id, user_update)


@router.delete("/{user_id}", response_model=DeleteResult)
def delete_user(user_id: str, db: Session = Depends(get_db)):
    """Deactivate a user (accounts are never removed)"""
    return user_service.delete_user(db, user_id)
