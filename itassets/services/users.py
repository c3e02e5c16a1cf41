from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.security import create_access_token, get_password_hash, verify_password
from ..errors import InvalidState, NotFound, UniquenessViolation
from ..models.models import User, new_id, utcnow
from ..schemas.users import LoginRequest, UserCreate, UserUpdate
from .activity import log_activity


logger = structlog.get_logger(__name__)


def _commit_unique_email(db: Session, email: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise UniquenessViolation(f"User with email {email} already exists") from e


def create_user(db: Session, data: UserCreate) -> User:
    user_id = new_id()
    user = User(
        id=user_id,
        email=data.email,
        password_hash=get_password_hash(data.password),
        role=data.role.value,
        full_name=data.full_name,
        is_active=True,
    )
    db.add(user)
    # Flush first so a duplicate email fails before the activity row is staged
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise UniquenessViolation(f"User with email {data.email} already exists") from e
    log_activity(
        db,
        user_id,
        "CREATE_USER",
        "USER",
        entity_id=user_id,
        details=f"User account created: {data.email} ({data.role.value})",
    )
    db.commit()
    db.refresh(user)
    logger.info("user_created", user_id=user.id, role=user.role)
    return user


def login_user(db: Session, data: LoginRequest) -> Optional[dict]:
    """Returns {"user", "token"} or None for unknown email, inactive account or wrong password."""
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not user.is_active:
        return None
    if not verify_password(data.password, user.password_hash):
        logger.info("login_rejected", user_id=user.id)
        return None

    token = create_access_token(user)
    log_activity(
        db,
        user.id,
        "LOGIN",
        "USER",
        entity_id=user.id,
        details=f"User logged in from email: {data.email}",
    )
    db.commit()
    db.refresh(user)
    return {"user": user, "token": token}


def get_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at.desc()).all()


def update_user(db: Session, user_id: str, data: UserUpdate) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User", user_id)

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        return user

    changes = []
    if "email" in update_data and update_data["email"] != user.email:
        changes.append(f"email changed from {user.email} to {update_data['email']}")
        user.email = update_data["email"]
    if "password" in update_data:
        user.password_hash = get_password_hash(update_data["password"])
        changes.append("password updated")
    if "role" in update_data and update_data["role"].value != user.role:
        role = update_data["role"].value
        changes.append(f"role changed from {user.role} to {role}")
        user.role = role
    if "full_name" in update_data and update_data["full_name"] != user.full_name:
        changes.append(f"full name changed from {user.full_name} to {update_data['full_name']}")
        user.full_name = update_data["full_name"]
    if "is_active" in update_data and update_data["is_active"] != user.is_active:
        changes.append(f"active status changed from {user.is_active} to {update_data['is_active']}")
        user.is_active = update_data["is_active"]
    if not changes:
        return user
    user.updated_at = utcnow()

    log_activity(db, user.id, "UPDATE", "USER", entity_id=user.id, details=", ".join(changes))
    _commit_unique_email(db, user.email)
    db.refresh(user)
    logger.info("user_updated", user_id=user.id)
    return user


def delete_user(db: Session, user_id: str) -> dict:
    """Deactivates the account; user rows are never removed."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User", user_id)
    if not user.is_active:
        raise InvalidState("User is already deactivated")

    user.is_active = False
    user.updated_at = utcnow()
    log_activity(
        db,
        user.id,
        "USER_DEACTIVATED",
        "USER",
        entity_id=user.id,
        details=f"User {user.email} has been deactivated",
    )
    db.commit()
    logger.info("user_deactivated", user_id=user.id)
    return {"success": True}
