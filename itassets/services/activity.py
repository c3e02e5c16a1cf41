"""
User activity log.
Append-only record of who did what to which entity.
"""
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.security import UNUSABLE_PASSWORD
from ..config import settings
from ..errors import UniquenessViolation, check_date_range
from ..models.models import User, UserActivityLog, utcnow


logger = structlog.get_logger(__name__)


def log_activity(
    db: Session,
    user_id: str,
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[str] = None,
) -> UserActivityLog:
    """Stage an activity row. The caller commits."""
    entry = UserActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        timestamp=utcnow(),
    )
    db.add(entry)
    return entry


def find_active_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()


def log_activity_best_effort(
    db: Session,
    user_id: str,
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[str] = None,
    active_user_only: bool = False,
) -> Optional[UserActivityLog]:
    """
    Write an activity row in its own transaction.

    Everything pending in the session must already be committed: on failure
    this rolls the session back and returns None instead of raising.
    With active_user_only, nothing is written unless user_id names an active
    user; that lookup fails the same way.
    """
    try:
        if active_user_only and not find_active_user(db, user_id):
            return None
        entry = log_activity(db, user_id, action, entity_type, entity_id=entity_id, details=details)
        db.commit()
        return entry
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("activity_log_failed", action=action, entity_type=entity_type, entity_id=entity_id, error=str(e))
        return None


def ensure_system_actor(db: Session) -> User:
    """Return the non-human user that automated actions are attributed to, creating it if missing."""
    actor = db.query(User).filter(User.id == settings.system_actor_id).first()
    if actor:
        return actor
    actor = User(
        id=settings.system_actor_id,
        email=settings.system_actor_email,
        password_hash=UNUSABLE_PASSWORD,
        role="ADMIN",
        full_name="System User",
        is_active=False,
    )
    db.add(actor)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise UniquenessViolation(
            f"System actor cannot be created: email {settings.system_actor_email} belongs to another user"
        ) from e
    logger.info("system_actor_created", user_id=actor.id)
    return actor


def get_user_activity_logs(
    db: Session,
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    action: Optional[str] = None,
) -> List[UserActivityLog]:
    check_date_range(start_date, end_date)
    query = db.query(UserActivityLog)

    if user_id:
        query = query.filter(UserActivityLog.user_id == user_id)
    if start_date:
        query = query.filter(UserActivityLog.timestamp >= start_date)
    if end_date:
        query = query.filter(UserActivityLog.timestamp <= end_date)
    if action:
        query = query.filter(UserActivityLog.action == action)

    return query.order_by(UserActivityLog.timestamp.desc()).all()
