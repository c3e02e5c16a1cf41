from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import NotFound, check_date_range
from ..models.models import Asset, MaintenanceSchedule, User, utcnow
from ..schemas.maintenance import MaintenanceCreate, MaintenanceUpdate
from .activity import log_activity


logger = structlog.get_logger(__name__)


def create_maintenance(db: Session, data: MaintenanceCreate) -> MaintenanceSchedule:
    if not db.query(Asset).filter(Asset.id == data.asset_id).first():
        raise NotFound("Asset", data.asset_id)
    if not db.query(User).filter(User.id == data.created_by).first():
        raise NotFound("User", data.created_by)

    schedule = MaintenanceSchedule(
        asset_id=data.asset_id,
        title=data.title,
        description=data.description,
        scheduled_date=data.scheduled_date,
        is_completed=False,
        created_by=data.created_by,
    )
    db.add(schedule)
    db.flush()
    log_activity(
        db,
        data.created_by,
        "CREATE_MAINTENANCE",
        "MAINTENANCE_SCHEDULE",
        entity_id=schedule.id,
        details=f"Scheduled maintenance: {data.title} for asset {data.asset_id} on {data.scheduled_date.date().isoformat()}",
    )
    db.commit()
    db.refresh(schedule)
    logger.info("maintenance_scheduled", schedule_id=schedule.id, asset_id=schedule.asset_id)
    return schedule


def update_maintenance(db: Session, schedule_id: str, data: MaintenanceUpdate) -> MaintenanceSchedule:
    schedule = db.query(MaintenanceSchedule).filter(MaintenanceSchedule.id == schedule_id).first()
    if not schedule:
        raise NotFound("Maintenance schedule", schedule_id)

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(schedule, key, value)
    schedule.updated_at = utcnow()
    db.commit()
    db.refresh(schedule)
    return schedule


def get_maintenance_schedules(
    db: Session,
    asset_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    is_completed: Optional[bool] = None,
) -> List[MaintenanceSchedule]:
    check_date_range(start_date, end_date)
    query = db.query(MaintenanceSchedule)

    if asset_id:
        query = query.filter(MaintenanceSchedule.asset_id == asset_id)
    if start_date:
        query = query.filter(MaintenanceSchedule.scheduled_date >= start_date)
    if end_date:
        query = query.filter(MaintenanceSchedule.scheduled_date <= end_date)
    if is_completed is not None:
        query = query.filter(MaintenanceSchedule.is_completed == is_completed)

    return query.order_by(MaintenanceSchedule.scheduled_date.desc()).all()
