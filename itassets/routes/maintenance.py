from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.maintenance import MaintenanceCreate, MaintenanceResponse, MaintenanceUpdate
from ..services import maintenance as maintenance_service

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("", response_model=List[MaintenanceResponse])
def list_maintenance_schedules(
    asset_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    is_completed: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    return maintenance_service.get_maintenance_schedules(
        db,
        asset_id=asset_id,
        start_date=start_date,
        end_date=end_date,
        is_completed=is_completed,
    )


@router.post("", response_model=MaintenanceResponse)
def create_maintenance(schedule: MaintenanceCreate, db: Session = Depends(get_db)):
    return maintenance_service.create_maintenance(db, schedule)


@router.patch("/{schedule_id}", response_model=MaintenanceResponse)
def update_maintenance(schedule_id: str, schedule_update: MaintenanceUpdate, db: Session = Depends(get_db)):
    return maintenance_service.update_maintenance(db, schedule_id, schedule_update)
