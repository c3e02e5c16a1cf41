from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.reports import DashboardStats, ReportFilter, ReportResponse
from ..schemas.users import ActivityLogResponse
from ..services import reporting
from ..services.activity import get_user_activity_logs

router = APIRouter(tags=["reports"])

_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@router.get("/dashboard/stats", response_model=DashboardStats)
def get_dashboard_stats(db: Session = Depends(get_db)):
    return reporting.get_dashboard_stats(db)


@router.post("/reports", response_model=ReportResponse)
def generate_report(filters: ReportFilter, db: Session = Depends(get_db)):
    return reporting.generate_report(db, filters)


@router.get("/reports/download/{filename}")
def download_report(filename: str):
    if "/" in filename or "\\" in filename or filename.startswith("."):
        raise HTTPException(status_code=400, detail="Invalid filename")
    path = reporting.report_path(filename)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Report not found")
    return FileResponse(path, media_type=_MEDIA_TYPES.get(path.suffix, "application/octet-stream"), filename=filename)


@router.get("/activity-logs", response_model=List[ActivityLogResponse])
def list_activity_logs(
    user_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    action: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return get_user_activity_logs(db, user_id=user_id, start_date=start_date, end_date=end_date, action=action)
