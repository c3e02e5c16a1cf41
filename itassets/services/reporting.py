"""
Read-only aggregates and listings over current table state.
"""
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

import structlog
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ExternalCollaboratorError, check_date_range
from ..models.models import Asset, Complaint, MaintenanceSchedule, UserActivityLog, utcnow
from ..reports import renderers
from ..schemas.assets import AssetFilters
from ..schemas.complaints import ComplaintStatus
from ..schemas.reports import ReportFilter, ReportFormat


logger = structlog.get_logger(__name__)

UPCOMING_MAINTENANCE_DAYS = 30
RECENT_ACTIVITY_DAYS = 7
NULL_OWNER_TOKENS = ("", "null")


def _count_by(db: Session, column) -> Dict[str, int]:
    rows = (
        db.query(column, func.count(Asset.id))
        .filter(Asset.is_archived.is_(False))
        .group_by(column)
        .all()
    )
    return {value: count for value, count in rows}


def get_dashboard_stats(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Each figure comes from its own query; they are not a consistent snapshot
    if rows change in between.
    """
    now = now or utcnow()

    total_assets = db.query(Asset).count()
    archived_assets = db.query(Asset).filter(Asset.is_archived.is_(True)).count()
    assets_by_condition = _count_by(db, Asset.condition)
    assets_by_category = _count_by(db, Asset.category)
    pending_complaints = db.query(Complaint).filter(Complaint.status != ComplaintStatus.resolved.value).count()
    upcoming_maintenance = db.query(MaintenanceSchedule).filter(
        MaintenanceSchedule.is_completed.is_(False),
        MaintenanceSchedule.scheduled_date >= now,
        MaintenanceSchedule.scheduled_date <= now + timedelta(days=UPCOMING_MAINTENANCE_DAYS),
    ).count()
    recent_activities = db.query(UserActivityLog).filter(
        UserActivityLog.timestamp >= now - timedelta(days=RECENT_ACTIVITY_DAYS)
    ).count()

    return {
        "total_assets": total_assets,
        "archived_assets": archived_assets,
        "assets_by_condition": assets_by_condition,
        "assets_by_category": assets_by_category,
        "pending_complaints": pending_complaints,
        "upcoming_maintenance": upcoming_maintenance,
        "recent_activities": recent_activities,
    }


def list_assets(db: Session, filters: Optional[AssetFilters] = None) -> List[Asset]:
    filters = filters or AssetFilters()
    query = db.query(Asset)

    if filters.search and filters.search.strip():
        search_term = f"%{filters.search}%"
        query = query.filter(
            or_(
                Asset.name.ilike(search_term),
                Asset.description.ilike(search_term),
            )
        )
    if filters.category:
        query = query.filter(Asset.category == filters.category.value)
    if filters.condition:
        query = query.filter(Asset.condition == filters.condition.value)
    if filters.owner is not None:
        if filters.owner in NULL_OWNER_TOKENS:
            query = query.filter(Asset.owner.is_(None))
        else:
            query = query.filter(Asset.owner == filters.owner)
    if filters.is_archived is not None:
        query = query.filter(Asset.is_archived.is_(filters.is_archived))

    return query.order_by(Asset.created_at.desc()).all()


def report_assets(db: Session, filters: ReportFilter) -> List[Asset]:
    check_date_range(filters.start_date, filters.end_date)
    query = db.query(Asset)
    if filters.start_date is not None:
        query = query.filter(Asset.created_at >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(Asset.created_at <= filters.end_date)
    if filters.condition is not None:
        query = query.filter(Asset.condition == filters.condition.value)
    if filters.category is not None:
        query = query.filter(Asset.category == filters.category.value)
    if filters.owner is not None:
        query = query.filter(Asset.owner == filters.owner)
    return query.order_by(Asset.created_at.asc()).all()


def _filename_token(value: str) -> str:
    # Whitespace becomes "_"; path separators must not reach the reports directory
    return re.sub(r"[\\/]", "-", re.sub(r"\s+", "_", value))


def report_filename(filters: ReportFilter, generated_at: datetime) -> str:
    timestamp = generated_at.strftime("%Y%m%dT%H%M%S")
    parts = [
        filters.condition.value if filters.condition else None,
        filters.category.value if filters.category else None,
        _filename_token(filters.owner) if filters.owner else None,
        f"from_{filters.start_date.date().isoformat()}" if filters.start_date else None,
        f"to_{filters.end_date.date().isoformat()}" if filters.end_date else None,
    ]
    suffix = "_".join(p for p in parts if p)
    base = f"asset_report_{timestamp}{'_' + suffix if suffix else ''}"
    return f"{base}.{filters.format.value.lower()}"


def report_path(filename: str) -> Path:
    return Path(settings.reports_dir) / filename


def generate_report(db: Session, filters: ReportFilter) -> dict:
    generated_at = utcnow()
    assets = report_assets(db, filters)
    filename = report_filename(filters, generated_at)
    rows = renderers.rows_for(assets)
    title = "Asset Report"

    try:
        if filters.format == ReportFormat.pdf:
            content = renderers.render_pdf(title, rows, generated_at)
        else:
            content = renderers.render_xlsx(title, rows, generated_at)
        path = report_path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except Exception as e:
        logger.error("report_render_failed", filename=filename, error=str(e))
        raise ExternalCollaboratorError("document renderer", str(e)) from e

    logger.info("report_generated", filename=filename, assets=len(assets), format=filters.format.value)
    return {
        "url": f"/reports/download/{quote(filename)}",
        "filename": filename,
    }
