from datetime import datetime
from typing import Dict, Optional
from enum import Enum

from pydantic import BaseModel

from .assets import AssetCategory, AssetCondition


class ReportFormat(str, Enum):
    pdf = "PDF"
    xlsx = "XLSX"


class ReportFilter(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    condition: Optional[AssetCondition] = None
    category: Optional[AssetCategory] = None
    owner: Optional[str] = None  # Exact match
    format: ReportFormat


class ReportResponse(BaseModel):
    url: str
    filename: str


class DashboardStats(BaseModel):
    total_assets: int
    archived_assets: int
    assets_by_condition: Dict[str, int]
    assets_by_category: Dict[str, int]
    pending_complaints: int
    upcoming_maintenance: int
    recent_activities: int
