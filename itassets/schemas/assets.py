from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .complaints import ComplaintResponse
from .maintenance import MaintenanceResponse


# Enums
class AssetCategory(str, Enum):
    monitor = "MONITOR"
    cpu = "CPU"
    ac = "AC"
    chair = "CHAIR"
    table = "TABLE"
    dispenser = "DISPENSER"
    cctv = "CCTV"
    router = "ROUTER"
    lan_cable = "LAN_CABLE"
    other = "OTHER"


class AssetCondition(str, Enum):
    new = "NEW"
    good = "GOOD"
    under_repair = "UNDER_REPAIR"
    damaged = "DAMAGED"


# Asset Schemas
class AssetBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: AssetCategory
    condition: AssetCondition
    owner: Optional[str] = None
    photo_url: Optional[str] = None


class AssetCreate(AssetBase):
    pass


class AssetUpdate(BaseModel):
    """Partial update. Only fields present in the payload are considered."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[AssetCategory] = None
    condition: Optional[AssetCondition] = None
    owner: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("name", "category", "condition")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class AssetFilters(BaseModel):
    search: Optional[str] = None
    category: Optional[AssetCategory] = None
    condition: Optional[AssetCondition] = None
    # None: no filter. "" or "null": assets without an owner.
    owner: Optional[str] = None
    is_archived: Optional[bool] = None


class AssetResponse(AssetBase):
    id: str
    qr_code: str
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssetHistoryResponse(BaseModel):
    id: str
    asset_id: str
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[str] = None
    changed_at: datetime

    class Config:
        from_attributes = True


class DeleteResult(BaseModel):
    success: bool


class AIRecommendation(BaseModel):
    usability_assessment: str = Field(min_length=1)
    maintenance_prediction: str = Field(min_length=1)
    replacement_recommendation: str = Field(min_length=1)


class AssetWithRelations(AssetResponse):
    complaints: List[ComplaintResponse] = []
    history: List[AssetHistoryResponse] = []
    maintenance_schedules: List[MaintenanceResponse] = []
