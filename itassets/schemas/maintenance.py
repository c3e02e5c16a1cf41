from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MaintenanceCreate(BaseModel):
    asset_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    scheduled_date: datetime
    created_by: str = Field(min_length=1)


class MaintenanceUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    is_completed: Optional[bool] = None

    @field_validator("title", "scheduled_date", "is_completed")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class MaintenanceResponse(BaseModel):
    id: str
    asset_id: str
    title: str
    description: Optional[str] = None
    scheduled_date: datetime
    is_completed: bool
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
