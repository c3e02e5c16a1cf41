from datetime import datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ComplaintStatus(str, Enum):
    needs_repair = "NEEDS_REPAIR"
    urgent = "URGENT"
    under_repair = "UNDER_REPAIR"
    resolved = "RESOLVED"


class ComplaintCreate(BaseModel):
    asset_id: str = Field(min_length=1)
    complainant_name: str = Field(min_length=1)
    status: ComplaintStatus
    description: str = Field(min_length=1)


class ComplaintUpdate(BaseModel):
    status: Optional[ComplaintStatus] = None
    description: Optional[str] = Field(default=None, min_length=1)

    @field_validator("status", "description")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class ComplaintResponse(BaseModel):
    id: str
    asset_id: str
    complainant_name: str
    status: ComplaintStatus
    description: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
