import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Text,
    Index,
)
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def string_pk() -> Mapped[str]:
    return mapped_column(String(64), primary_key=True, default=new_id)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetimes on every backend.

    Values are converted to UTC before binding (naive values are taken as UTC)
    and come back aware. SQLite would otherwise store the wall-clock time of
    whatever offset was supplied.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = string_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # ADMIN|EMPLOYEE
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    activity_logs = relationship("UserActivityLog", back_populates="user")


# =====================
# IT asset domain
# =====================

class Asset(Base):
    """Tracked physical items: monitors, chairs, routers, ..."""
    __tablename__ = "assets"

    id: Mapped[str] = string_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # MONITOR|CPU|AC|CHAIR|TABLE|DISPENSER|CCTV|ROUTER|LAN_CABLE|OTHER
    condition: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # NEW|GOOD|UNDER_REPAIR|DAMAGED
    owner: Mapped[Optional[str]] = mapped_column(String(255), index=True)  # Free text or user id
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    qr_code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)  # QR_<id>, never updated
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    # Relationships (hard delete removes dependents explicitly, see services.assets)
    complaints = relationship("Complaint", back_populates="asset", order_by="Complaint.created_at")
    history = relationship("AssetHistory", back_populates="asset", order_by="AssetHistory.changed_at.desc()")
    maintenance_schedules = relationship("MaintenanceSchedule", back_populates="asset", order_by="MaintenanceSchedule.scheduled_date.desc()")

    __table_args__ = (
        Index('idx_asset_archived_condition', 'is_archived', 'condition'),
        Index('idx_asset_archived_category', 'is_archived', 'category'),
    )


class Complaint(Base):
    __tablename__ = "complaints"

    id: Mapped[str] = string_pk()
    asset_id: Mapped[str] = mapped_column(String(64), ForeignKey("assets.id"), nullable=False, index=True)
    complainant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # NEEDS_REPAIR|URGENT|UNDER_REPAIR|RESOLVED
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    asset = relationship("Asset", back_populates="complaints")


class AssetHistory(Base):
    """Append-only field change ledger for assets"""
    __tablename__ = "asset_history"

    id: Mapped[str] = string_pk()
    asset_id: Mapped[str] = mapped_column(String(64), ForeignKey("assets.id"), nullable=False, index=True)
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)  # Asset column or complaint_status
    old_value: Mapped[Optional[str]] = mapped_column(Text)
    new_value: Mapped[Optional[str]] = mapped_column(Text)
    changed_by: Mapped[Optional[str]] = mapped_column(String(64), ForeignKey("users.id"))
    changed_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False, index=True)

    asset = relationship("Asset", back_populates="history")
    changed_by_user = relationship("User", foreign_keys=[changed_by])

    __table_args__ = (
        Index('idx_asset_history_asset_date', 'asset_id', 'changed_at'),
    )


class MaintenanceSchedule(Base):
    __tablename__ = "maintenance_schedules"

    id: Mapped[str] = string_pk()
    asset_id: Mapped[str] = mapped_column(String(64), ForeignKey("assets.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    scheduled_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    asset = relationship("Asset", back_populates="maintenance_schedules")
    created_by_user = relationship("User", foreign_keys=[created_by])

    __table_args__ = (
        Index('idx_maintenance_pending_date', 'is_completed', 'scheduled_date'),
    )


class UserActivityLog(Base):
    """Append-only record of user actions"""
    __tablename__ = "user_activity_logs"

    id: Mapped[str] = string_pk()
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)  # CREATE|LOGIN|RESTORE_ASSET|...
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # ASSET|USER|MAINTENANCE_SCHEDULE
    entity_id: Mapped[Optional[str]] = mapped_column(String(64))
    details: Mapped[Optional[str]] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="activity_logs")

    __table_args__ = (
        Index('idx_activity_user_time', 'user_id', 'timestamp'),
    )
