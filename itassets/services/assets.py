"""
Asset lifecycle: create, update with field history, archive, restore, delete.
"""
from enum import Enum
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..errors import InvalidState, NotFound, UniquenessViolation
from ..models.models import Asset, AssetHistory, Complaint, MaintenanceSchedule, new_id, utcnow
from ..schemas.assets import AssetCreate, AssetUpdate
from . import audit
from .activity import ensure_system_actor, log_activity, log_activity_best_effort


logger = structlog.get_logger(__name__)

QR_CODE_PREFIX = "QR_"

TRACKED_FIELDS = ("name", "description", "category", "condition", "owner", "photo_url")


def qr_code_for(asset_id: str) -> str:
    return f"{QR_CODE_PREFIX}{asset_id}"


def _column_value(value):
    return value.value if isinstance(value, Enum) else value


def _get_asset_or_404(db: Session, asset_id: str) -> Asset:
    asset = db.query(Asset).filter(Asset.id == asset_id).first()
    if not asset:
        raise NotFound("Asset", asset_id)
    return asset


def create_asset(db: Session, data: AssetCreate) -> Asset:
    asset_id = new_id()
    asset = Asset(
        id=asset_id,
        name=data.name,
        description=data.description,
        category=data.category.value,
        condition=data.condition.value,
        owner=data.owner,
        photo_url=data.photo_url,
        qr_code=qr_code_for(asset_id),
        is_archived=False,
    )
    db.add(asset)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise UniquenessViolation(f"Asset scan code {asset.qr_code} already exists") from e
    db.refresh(asset)
    logger.info("asset_created", asset_id=asset.id, category=asset.category)

    # Creation stays committed whatever happens to the activity row
    if data.owner:
        log_activity_best_effort(
            db,
            data.owner,
            "CREATE",
            "ASSET",
            entity_id=asset.id,
            details=f"Created asset: {asset.name} ({asset.category})",
            active_user_only=True,
        )
    return asset


def update_asset(db: Session, asset_id: str, data: AssetUpdate) -> Asset:
    asset = _get_asset_or_404(db, asset_id)

    incoming = {
        key: _column_value(value)
        for key, value in data.model_dump(exclude_unset=True).items()
        if key in TRACKED_FIELDS
    }
    current = {key: getattr(asset, key) for key in incoming}
    changes = audit.compute_field_changes(current, incoming)
    if not changes:
        return asset

    for field_name, _old, _new in changes:
        setattr(asset, field_name, incoming[field_name])
    asset.updated_at = utcnow()
    audit.record_field_changes(db, asset.id, changes, changed_by=None)
    db.commit()
    db.refresh(asset)
    logger.info("asset_updated", asset_id=asset.id, fields=[c[0] for c in changes])
    return asset


def archive_asset(db: Session, asset_id: str) -> Asset:
    # No guard against re-archiving: an archived asset is archived again
    asset = _get_asset_or_404(db, asset_id)
    asset.is_archived = True
    asset.updated_at = utcnow()
    db.commit()
    db.refresh(asset)
    logger.info("asset_archived", asset_id=asset.id)
    return asset


def restore_asset(db: Session, asset_id: str) -> Asset:
    asset = _get_asset_or_404(db, asset_id)
    if not asset.is_archived:
        raise InvalidState(f"Asset with id {asset_id} is not archived")

    asset.is_archived = False
    asset.updated_at = utcnow()
    actor = ensure_system_actor(db)
    log_activity(
        db,
        actor.id,
        "RESTORE_ASSET",
        "ASSET",
        entity_id=asset.id,
        details=f'Asset "{asset.name}" restored from archive',
    )
    db.commit()
    db.refresh(asset)
    logger.info("asset_restored", asset_id=asset.id)
    return asset


def delete_asset(db: Session, asset_id: str, permanent: bool = False) -> dict:
    """
    Soft delete archives the asset; permanent delete removes it with its
    complaints, history and maintenance schedules in one transaction.
    A missing asset is reported as success=False, not an error.
    """
    asset = db.query(Asset).filter(Asset.id == asset_id).first()
    if not asset:
        return {"success": False}

    if not permanent:
        archive_asset(db, asset_id)
        return {"success": True}

    try:
        db.query(Complaint).filter(Complaint.asset_id == asset_id).delete(synchronize_session=False)
        audit.purge_asset_history(db, asset_id)
        db.query(MaintenanceSchedule).filter(MaintenanceSchedule.asset_id == asset_id).delete(synchronize_session=False)
        db.query(Asset).filter(Asset.id == asset_id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("asset_deleted", asset_id=asset_id, permanent=True)
    return {"success": True}


def get_asset_by_id(db: Session, asset_id: str) -> Optional[Asset]:
    """Asset with complaints, history (newest first) and maintenance schedules, or None."""
    return (
        db.query(Asset)
        .options(
            selectinload(Asset.complaints),
            selectinload(Asset.history),
            selectinload(Asset.maintenance_schedules),
        )
        .filter(Asset.id == asset_id)
        .first()
    )


def get_asset_history(db: Session, asset_id: str) -> List[AssetHistory]:
    return audit.get_asset_history(db, asset_id)
