"""
Complaint lifecycle.

Resolving the last open complaint of an asset that is UNDER_REPAIR heals the
asset back to GOOD. This runs as two steps with separate commits:

1. the complaint update and its complaint_status history row;
2. the asset condition change and its condition history row.

If step 2 fails, step 1 stays committed and the error propagates.
"""
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models.models import Asset, Complaint, utcnow
from ..schemas.assets import AssetCondition
from ..schemas.complaints import ComplaintCreate, ComplaintStatus, ComplaintUpdate
from . import audit


logger = structlog.get_logger(__name__)


def create_complaint(db: Session, data: ComplaintCreate) -> Complaint:
    asset = db.query(Asset).filter(Asset.id == data.asset_id).first()
    if not asset:
        raise NotFound("Asset", data.asset_id)

    complaint = Complaint(
        asset_id=data.asset_id,
        complainant_name=data.complainant_name,
        status=data.status.value,
        description=data.description,
    )
    db.add(complaint)
    db.commit()
    db.refresh(complaint)
    logger.info("complaint_created", complaint_id=complaint.id, asset_id=complaint.asset_id, status=complaint.status)
    return complaint


def update_complaint(db: Session, complaint_id: str, data: ComplaintUpdate) -> Complaint:
    complaint = db.query(Complaint).filter(Complaint.id == complaint_id).first()
    if not complaint:
        raise NotFound("Complaint", complaint_id)

    previous_status = complaint.status
    update_data = data.model_dump(exclude_unset=True)
    new_status = update_data.get("status")
    if new_status is not None:
        complaint.status = new_status.value
    if "description" in update_data:
        complaint.description = update_data["description"]
    complaint.updated_at = utcnow()

    status_changed = new_status is not None and new_status.value != previous_status
    if status_changed:
        audit.record_complaint_status_change(db, complaint.asset_id, previous_status, new_status)
    db.commit()
    db.refresh(complaint)

    if status_changed and new_status == ComplaintStatus.resolved:
        try:
            heal_asset_after_resolution(db, complaint)
        except Exception as e:
            db.rollback()
            logger.error(
                "complaint_auto_heal_failed",
                complaint_id=complaint.id,
                asset_id=complaint.asset_id,
                error=str(e),
            )
            raise
    return complaint


def heal_asset_after_resolution(db: Session, complaint: Complaint) -> Optional[Asset]:
    """
    Move the complaint's asset from UNDER_REPAIR to GOOD when no other complaint
    for it is still open. Returns the healed asset, or None if nothing changed.
    """
    siblings = db.query(Complaint).filter(Complaint.asset_id == complaint.asset_id).all()
    still_open = [
        c for c in siblings
        if c.id != complaint.id and c.status != ComplaintStatus.resolved.value
    ]
    if still_open:
        logger.info("complaint_auto_heal_skipped", asset_id=complaint.asset_id, open_complaints=len(still_open))
        return None

    asset = db.query(Asset).filter(Asset.id == complaint.asset_id).first()
    if not asset or asset.condition != AssetCondition.under_repair.value:
        return None

    changes = [("condition", asset.condition, AssetCondition.good.value)]
    asset.condition = AssetCondition.good.value
    asset.updated_at = utcnow()
    audit.record_field_changes(db, asset.id, changes, changed_by=None)
    db.commit()
    logger.info("complaint_auto_heal_applied", asset_id=asset.id, complaint_id=complaint.id)
    return asset


def get_complaints(
    db: Session,
    asset_id: Optional[str] = None,
    status: Optional[ComplaintStatus] = None,
) -> List[Complaint]:
    query = db.query(Complaint)
    if asset_id:
        query = query.filter(Complaint.asset_id == asset_id)
    if status:
        query = query.filter(Complaint.status == status.value)
    return query.order_by(Complaint.created_at.desc()).all()
