"""
Asset history ledger.
Append-only: rows are inserted here and only removed by purge_asset_history
when the owning asset is permanently deleted.
"""
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models.models import AssetHistory, utcnow


COMPLAINT_STATUS_FIELD = "complaint_status"

FieldChange = Tuple[str, Optional[str], Optional[str]]


def stringify(value: Any) -> Optional[str]:
    """Ledger values are stored as text; enums by their value, None stays null."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def compute_field_changes(current: Dict[str, Any], incoming: Dict[str, Any]) -> List[FieldChange]:
    """
    Compare the fields present in `incoming` against `current`.

    Args:
        current: Stored values keyed by field name
        incoming: Only the fields the caller supplied (null included)

    Returns:
        (field_name, old_value, new_value) for every field whose value differs,
        in the order the fields appear in `incoming`
    """
    changes = []
    for field_name, new_value in incoming.items():
        old_value = stringify(current.get(field_name))
        new_str = stringify(new_value)
        if old_value != new_str:
            changes.append((field_name, old_value, new_str))
    return changes


def record_field_changes(
    db: Session,
    asset_id: str,
    changes: Iterable[FieldChange],
    changed_by: Optional[str] = None,
) -> List[AssetHistory]:
    """Stage one history row per change. The caller commits."""
    changed_at = utcnow()
    rows = [
        AssetHistory(
            asset_id=asset_id,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
            changed_at=changed_at,
        )
        for field_name, old_value, new_value in changes
    ]
    db.add_all(rows)
    return rows


def record_complaint_status_change(
    db: Session,
    asset_id: str,
    old_status: Any,
    new_status: Any,
    changed_by: Optional[str] = None,
) -> AssetHistory:
    (row,) = record_field_changes(
        db,
        asset_id,
        [(COMPLAINT_STATUS_FIELD, stringify(old_status), stringify(new_status))],
        changed_by=changed_by,
    )
    return row


def purge_asset_history(db: Session, asset_id: str) -> int:
    return db.query(AssetHistory).filter(AssetHistory.asset_id == asset_id).delete(synchronize_session=False)


def get_asset_history(db: Session, asset_id: str) -> List[AssetHistory]:
    # Rows written in the same call share changed_at; their relative order is unspecified
    return (
        db.query(AssetHistory)
        .filter(AssetHistory.asset_id == asset_id)
        .order_by(AssetHistory.changed_at.desc())
        .all()
    )
