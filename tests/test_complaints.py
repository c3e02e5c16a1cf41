import pytest

from itassets.errors import NotFound
from itassets.models.models import Asset, AssetHistory, Complaint
from itassets.schemas.complaints import ComplaintCreate, ComplaintStatus, ComplaintUpdate
from itassets.services import complaints as complaint_service


def _complaint(db, asset_id, status="NEEDS_REPAIR", description="Screen flickers"):
    return complaint_service.create_complaint(
        db,
        ComplaintCreate(asset_id=asset_id, complainant_name="Ann Lee", status=status, description=description),
    )


def _history(db, asset_id, field=None):
    query = db.query(AssetHistory).filter(AssetHistory.asset_id == asset_id)
    if field:
        query = query.filter(AssetHistory.field_name == field)
    return query.all()


def test_create_for_missing_asset(db):
    with pytest.raises(NotFound):
        _complaint(db, "missing")


def test_create_does_not_touch_ledger(db, make_asset):
    asset = make_asset()
    complaint = _complaint(db, asset.id, status="URGENT")
    assert complaint.status == "URGENT"
    assert _history(db, asset.id) == []


def test_status_change_is_recorded(db, make_asset):
    asset = make_asset()
    complaint = _complaint(db, asset.id)

    complaint_service.update_complaint(db, complaint.id, ComplaintUpdate(status=ComplaintStatus.under_repair))

    (row,) = _history(db, asset.id)
    assert row.field_name == "complaint_status"
    assert row.old_value == "NEEDS_REPAIR"
    assert row.new_value == "UNDER_REPAIR"


def test_description_only_update_writes_no_history(db, make_asset):
    asset = make_asset()
    complaint = _complaint(db, asset.id)
    updated = complaint_service.update_complaint(db, complaint.id, ComplaintUpdate(description="Now also buzzing"))
    assert updated.description == "Now also buzzing"
    assert _history(db, asset.id) == []


def test_same_status_writes_no_history(db, make_asset):
    asset = make_asset()
    complaint = _complaint(db, asset.id, status="URGENT")
    complaint_service.update_complaint(db, complaint.id, ComplaintUpdate(status=ComplaintStatus.urgent))
    assert _history(db, asset.id) == []


def test_update_missing_complaint(db):
    with pytest.raises(NotFound):
        complaint_service.update_complaint(db, "missing", ComplaintUpdate(status=ComplaintStatus.resolved))


def test_resolving_last_open_complaint_heals_asset(db, make_asset):
    asset = make_asset(condition="UNDER_REPAIR")
    complaint = _complaint(db, asset.id, status="URGENT")

    complaint_service.update_complaint(db, complaint.id, ComplaintUpdate(status=ComplaintStatus.resolved))

    db.expire_all()
    assert db.query(Asset).filter(Asset.id == asset.id).one().condition == "GOOD"
    status_rows = _history(db, asset.id, "complaint_status")
    condition_rows = _history(db, asset.id, "condition")
    assert [(r.old_value, r.new_value) for r in status_rows] == [("URGENT", "RESOLVED")]
    assert [(r.old_value, r.new_value) for r in condition_rows] == [("UNDER_REPAIR", "GOOD")]


def test_open_sibling_blocks_heal(db, make_asset):
    asset = make_asset(condition="UNDER_REPAIR")
    first = _complaint(db, asset.id)
    _complaint(db, asset.id, status="URGENT", description="Cable frayed")

    complaint_service.update_complaint(db, first.id, ComplaintUpdate(status=ComplaintStatus.resolved))

    db.expire_all()
    assert db.query(Asset).filter(Asset.id == asset.id).one().condition == "UNDER_REPAIR"
    assert _history(db, asset.id, "condition") == []
    assert len(_history(db, asset.id, "complaint_status")) == 1


def test_resolved_siblings_do_not_block_heal(db, make_asset):
    asset = make_asset(condition="UNDER_REPAIR")
    first = _complaint(db, asset.id)
    second = _complaint(db, asset.id)
    complaint_service.update_complaint(db, first.id, ComplaintUpdate(status=ComplaintStatus.resolved))
    complaint_service.update_complaint(db, second.id, ComplaintUpdate(status=ComplaintStatus.resolved))

    db.expire_all()
    assert db.query(Asset).filter(Asset.id == asset.id).one().condition == "GOOD"


def test_heal_only_applies_to_assets_under_repair(db, make_asset):
    asset = make_asset(condition="DAMAGED")
    complaint = _complaint(db, asset.id)

    complaint_service.update_complaint(db, complaint.id, ComplaintUpdate(status=ComplaintStatus.resolved))

    db.expire_all()
    assert db.query(Asset).filter(Asset.id == asset.id).one().condition == "DAMAGED"
    assert len(_history(db, asset.id)) == 1


def test_heal_failure_keeps_complaint_update(db, make_asset, monkeypatch):
    asset = make_asset(condition="UNDER_REPAIR")
    complaint = _complaint(db, asset.id)

    def _boom(session, resolved):
        raise RuntimeError("asset store unavailable")

    monkeypatch.setattr(complaint_service, "heal_asset_after_resolution", _boom)
    with pytest.raises(RuntimeError):
        complaint_service.update_complaint(db, complaint.id, ComplaintUpdate(status=ComplaintStatus.resolved))

    db.expire_all()
    assert db.query(Complaint).filter(Complaint.id == complaint.id).one().status == "RESOLVED"
    assert len(_history(db, asset.id, "complaint_status")) == 1
    assert db.query(Asset).filter(Asset.id == asset.id).one().condition == "UNDER_REPAIR"


def test_list_filters(db, make_asset):
    a, b = make_asset(), make_asset()
    _complaint(db, a.id, status="URGENT")
    _complaint(db, a.id)
    _complaint(db, b.id, status="URGENT")

    assert len(complaint_service.get_complaints(db)) == 3
    assert len(complaint_service.get_complaints(db, asset_id=a.id)) == 2
    assert len(complaint_service.get_complaints(db, status=ComplaintStatus.urgent)) == 2
    assert len(complaint_service.get_complaints(db, asset_id=b.id, status=ComplaintStatus.needs_repair)) == 0
