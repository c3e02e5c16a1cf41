import pytest
from sqlalchemy.exc import SQLAlchemyError

from itassets.config import settings
from itassets.errors import InvalidState, NotFound, UniquenessViolation
from itassets.models.models import (
    Asset,
    AssetHistory,
    Complaint,
    MaintenanceSchedule,
    User,
    UserActivityLog,
)
from itassets.schemas.assets import AssetUpdate
from itassets.schemas.complaints import ComplaintCreate
from itassets.schemas.maintenance import MaintenanceCreate
from itassets.services import activity
from itassets.services import assets as asset_service
from itassets.services import complaints as complaint_service
from itassets.services import maintenance as maintenance_service


def _activity(db, action):
    return db.query(UserActivityLog).filter(UserActivityLog.action == action).all()


class TestCreateAsset:
    def test_defaults_and_scan_code(self, make_asset):
        asset = make_asset()
        assert asset.is_archived is False
        assert asset.qr_code == f"QR_{asset.id}"
        assert asset.category == "MONITOR"
        assert asset.condition == "NEW"

    def test_scan_codes_are_unique(self, make_asset):
        a, b = make_asset(), make_asset()
        assert a.qr_code != b.qr_code

    def test_logs_create_for_active_owner(self, db, make_asset, make_user):
        owner = make_user()
        asset = make_asset(owner=owner.id)
        logs = _activity(db, "CREATE")
        assert len(logs) == 1
        assert logs[0].user_id == owner.id
        assert logs[0].entity_id == asset.id
        assert logs[0].entity_type == "ASSET"

    def test_free_text_owner_is_not_logged(self, db, make_asset):
        make_asset(owner="Reception desk")
        assert _activity(db, "CREATE") == []

    def test_inactive_owner_is_not_logged(self, db, make_asset, make_user):
        owner = make_user()
        owner.is_active = False
        db.commit()
        make_asset(owner=owner.id)
        assert _activity(db, "CREATE") == []

    def test_activity_failure_keeps_asset(self, db, make_asset, make_user, monkeypatch):
        owner = make_user()

        def _boom(*args, **kwargs):
            raise SQLAlchemyError("activity table unavailable")

        monkeypatch.setattr(activity, "log_activity", _boom)
        asset = make_asset(owner=owner.id)

        assert db.query(Asset).filter(Asset.id == asset.id).count() == 1
        assert _activity(db, "CREATE") == []

    def test_owner_lookup_failure_keeps_asset(self, db, make_asset, make_user, monkeypatch):
        owner = make_user()

        def _boom(*args, **kwargs):
            raise SQLAlchemyError("users table unavailable")

        monkeypatch.setattr(activity, "find_active_user", _boom)
        asset = make_asset(owner=owner.id)

        assert db.query(Asset).filter(Asset.id == asset.id).count() == 1
        assert _activity(db, "CREATE") == []


class TestUpdateAsset:
    def test_identical_values_are_a_no_op(self, db, make_asset):
        asset = make_asset(owner="u1")
        before = asset.updated_at
        result = asset_service.update_asset(
            db,
            asset.id,
            AssetUpdate(name=asset.name, description=asset.description, category="MONITOR", condition="NEW", owner="u1"),
        )
        assert result.updated_at == before
        assert db.query(AssetHistory).count() == 0

    def test_empty_update_is_a_no_op(self, db, make_asset):
        asset = make_asset()
        asset_service.update_asset(db, asset.id, AssetUpdate())
        assert db.query(AssetHistory).count() == 0

    def test_one_history_row_per_changed_field(self, db, make_asset):
        asset = make_asset(category="MONITOR", condition="NEW")
        updated = asset_service.update_asset(db, asset.id, AssetUpdate(condition="GOOD", owner="u1"))

        assert updated.condition == "GOOD"
        assert updated.owner == "u1"
        rows = {h.field_name: h for h in asset_service.get_asset_history(db, asset.id)}
        assert set(rows) == {"condition", "owner"}
        assert (rows["condition"].old_value, rows["condition"].new_value) == ("NEW", "GOOD")
        assert (rows["owner"].old_value, rows["owner"].new_value) == (None, "u1")
        assert all(h.changed_by is None for h in rows.values())

        detail = asset_service.get_asset_by_id(db, asset.id)
        assert len(detail.history) == 2

    def test_transition_to_null_is_recorded(self, db, make_asset):
        asset = make_asset(description="Old desk")
        asset_service.update_asset(db, asset.id, AssetUpdate(description=None))
        (row,) = asset_service.get_asset_history(db, asset.id)
        assert row.field_name == "description"
        assert row.old_value == "Old desk"
        assert row.new_value is None

    def test_unchanged_fields_are_skipped(self, db, make_asset):
        asset = make_asset(name="Chair", category="CHAIR")
        asset_service.update_asset(db, asset.id, AssetUpdate(name="Chair", category="TABLE"))
        (row,) = asset_service.get_asset_history(db, asset.id)
        assert row.field_name == "category"

    def test_missing_asset(self, db):
        with pytest.raises(NotFound):
            asset_service.update_asset(db, "missing", AssetUpdate(name="x"))


class TestArchiveRestore:
    def test_archive_twice_succeeds(self, db, make_asset):
        asset = make_asset()
        asset_service.archive_asset(db, asset.id)
        again = asset_service.archive_asset(db, asset.id)
        assert again.is_archived is True

    def test_archive_missing(self, db):
        with pytest.raises(NotFound):
            asset_service.archive_asset(db, "missing")

    def test_restore_requires_archived(self, db, make_asset):
        asset = make_asset()
        with pytest.raises(InvalidState):
            asset_service.restore_asset(db, asset.id)
        assert _activity(db, "RESTORE_ASSET") == []

    def test_restore_missing(self, db):
        with pytest.raises(NotFound):
            asset_service.restore_asset(db, "missing")

    def test_restore_clears_flag_and_logs_once(self, db, make_asset):
        asset = make_asset()
        asset_service.archive_asset(db, asset.id)
        restored = asset_service.restore_asset(db, asset.id)

        assert restored.is_archived is False
        logs = _activity(db, "RESTORE_ASSET")
        assert len(logs) == 1
        assert logs[0].user_id == settings.system_actor_id
        assert logs[0].entity_id == asset.id

    def test_system_actor_is_created_once(self, db, make_asset):
        asset = make_asset()
        for _ in range(2):
            asset_service.archive_asset(db, asset.id)
            asset_service.restore_asset(db, asset.id)

        actors = db.query(User).filter(User.id == settings.system_actor_id).all()
        assert len(actors) == 1
        assert actors[0].is_active is False
        assert len(_activity(db, "RESTORE_ASSET")) == 2

    def test_system_actor_email_taken(self, db, make_asset, make_user):
        make_user(email=settings.system_actor_email)
        asset = make_asset()
        asset_service.archive_asset(db, asset.id)

        with pytest.raises(UniquenessViolation):
            asset_service.restore_asset(db, asset.id)

        db.expire_all()
        assert db.query(Asset).filter(Asset.id == asset.id).one().is_archived is True
        assert db.query(User).filter(User.id == settings.system_actor_id).count() == 0
        assert _activity(db, "RESTORE_ASSET") == []


class TestDeleteAsset:
    def test_missing_asset_reports_failure(self, db):
        assert asset_service.delete_asset(db, "missing") == {"success": False}
        assert asset_service.delete_asset(db, "missing", permanent=True) == {"success": False}

    def test_soft_delete_archives(self, db, make_asset):
        asset = make_asset()
        assert asset_service.delete_asset(db, asset.id) == {"success": True}
        assert db.query(Asset).filter(Asset.id == asset.id).one().is_archived is True

    def test_permanent_delete_cascades(self, db, make_asset, make_user, now):
        user = make_user()
        asset = make_asset(condition="UNDER_REPAIR")
        other = make_asset()
        complaint_service.create_complaint(
            db, ComplaintCreate(asset_id=asset.id, complainant_name="Ann", status="URGENT", description="Flickers")
        )
        maintenance_service.create_maintenance(
            db, MaintenanceCreate(asset_id=asset.id, title="Check cable", scheduled_date=now, created_by=user.id)
        )
        asset_service.update_asset(db, asset.id, AssetUpdate(name="Renamed"))
        asset_service.update_asset(db, other.id, AssetUpdate(name="Other renamed"))

        assert asset_service.delete_asset(db, asset.id, permanent=True) == {"success": True}

        assert db.query(Asset).filter(Asset.id == asset.id).count() == 0
        assert db.query(Complaint).filter(Complaint.asset_id == asset.id).count() == 0
        assert db.query(AssetHistory).filter(AssetHistory.asset_id == asset.id).count() == 0
        assert db.query(MaintenanceSchedule).filter(MaintenanceSchedule.asset_id == asset.id).count() == 0
        # Other assets keep their ledger
        assert db.query(AssetHistory).filter(AssetHistory.asset_id == other.id).count() == 1
