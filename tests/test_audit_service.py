from carelog.models.care_log import CareLogSection
from carelog.models.care_log_audit import AuditAction
from carelog.services import care_log_service
from carelog.services.audit_service import (
    compute_changes,
    list_care_log_history,
    replay_changes,
    snapshot_care_log,
)
from tests.conftest import CAREGIVER_ID, FAMILY_ADMIN_ID


def test_compute_changes_ignores_key_order_in_nested_objects():
    before = {"meals": {"breakfast": {"time": "08:00", "appetite": 4}}}
    after = {"meals": {"breakfast": {"appetite": 4, "time": "08:00"}}}

    assert compute_changes(before, after) == {}


def test_compute_changes_reports_old_and_new_values():
    changes = compute_changes({"mood": "alert", "notes": None}, {"mood": "calm", "notes": None})

    assert changes == {"mood": {"old": "alert", "new": "calm"}}


def test_compute_changes_treats_missing_key_as_different_from_none():
    changes = compute_changes({}, {"mood": None, "pulse_rate": 72})

    assert changes == {
        "mood": {"old": None, "new": None},
        "pulse_rate": {"old": None, "new": 72},
    }


def test_compute_changes_is_sorted_by_field():
    changes = compute_changes({}, {"wake_time": "07:00", "mood": "calm", "notes": "ok"})

    assert list(changes) == ["mood", "notes", "wake_time"]


def test_snapshot_excludes_bookkeeping_columns(db, recipient, clock):
    care_log = care_log_service.create_care_log(
        db, care_recipient_id=recipient.id, author_id=CAREGIVER_ID
    )

    snapshot = snapshot_care_log(care_log)

    assert "version" not in snapshot
    assert "updated_at" not in snapshot
    assert "created_at" not in snapshot
    assert snapshot["status"] == "draft"
    assert snapshot["log_date"] == "2025-06-01"
    assert snapshot["care_recipient_id"] == str(recipient.id)


def test_history_replays_to_latest_snapshot(db, recipient, clock):
    care_log = care_log_service.create_care_log(
        db,
        care_recipient_id=recipient.id,
        author_id=CAREGIVER_ID,
        fields={"wake_time": "07:30"},
    )
    care_log_service.patch_care_log(
        db,
        care_log_id=care_log.id,
        author_id=CAREGIVER_ID,
        fields={"mood": "alert", "meals": {"breakfast": {"time": "08:00", "appetite": 4}}},
    )
    care_log_service.submit_section(
        db, care_log_id=care_log.id, section=CareLogSection.MORNING, submitted_by=CAREGIVER_ID
    )
    care_log_service.patch_care_log(
        db,
        care_log_id=care_log.id,
        author_id=CAREGIVER_ID,
        fields={"mood": None, "notes": "Quiet afternoon"},
    )
    care_log_service.submit_care_log(db, care_log_id=care_log.id, submitted_by=CAREGIVER_ID)
    care_log_service.invalidate_care_log(
        db,
        care_log_id=care_log.id,
        invalidated_by=FAMILY_ADMIN_ID,
        reason="Wrong wake time",
    )

    history = list_care_log_history(db, care_log_id=care_log.id)

    assert [entry.action for entry in history] == [
        AuditAction.CREATE,
        AuditAction.UPDATE,
        AuditAction.SUBMIT_SECTION,
        AuditAction.UPDATE,
        AuditAction.SUBMIT,
        AuditAction.INVALIDATE,
    ]
    assert [entry.sequence for entry in history] == [1, 2, 3, 4, 5, 6]
    assert replay_changes(history) == history[-1].snapshot
    assert history[-1].snapshot == snapshot_care_log(care_log)


def test_create_entry_lists_every_snapshot_field(db, recipient, clock):
    care_log = care_log_service.create_care_log(
        db, care_recipient_id=recipient.id, author_id=CAREGIVER_ID, author_name="Siti"
    )

    (entry,) = list_care_log_history(db, care_log_id=care_log.id)

    assert entry.action == AuditAction.CREATE
    assert entry.changed_by == CAREGIVER_ID
    assert entry.changed_by_name == "Siti"
    assert set(entry.changes) == set(entry.snapshot)
