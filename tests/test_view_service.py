import uuid
from datetime import timedelta

import pytest

from carelog.services import care_log_service, view_service
from carelog.models.care_log_view import CareLogView
from carelog.services.errors import CareLogNotFoundError, ConcurrentModificationError
from tests.conftest import CAREGIVER_ID, FAMILY_ADMIN_ID, FAMILY_MEMBER_ID


@pytest.fixture()
def care_log(db, recipient, clock):
    return care_log_service.create_care_log(
        db, care_recipient_id=recipient.id, author_id=CAREGIVER_ID
    )


def _patch(db, care_log, **fields):
    care_log_service.patch_care_log(
        db, care_log_id=care_log.id, author_id=CAREGIVER_ID, fields=fields
    )


def _submit(db, care_log, section="morning"):
    care_log_service.submit_section(
        db, care_log_id=care_log.id, section=section, submitted_by=CAREGIVER_ID
    )


def _visibility(db, care_log, user_id=FAMILY_MEMBER_ID):
    return view_service.compute_change_visibility(db, care_log_id=care_log.id, user_id=user_id)


def test_resubmitted_mood_is_the_only_unviewed_change(db, care_log):
    _patch(db, care_log, wake_time="07:30", mood="alert")
    _submit(db, care_log)
    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)

    _patch(db, care_log, mood="confused")
    _submit(db, care_log)

    visibility = _visibility(db, care_log)
    assert visibility.has_unviewed_changes is True
    assert visibility.changed_fields == ["mood"]


def test_unshared_draft_never_viewed_has_nothing_new(db, care_log):
    _patch(db, care_log, wake_time="07:30")

    visibility = _visibility(db, care_log)

    assert visibility.has_unviewed_changes is False
    assert visibility.changed_fields == []


def test_never_viewed_shared_log_reports_written_fields(db, care_log):
    _patch(db, care_log, wake_time="07:30", mood="alert")
    _submit(db, care_log)

    visibility = _visibility(db, care_log)

    assert visibility.has_unviewed_changes is True
    assert {"mood", "wake_time"} <= set(visibility.changed_fields)
    assert "notes" not in visibility.changed_fields
    assert "completed_sections" not in visibility.changed_fields
    assert "status" not in visibility.changed_fields


def test_marking_viewed_clears_the_badge(db, care_log):
    _patch(db, care_log, mood="alert")
    _submit(db, care_log)

    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)

    assert _visibility(db, care_log).changed_fields == []


def test_workflow_changes_alone_are_not_news(db, care_log):
    _submit(db, care_log)
    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)

    care_log_service.submit_care_log(db, care_log_id=care_log.id, submitted_by=CAREGIVER_ID)
    care_log_service.invalidate_care_log(
        db, care_log_id=care_log.id, invalidated_by=FAMILY_ADMIN_ID, reason="Check vitals"
    )

    assert _visibility(db, care_log).has_unviewed_changes is False


def test_changed_fields_only_grow_until_viewed(db, care_log):
    _submit(db, care_log)
    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)

    seen: set[str] = set()
    for fields in (
        {"mood": "calm"},
        {"pulse_rate": 70},
        {"mood": "alert"},
        {"mood": None},
        {"wake_time": "07:15"},
    ):
        _patch(db, care_log, **fields)
        current = set(_visibility(db, care_log).changed_fields)
        assert seen <= current
        seen = current

    assert seen == {"mood", "pulse_rate", "wake_time"}


def test_change_at_the_exact_view_instant_counts_as_seen(db, care_log, clock):
    _submit(db, care_log)
    clock.step = timedelta(0)

    _patch(db, care_log, mood="sleepy")
    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)

    assert _visibility(db, care_log).changed_fields == []

    clock.advance(seconds=1)
    _patch(db, care_log, mood="calm")
    assert _visibility(db, care_log).changed_fields == ["mood"]


def test_views_are_tracked_per_user(db, care_log):
    _patch(db, care_log, mood="alert")
    _submit(db, care_log)

    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_ADMIN_ID)

    assert _visibility(db, care_log, FAMILY_ADMIN_ID).has_unviewed_changes is False
    assert _visibility(db, care_log, FAMILY_MEMBER_ID).has_unviewed_changes is True


def test_mark_viewed_updates_the_same_row(db, care_log, clock):
    first = view_service.mark_care_log_viewed(
        db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID
    )
    clock.advance(minutes=5)
    second = view_service.mark_care_log_viewed(
        db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID
    )

    assert first.id == second.id
    assert second.viewed_at > care_log.created_at


def test_mark_viewed_unknown_log(db, recipient, clock):
    with pytest.raises(CareLogNotFoundError):
        view_service.mark_care_log_viewed(db, care_log_id=uuid.uuid4(), user_id=FAMILY_MEMBER_ID)


def test_get_care_log_with_visibility(db, care_log):
    _patch(db, care_log, wake_time="07:30")
    _submit(db, care_log)

    loaded, visibility = view_service.get_care_log_with_visibility(
        db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID
    )

    assert loaded.id == care_log.id
    assert "wake_time" in visibility.changed_fields


def test_unshared_sections_stay_out_of_changed_fields(db, care_log):
    _submit(db, care_log, "morning")
    view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)

    _patch(db, care_log, notes="Private note", night_sleep={"quality": "poor"})
    _patch(db, care_log, meals={"dinner": {"time": "18:30"}})
    assert _visibility(db, care_log).changed_fields == []

    _patch(db, care_log, meals={"breakfast": {"time": "08:00"}}, mood="calm")
    assert _visibility(db, care_log).changed_fields == ["meals", "mood"]

    _submit(db, care_log, "dailySummary")
    assert _visibility(db, care_log).changed_fields == ["meals", "mood", "notes"]


def test_vanished_view_row_during_upsert_is_a_conflict(db, care_log, monkeypatch):
    db.add(
        CareLogView(
            care_log_id=care_log.id,
            user_id=FAMILY_MEMBER_ID,
            viewed_at=care_log.created_at,
        )
    )
    db.commit()
    # Pretend the row is invisible on both lookups: the insert collides, the retry finds nothing
    monkeypatch.setattr(view_service, "_get_view", lambda *args: None)

    with pytest.raises(ConcurrentModificationError):
        view_service.mark_care_log_viewed(db, care_log_id=care_log.id, user_id=FAMILY_MEMBER_ID)
