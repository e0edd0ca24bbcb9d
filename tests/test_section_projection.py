from carelog.models.care_log import CareLog, CareLogSection, CareLogStatus
from carelog.services.section_projection import (
    SECTION_FIELDS,
    has_shared_content,
    project_changes_for_family,
    project_for_family,
    section_for_field,
    shared_sections,
)

STAMP = {"submitted_at": "2025-06-01T02:00:00Z", "submitted_by": "caregiver"}


def _data() -> dict:
    return {
        "status": "draft",
        "log_date": "2025-06-01",
        "wake_time": "07:30",
        "mood": "alert",
        "fluids": [{"name": "Water", "time": "15:00", "amount_ml": 200}],
        "total_fluid_intake": 200,
        "night_sleep": {"quality": "good"},
        "notes": "All well",
        "meals": {
            "breakfast": {"time": "08:00"},
            "lunch": {"time": "12:30"},
            "dinner": {"time": "18:30"},
        },
        "medications": [
            {"name": "Metformin", "given": True, "time_slot": "after_breakfast"},
            {"name": "Donepezil", "given": True, "time_slot": "before_bedtime"},
        ],
        "emergency_flag": True,
        "emergency_note": "Short of breath at 09:10",
    }


def test_every_field_belongs_to_at_most_one_section():
    seen: set[str] = set()
    for fields in SECTION_FIELDS.values():
        assert not seen & fields
        seen |= fields


def test_section_for_field():
    assert section_for_field("wake_time") == CareLogSection.MORNING
    assert section_for_field("night_sleep") == CareLogSection.EVENING
    assert section_for_field("notes") == CareLogSection.DAILY_SUMMARY
    assert section_for_field("meals") is None


def test_draft_shows_only_shared_sections():
    care_log = CareLog(
        status=CareLogStatus.DRAFT,
        completed_sections={"morning": STAMP},
    )

    projected = project_for_family(care_log, _data())

    assert projected["wake_time"] == "07:30"
    assert projected["mood"] == "alert"
    assert projected["fluids"] is None
    assert projected["total_fluid_intake"] is None
    assert projected["night_sleep"] is None
    assert projected["notes"] is None
    assert projected["meals"] == {"breakfast": {"time": "08:00"}}
    assert [m["name"] for m in projected["medications"]] == ["Metformin"]
    assert projected["emergency_flag"] is True
    assert projected["emergency_note"] == "Short of breath at 09:10"
    assert projected["log_date"] == "2025-06-01"


def test_draft_without_matching_meals_clears_them():
    care_log = CareLog(
        status=CareLogStatus.DRAFT,
        completed_sections={"dailySummary": STAMP},
    )

    projected = project_for_family(care_log, _data())

    assert projected["meals"] is None
    assert projected["medications"] is None
    assert projected["notes"] == "All well"


def test_submitted_and_invalidated_logs_are_shown_whole():
    for status in (CareLogStatus.SUBMITTED, CareLogStatus.INVALIDATED):
        care_log = CareLog(status=status, completed_sections=None)

        assert project_for_family(care_log, _data()) == _data()


def test_shared_content():
    assert not has_shared_content(CareLog(status=CareLogStatus.DRAFT, completed_sections=None))
    assert has_shared_content(
        CareLog(status=CareLogStatus.DRAFT, completed_sections={"evening": STAMP})
    )
    assert has_shared_content(CareLog(status=CareLogStatus.SUBMITTED, completed_sections={}))


def test_unknown_section_keys_are_ignored():
    care_log = CareLog(
        status=CareLogStatus.DRAFT,
        completed_sections={"legacy": STAMP, "afternoon": STAMP},
    )

    assert shared_sections(care_log) == {CareLogSection.AFTERNOON}


def test_changes_of_unshared_sections_are_dropped():
    care_log = CareLog(status=CareLogStatus.DRAFT, completed_sections={"morning": STAMP})
    changes = {
        "mood": {"old": "alert", "new": "calm"},
        "notes": {"old": None, "new": "Private"},
        "meals": {
            "old": {"breakfast": {"time": "08:00"}},
            "new": {"breakfast": {"time": "08:00"}, "dinner": {"time": "18:30"}},
        },
        "completed_sections": {"old": None, "new": {"morning": STAMP}},
        "pulse_rate": {"old": None, "new": None},
    }

    projected = project_changes_for_family(care_log, changes)

    assert projected == {
        "mood": {"old": "alert", "new": "calm"},
        "completed_sections": {"old": None, "new": {"morning": STAMP}},
        "pulse_rate": {"old": None, "new": None},
    }


def test_changes_of_submitted_log_are_untouched():
    care_log = CareLog(status=CareLogStatus.SUBMITTED, completed_sections=None)
    changes = {"notes": {"old": None, "new": "Private"}}

    assert project_changes_for_family(care_log, changes) == changes
