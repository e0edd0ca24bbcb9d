# carelog/services/section_projection.py
"""
Which care log fields belong to which submission section, and what a family
member may see of a log whose sections are only partly shared.

Sections:
- morning: wake up, mood, shower, breakfast, AM medications, vitals
- afternoon: lunch, tea break, PM medications, fluids, afternoon rest, exercise
- evening: dinner, evening/bedtime medications, night sleep
- dailySummary: toileting, fall risk, unaccompanied time, safety checks, notes
"""

from typing import Any

from carelog.models.care_log import (
    IDENTITY_FIELDS,
    WORKFLOW_FIELDS,
    CareLog,
    CareLogSection,
    CareLogStatus,
)

SECTION_FIELDS: dict[CareLogSection, frozenset[str]] = {
    CareLogSection.MORNING: frozenset(
        {
            "wake_time",
            "mood",
            "shower_time",
            "hair_wash",
            "blood_pressure",
            "pulse_rate",
            "oxygen_level",
            "blood_sugar",
            "vitals_time",
            "morning_exercise_session",
        }
    ),
    CareLogSection.AFTERNOON: frozenset(
        {
            "fluids",
            "total_fluid_intake",
            "afternoon_rest",
            "afternoon_exercise_session",
            "physical_activity",
        }
    ),
    CareLogSection.EVENING: frozenset({"night_sleep"}),
    CareLogSection.DAILY_SUMMARY: frozenset(
        {
            "bowel_movements",
            "urination",
            "balance_issues",
            "near_falls",
            "actual_falls",
            "walking_pattern",
            "freezing_episodes",
            "unaccompanied_time",
            "total_unaccompanied_minutes",
            "unaccompanied_incidents",
            "safety_checks",
            "emergency_prep",
            "spiritual_emotional",
            "oral_care",
            "notes",
        }
    ),
}

# meals and medications are shared by several sections and split per entry
MEAL_SECTIONS: dict[str, CareLogSection] = {
    "breakfast": CareLogSection.MORNING,
    "lunch": CareLogSection.AFTERNOON,
    "tea_break": CareLogSection.AFTERNOON,
    "dinner": CareLogSection.EVENING,
    "food_preferences": CareLogSection.DAILY_SUMMARY,
    "food_refusals": CareLogSection.DAILY_SUMMARY,
}

MEDICATION_SLOT_SECTIONS: dict[str, CareLogSection] = {
    "before_breakfast": CareLogSection.MORNING,
    "after_breakfast": CareLogSection.MORNING,
    "afternoon": CareLogSection.AFTERNOON,
    "after_dinner": CareLogSection.EVENING,
    "before_bedtime": CareLogSection.EVENING,
}

_SECTION_NAMES = frozenset(section.value for section in CareLogSection)

# Always visible once the log itself is visible
ALWAYS_VISIBLE_FIELDS = frozenset({"emergency_flag", "emergency_note"})


def shared_sections(care_log: CareLog) -> set[CareLogSection]:
    return {
        CareLogSection(name)
        for name in (care_log.completed_sections or {})
        if name in _SECTION_NAMES
    }


def has_shared_content(care_log: CareLog) -> bool:
    """
    True once anything of the log has been shared with family: a submitted
    section, or a full submission (also after it was invalidated).
    """
    return care_log.status != CareLogStatus.DRAFT or bool(shared_sections(care_log))


def section_for_field(field: str) -> CareLogSection | None:
    for section, fields in SECTION_FIELDS.items():
        if field in fields:
            return section
    return None


def project_for_family(care_log: CareLog, data: dict[str, Any]) -> dict[str, Any]:
    """
    Blank out fields of sections that have not been shared yet.

    `data` is the serialized care log (e.g. a response model dump). A fully
    submitted (or invalidated, i.e. previously submitted) log is returned
    unchanged.
    """
    if care_log.status != CareLogStatus.DRAFT:
        return data

    visible = shared_sections(care_log)
    projected = dict(data)

    for field in data:
        if field in IDENTITY_FIELDS or field in WORKFLOW_FIELDS or field in ALWAYS_VISIBLE_FIELDS:
            continue
        section = section_for_field(field)
        if section is not None and section not in visible:
            projected[field] = None

    meals = data.get("meals")
    if meals:
        kept = {k: v for k, v in meals.items() if MEAL_SECTIONS.get(k) in visible}
        projected["meals"] = kept or None

    medications = data.get("medications")
    if medications:
        kept_meds = [
            m for m in medications if MEDICATION_SLOT_SECTIONS.get(m.get("time_slot")) in visible
        ]
        projected["medications"] = kept_meds or None

    return projected


def project_changes_for_family(
    care_log: CareLog, changes: dict[str, dict[str, Any]]
) -> dict[str, dict[str, Any]]:
    """
    Audit `changes` ({field: {"old", "new"}}) as a family member may see them.

    Both sides are projected like a log body. A field is dropped when the
    projection hides the whole difference (e.g. only dinner changed in a log
    that shares the morning).
    """
    if care_log.status != CareLogStatus.DRAFT:
        return changes

    old = project_for_family(care_log, {f: c.get("old") for f, c in changes.items()})
    new = project_for_family(care_log, {f: c.get("new") for f, c in changes.items()})

    projected: dict[str, dict[str, Any]] = {}
    for field, change in changes.items():
        if old[field] == new[field] and (old[field], new[field]) != (
            change.get("old"),
            change.get("new"),
        ):
            continue
        projected[field] = {"old": old[field], "new": new[field]}
    return projected
