# carelog/models/care_log.py
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carelog.models.base import Base
from carelog.models.care_recipient import CareRecipient
from carelog.utils.datetime_utils import utc_now


class CareLogStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    INVALIDATED = "invalidated"


class CareLogSection(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    DAILY_SUMMARY = "dailySummary"


class CareLog(Base):
    """
    One care log per care recipient per local calendar day.

    NOTE:
    - Rows are never deleted; status moves draft -> submitted -> invalidated -> draft ...
    - `version` is the optimistic concurrency counter: a flush against a row
      that changed underneath raises StaleDataError.
    - JSON columns are always reassigned, never mutated in place.
    """

    __tablename__ = "care_logs"
    __table_args__ = (
        UniqueConstraint(
            "care_recipient_id", "log_date", name="uq_care_logs_recipient_date"
        ),
    )

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    care_recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("care_recipients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    caregiver_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        doc="Caregiver whose first write created the log (author, not owner)",
    )

    log_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Draft / submit workflow
    status: Mapped[CareLogStatus] = mapped_column(
        SAEnum(
            CareLogStatus,
            name="care_log_status_enum",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=CareLogStatus.DRAFT,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    invalidated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    invalidated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    invalidation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Progressive section submission:
    # {"morning": {"submitted_at": "...Z", "submitted_by": "<uuid>"}, ...}
    # Python None is stored as SQL NULL so the family listing can filter on it
    completed_sections: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )

    # Morning routine
    wake_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    mood: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shower_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    hair_wash: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Vital signs
    blood_pressure: Mapped[str | None] = mapped_column(String(20), nullable=True)
    pulse_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    oxygen_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    blood_sugar: Mapped[float | None] = mapped_column(Float, nullable=True)
    vitals_time: Mapped[str | None] = mapped_column(String(5), nullable=True)

    # Medications, meals and fluids
    medications: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    meals: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    fluids: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    total_fluid_intake: Mapped[int | None] = mapped_column(
        Integer, nullable=True, doc="Sum of fluids[].amount_ml"
    )

    # Sleep
    afternoon_rest: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    night_sleep: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Toileting
    bowel_movements: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    urination: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Fall risk & mobility
    balance_issues: Mapped[int | None] = mapped_column(Integer, nullable=True)
    near_falls: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actual_falls: Mapped[str | None] = mapped_column(String(20), nullable=True)
    walking_pattern: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    freezing_episodes: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Unaccompanied time
    unaccompanied_time: Mapped[list[Any] | None] = mapped_column(JSON, nullable=True)
    total_unaccompanied_minutes: Mapped[int | None] = mapped_column(
        Integer, nullable=True, doc="Sum of unaccompanied_time[].duration"
    )
    unaccompanied_incidents: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Safety
    safety_checks: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    emergency_prep: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Wellbeing & activity
    spiritual_emotional: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    physical_activity: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    oral_care: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    morning_exercise_session: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    afternoon_exercise_session: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )

    # Emergency & notes
    emergency_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    emergency_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Bookkeeping (not part of audit snapshots)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    __mapper_args__ = {"version_id_col": version}

    care_recipient: Mapped["CareRecipient"] = relationship("CareRecipient")


# Columns that describe the row rather than the day's care; excluded from snapshots.
BOOKKEEPING_FIELDS = frozenset({"version", "created_at", "updated_at"})

# Workflow state: audited, but not care content a family member reviews.
WORKFLOW_FIELDS = frozenset(
    {
        "status",
        "submitted_at",
        "invalidated_at",
        "invalidated_by",
        "invalidation_reason",
        "completed_sections",
    }
)

IDENTITY_FIELDS = frozenset({"id", "care_recipient_id", "caregiver_id", "log_date"})

# Object-valued payload fields merged one level deep on patch.
OBJECT_FIELDS = frozenset(
    {
        "meals",
        "afternoon_rest",
        "night_sleep",
        "bowel_movements",
        "urination",
        "safety_checks",
        "emergency_prep",
        "spiritual_emotional",
        "physical_activity",
        "oral_care",
        "morning_exercise_session",
        "afternoon_exercise_session",
    }
)
