# carelog/schemas/care_log.py
import re
from datetime import date, datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from carelog.models.care_log import CareLogSection, CareLogStatus

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

Mood = Literal["alert", "confused", "sleepy", "agitated", "calm"]
MedicationTimeSlot = Literal[
    "before_breakfast", "after_breakfast", "afternoon", "after_dinner", "before_bedtime"
]
Assistance = Literal["none", "some", "full"]


def validate_hhmm(v: str) -> str:
    if not _HHMM.match(v):
        raise ValueError("Time must be in HH:MM format")
    return v


ClockTime = Annotated[str, AfterValidator(validate_hhmm)]


class MedicationLog(BaseModel):
    name: str = Field(..., min_length=1)
    given: bool
    time: ClockTime | None = None
    time_slot: MedicationTimeSlot


class MealLog(BaseModel):
    time: ClockTime
    appetite: int | None = None
    amount_eaten: int | None = None
    swallowing_issues: list[str] = Field(default_factory=list)
    assistance: Assistance | None = None

    @field_validator("appetite")
    @classmethod
    def validate_appetite(cls, v: int | None) -> int | None:
        if v is not None and (v < 1 or v > 5):
            raise ValueError("Appetite must be between 1 and 5")
        return v

    @field_validator("amount_eaten")
    @classmethod
    def validate_amount_eaten(cls, v: int | None) -> int | None:
        if v is not None and (v < 0 or v > 100):
            raise ValueError("Amount eaten must be between 0 and 100")
        return v


class Meals(BaseModel):
    """
    Meals are patched one sub-key at a time: each form owns its meal(s).
    """

    breakfast: MealLog | None = None
    lunch: MealLog | None = None
    tea_break: MealLog | None = None
    dinner: MealLog | None = None
    food_preferences: str | None = None
    food_refusals: str | None = None


class FluidEntry(BaseModel):
    name: str = Field(..., min_length=1)
    time: ClockTime
    amount_ml: int
    swallowing_issues: list[str] = Field(default_factory=list)

    @field_validator("amount_ml")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Fluid amount must be positive")
        return v


class UnaccompaniedPeriod(BaseModel):
    start_time: ClockTime
    end_time: ClockTime
    reason: str = Field(..., min_length=1)
    replacement_person: str | None = None
    duration: int
    incidents: str | None = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Duration must be positive")
        return v

    @model_validator(mode="after")
    def validate_period(self) -> "UnaccompaniedPeriod":
        # HH:MM strings compare in clock order
        if self.start_time >= self.end_time:
            raise ValueError("End time must be after start time")
        return self


class CareLogFields(BaseModel):
    """
    Payload fields a caregiver may write.

    Absent keys are left untouched; keys sent as null clear the stored value.
    Object fields are merged one level deep (see care_log_service.merge_patch).
    """

    model_config = ConfigDict(extra="forbid")

    # Morning routine
    wake_time: ClockTime | None = None
    mood: Mood | None = None
    shower_time: ClockTime | None = None
    hair_wash: bool | None = None

    # Vitals
    blood_pressure: str | None = None
    pulse_rate: int | None = None
    oxygen_level: int | None = None
    blood_sugar: float | None = None
    vitals_time: ClockTime | None = None

    medications: list[MedicationLog] | None = None
    meals: Meals | None = None
    fluids: list[FluidEntry] | None = None

    afternoon_rest: dict[str, Any] | None = None
    night_sleep: dict[str, Any] | None = None
    bowel_movements: dict[str, Any] | None = None
    urination: dict[str, Any] | None = None

    # Fall risk & mobility
    balance_issues: int | None = None
    near_falls: Literal["none", "once_or_twice", "multiple"] | None = None
    actual_falls: Literal["none", "minor", "major"] | None = None
    walking_pattern: list[str] | None = None
    freezing_episodes: Literal["none", "mild", "severe"] | None = None

    unaccompanied_time: list[UnaccompaniedPeriod] | None = None
    unaccompanied_incidents: str | None = None

    safety_checks: dict[str, Any] | None = None
    emergency_prep: dict[str, Any] | None = None
    spiritual_emotional: dict[str, Any] | None = None
    physical_activity: dict[str, Any] | None = None
    oral_care: dict[str, Any] | None = None
    morning_exercise_session: dict[str, Any] | None = None
    afternoon_exercise_session: dict[str, Any] | None = None

    emergency_flag: bool | None = None
    emergency_note: str | None = None
    notes: str | None = None

    @field_validator("blood_pressure")
    @classmethod
    def validate_blood_pressure(cls, v: str | None) -> str | None:
        if v is not None and not re.match(r"^\d{2,3}/\d{2,3}$", v):
            raise ValueError("Blood pressure must look like 120/80")
        return v

    @field_validator("oxygen_level")
    @classmethod
    def validate_oxygen_level(cls, v: int | None) -> int | None:
        if v is not None and (v < 0 or v > 100):
            raise ValueError("Oxygen level must be between 0 and 100")
        return v

    @field_validator("balance_issues")
    @classmethod
    def validate_balance_issues(cls, v: int | None) -> int | None:
        if v is not None and (v < 1 or v > 5):
            raise ValueError("Balance issues must be between 1 and 5")
        return v

    def to_patch(self) -> dict[str, Any]:
        """Only the keys the caller actually sent, nested models as dicts."""
        return self.model_dump(exclude_unset=True)


class CareLogPatch(CareLogFields):
    pass


class CareLogCreate(CareLogFields):
    care_recipient_id: UUID
    # Defaults to "today" in the care recipient's timezone
    log_date: date | None = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(
            exclude_unset=True, exclude={"care_recipient_id", "log_date"}
        )


class SubmitSectionRequest(BaseModel):
    section: CareLogSection


class InvalidateRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Invalidation reason is required")
        return v


class CareLogResponse(BaseModel):
    id: UUID
    care_recipient_id: UUID
    caregiver_id: UUID | None
    log_date: date
    status: CareLogStatus
    submitted_at: datetime | None
    invalidated_at: datetime | None
    invalidated_by: UUID | None
    invalidation_reason: str | None
    completed_sections: dict[str, Any] | None

    wake_time: str | None = None
    mood: str | None = None
    shower_time: str | None = None
    hair_wash: bool | None = None
    blood_pressure: str | None = None
    pulse_rate: int | None = None
    oxygen_level: int | None = None
    blood_sugar: float | None = None
    vitals_time: str | None = None
    medications: list[dict[str, Any]] | None = None
    meals: dict[str, Any] | None = None
    fluids: list[dict[str, Any]] | None = None
    total_fluid_intake: int | None = None
    afternoon_rest: dict[str, Any] | None = None
    night_sleep: dict[str, Any] | None = None
    bowel_movements: dict[str, Any] | None = None
    urination: dict[str, Any] | None = None
    balance_issues: int | None = None
    near_falls: str | None = None
    actual_falls: str | None = None
    walking_pattern: list[str] | None = None
    freezing_episodes: str | None = None
    unaccompanied_time: list[dict[str, Any]] | None = None
    total_unaccompanied_minutes: int | None = None
    unaccompanied_incidents: str | None = None
    safety_checks: dict[str, Any] | None = None
    emergency_prep: dict[str, Any] | None = None
    spiritual_emotional: dict[str, Any] | None = None
    physical_activity: dict[str, Any] | None = None
    oral_care: dict[str, Any] | None = None
    morning_exercise_session: dict[str, Any] | None = None
    afternoon_exercise_session: dict[str, Any] | None = None
    emergency_flag: bool = False
    emergency_note: str | None = None
    notes: str | None = None

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CareLogWithVisibility(CareLogResponse):
    has_unviewed_changes: bool
    changed_fields: list[str]


class ChangeVisibility(BaseModel):
    has_unviewed_changes: bool
    changed_fields: list[str]
