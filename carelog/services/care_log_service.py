# carelog/services/care_log_service.py
"""
Care log record, progressive section submission and the status state machine.

    draft --submit--> submitted --invalidate--> invalidated
      ^                                              |
      +------------- submit_section -----------------+
    invalidated --submit--> submitted

Every mutation is one transaction: load, apply, diff + audit row, commit.
The care log row is version-checked on UPDATE, so two writers that loaded the
same version cannot both commit.
"""

import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from carelog.core.config import get_settings
from carelog.models.care_log import (
    OBJECT_FIELDS,
    CareLog,
    CareLogSection,
    CareLogStatus,
)
from carelog.models.care_log_audit import AuditAction
from carelog.models.care_recipient import CareRecipient
from carelog.schemas.care_log import CareLogFields
from carelog.services.audit_service import record_audit_entry, snapshot_care_log
from carelog.services.errors import (
    CareLogAlreadyExistsError,
    CareLogLockedError,
    CareLogNotFoundError,
    CareRecipientNotFoundError,
    ConcurrentModificationError,
    InvalidCareLogStateError,
    InvalidSectionError,
)
from carelog.utils.datetime_utils import local_date, to_iso_string, utc_now

logger = logging.getLogger(__name__)

PAYLOAD_FIELDS = frozenset(CareLogFields.model_fields)


def _get_care_recipient(db: Session, care_recipient_id: UUID) -> CareRecipient:
    recipient = db.query(CareRecipient).filter(CareRecipient.id == care_recipient_id).first()
    if not recipient:
        raise CareRecipientNotFoundError("Care recipient not found")
    return recipient


def get_care_log(db: Session, *, care_log_id: UUID) -> CareLog:
    care_log = db.query(CareLog).filter(CareLog.id == care_log_id).first()
    if not care_log:
        raise CareLogNotFoundError("Care log not found")
    return care_log


def merge_patch(care_log: CareLog, fields: dict[str, Any]) -> None:
    """
    Apply caller-supplied fields to the care log in memory.

    - absent key: untouched; key with None: cleared
    - scalars and lists: replaced
    - object fields (meals, night_sleep, ...): merged one level deep; each
      supplied sub-key replaces the stored one wholesale, a None sub-key is
      removed, other stored sub-keys are kept
    - derived totals follow their source lists
    """
    unknown = set(fields) - PAYLOAD_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be written: {', '.join(sorted(unknown))}")

    for field, value in fields.items():
        if field in OBJECT_FIELDS and value is not None:
            merged = dict(getattr(care_log, field) or {})
            for sub_key, sub_value in value.items():
                if sub_value is None:
                    merged.pop(sub_key, None)
                else:
                    merged[sub_key] = sub_value
            value = merged or None
        elif field == "emergency_flag" and value is None:
            value = False
        elif isinstance(value, list):
            value = list(value)
        setattr(care_log, field, value)

    if "fluids" in fields:
        fluids = care_log.fluids or []
        care_log.total_fluid_intake = (
            sum(entry.get("amount_ml", 0) for entry in fluids) if fluids else None
        )
    if "unaccompanied_time" in fields:
        periods = care_log.unaccompanied_time or []
        care_log.total_unaccompanied_minutes = sum(
            period.get("duration", 0) for period in periods
        )


def _commit(db: Session, care_log: CareLog, operation: str) -> CareLog:
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent {operation} on care log {care_log.id}: {e}")
        raise ConcurrentModificationError(
            "Care log was modified by another request. Reload and try again."
        ) from e
    except IntegrityError as e:
        # Another writer took the same audit sequence number
        db.rollback()
        logger.warning(f"Conflicting {operation} on care log {care_log.id}: {e}")
        raise ConcurrentModificationError(
            "Care log was modified by another request. Reload and try again."
        ) from e
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to {operation} care log {care_log.id}", exc_info=True)
        raise
    return care_log


def create_care_log(
    db: Session,
    *,
    care_recipient_id: UUID,
    author_id: UUID,
    log_date: date | None = None,
    fields: dict[str, Any] | None = None,
    author_name: str | None = None,
) -> CareLog:
    """
    Create the draft care log for a recipient and day.

    log_date defaults to today in the recipient's timezone. At most one log
    exists per (recipient, log_date); a second create raises
    CareLogAlreadyExistsError, also when two creates race.
    """
    recipient = _get_care_recipient(db, care_recipient_id)
    now = utc_now()
    if log_date is None:
        log_date = local_date(recipient.timezone, now)

    existing = (
        db.query(CareLog.id)
        .filter(
            CareLog.care_recipient_id == care_recipient_id,
            CareLog.log_date == log_date,
        )
        .first()
    )
    if existing:
        raise CareLogAlreadyExistsError(
            f"A care log already exists for this care recipient on {log_date.isoformat()}"
        )

    care_log = CareLog(
        care_recipient_id=care_recipient_id,
        caregiver_id=author_id,
        log_date=log_date,
        status=CareLogStatus.DRAFT,
        emergency_flag=False,
        created_at=now,
        updated_at=now,
    )
    merge_patch(care_log, fields or {})

    try:
        db.add(care_log)
        db.flush()  # assigns care_log.id; unique (recipient, date) checked here
    except IntegrityError as e:
        db.rollback()
        raise CareLogAlreadyExistsError(
            f"A care log already exists for this care recipient on {log_date.isoformat()}"
        ) from e

    record_audit_entry(
        db,
        care_log=care_log,
        before={},
        action=AuditAction.CREATE,
        changed_by=author_id,
        changed_by_name=author_name,
        changed_at=now,
    )
    _commit(db, care_log, "create")
    logger.info(f"Care log {care_log.id} created for recipient {care_recipient_id} on {log_date}")
    return care_log


def patch_care_log(
    db: Session,
    *,
    care_log_id: UUID,
    author_id: UUID,
    fields: dict[str, Any],
    author_name: str | None = None,
) -> CareLog:
    """
    Merge caregiver edits into a care log and audit the field-level diff.

    Submitted logs stay editable unless `enforce_submission_lock` is set, in
    which case they must be invalidated first.
    """
    care_log = get_care_log(db, care_log_id=care_log_id)

    if care_log.status == CareLogStatus.SUBMITTED and get_settings().enforce_submission_lock:
        logger.warning(f"Rejected edit of submitted care log {care_log.id} by {author_id}")
        raise CareLogLockedError(
            "Care log has been submitted. It must be invalidated before it can be edited."
        )

    before = snapshot_care_log(care_log)
    now = utc_now()
    merge_patch(care_log, fields)
    care_log.updated_at = now

    record_audit_entry(
        db,
        care_log=care_log,
        before=before,
        action=AuditAction.UPDATE,
        changed_by=author_id,
        changed_by_name=author_name,
        changed_at=now,
    )
    return _commit(db, care_log, "update")


def submit_section(
    db: Session,
    *,
    care_log_id: UUID,
    section: CareLogSection | str,
    submitted_by: UUID,
    submitted_by_name: str | None = None,
) -> CareLog:
    """
    Share one section with family.

    Re-submitting a section overwrites its entry with the new timestamp
    ("Update & Re-submit"). The overall status is left alone, except that an
    invalidated log is re-opened as a draft.
    """
    try:
        section = CareLogSection(section)
    except ValueError:
        raise InvalidSectionError(
            f"Unknown section '{section}'. Expected one of: "
            + ", ".join(s.value for s in CareLogSection)
        ) from None

    care_log = get_care_log(db, care_log_id=care_log_id)
    before = snapshot_care_log(care_log)
    now = utc_now()

    completed = dict(care_log.completed_sections or {})
    completed[section.value] = {
        "submitted_at": to_iso_string(now),
        "submitted_by": str(submitted_by),
    }
    care_log.completed_sections = completed
    if care_log.status == CareLogStatus.INVALIDATED:
        care_log.status = CareLogStatus.DRAFT
        logger.info(f"Care log {care_log.id} re-opened by {section.value} re-submission")
    care_log.updated_at = now

    record_audit_entry(
        db,
        care_log=care_log,
        before=before,
        action=AuditAction.SUBMIT_SECTION,
        changed_by=submitted_by,
        changed_by_name=submitted_by_name,
        changed_at=now,
        section=section.value,
    )
    _commit(db, care_log, "submit section of")
    logger.info(f"Section {section.value} of care log {care_log.id} submitted by {submitted_by}")
    return care_log


def submit_care_log(
    db: Session,
    *,
    care_log_id: UUID,
    submitted_by: UUID,
    submitted_by_name: str | None = None,
) -> CareLog:
    """
    Final "Submit All". Allowed from draft and invalidated.

    Whether every section must be complete first is the caller's policy;
    partial completed_sections are accepted here.
    """
    care_log = get_care_log(db, care_log_id=care_log_id)
    if care_log.status == CareLogStatus.SUBMITTED:
        logger.warning(f"Rejected double submission of care log {care_log.id}")
        raise InvalidCareLogStateError("Only draft or invalidated logs can be submitted")

    before = snapshot_care_log(care_log)
    now = utc_now()
    care_log.status = CareLogStatus.SUBMITTED
    care_log.submitted_at = now
    care_log.updated_at = now

    record_audit_entry(
        db,
        care_log=care_log,
        before=before,
        action=AuditAction.SUBMIT,
        changed_by=submitted_by,
        changed_by_name=submitted_by_name,
        changed_at=now,
    )
    _commit(db, care_log, "submit")
    logger.info(f"Care log {care_log.id} submitted by {submitted_by}")
    return care_log


def invalidate_care_log(
    db: Session,
    *,
    care_log_id: UUID,
    invalidated_by: UUID,
    reason: str,
    invalidated_by_name: str | None = None,
) -> CareLog:
    """
    Flag a submitted log for correction. The log becomes editable again and
    its audit history is kept.
    """
    if not reason or not reason.strip():
        raise ValueError("Invalidation reason is required")

    care_log = get_care_log(db, care_log_id=care_log_id)
    if care_log.status != CareLogStatus.SUBMITTED:
        logger.warning(
            f"Rejected invalidation of care log {care_log.id} in status {care_log.status.value}"
        )
        raise InvalidCareLogStateError("Only submitted logs can be invalidated")

    before = snapshot_care_log(care_log)
    now = utc_now()
    care_log.status = CareLogStatus.INVALIDATED
    care_log.invalidated_at = now
    care_log.invalidated_by = invalidated_by
    care_log.invalidation_reason = reason.strip()
    care_log.updated_at = now

    record_audit_entry(
        db,
        care_log=care_log,
        before=before,
        action=AuditAction.INVALIDATE,
        changed_by=invalidated_by,
        changed_by_name=invalidated_by_name,
        changed_at=now,
    )
    _commit(db, care_log, "invalidate")
    logger.info(f"Care log {care_log.id} invalidated by {invalidated_by}")
    return care_log


def get_care_log_for_date(
    db: Session,
    *,
    care_recipient_id: UUID,
    log_date: date,
) -> CareLog | None:
    _get_care_recipient(db, care_recipient_id)
    return (
        db.query(CareLog)
        .filter(
            CareLog.care_recipient_id == care_recipient_id,
            CareLog.log_date == log_date,
        )
        .first()
    )


def get_today_care_log(
    db: Session,
    *,
    care_recipient_id: UUID,
    at: datetime | None = None,
) -> CareLog | None:
    """
    The care log for "today" in the care recipient's own timezone,
    not the server's or the caregiver's.
    """
    recipient = _get_care_recipient(db, care_recipient_id)
    today = local_date(recipient.timezone, at or utc_now())
    return get_care_log_for_date(db, care_recipient_id=care_recipient_id, log_date=today)


def list_family_care_logs(
    db: Session,
    *,
    care_recipient_id: UUID,
    limit: int = 30,
) -> list[CareLog]:
    """
    Logs a family member may see, newest first: anything submitted, or a
    draft with at least one shared section.
    """
    _get_care_recipient(db, care_recipient_id)
    return (
        db.query(CareLog)
        .filter(
            CareLog.care_recipient_id == care_recipient_id,
            or_(
                CareLog.status != CareLogStatus.DRAFT,
                CareLog.completed_sections.isnot(None),
            ),
        )
        .order_by(CareLog.log_date.desc())
        .limit(limit)
        .all()
    )
