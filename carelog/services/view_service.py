# carelog/services/view_service.py
"""
Family view tracking and the "new changes" badge.

A change is unviewed when its audit entry was created strictly after the
user's latest view (a change at exactly viewed_at counts as seen).

The view row is read before the audit entries, inside one transaction. A write
that commits between the two reads can only add entries to the result, so a
race over-reports (badge for something already seen) and never under-reports.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from carelog.models.care_log import IDENTITY_FIELDS, WORKFLOW_FIELDS, CareLog
from carelog.models.care_log_audit import CareLogAuditEntry
from carelog.models.care_log_view import CareLogView
from carelog.schemas.care_log import ChangeVisibility
from carelog.services.care_log_service import get_care_log
from carelog.services.errors import ConcurrentModificationError
from carelog.services.section_projection import (
    has_shared_content,
    project_changes_for_family,
)
from carelog.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

# Status transitions and section stamps are not content a family member reviews
NON_CONTENT_FIELDS = WORKFLOW_FIELDS | IDENTITY_FIELDS


def _get_view(db: Session, care_log_id: UUID, user_id: UUID) -> CareLogView | None:
    return (
        db.query(CareLogView)
        .filter(CareLogView.care_log_id == care_log_id, CareLogView.user_id == user_id)
        .first()
    )


def mark_care_log_viewed(db: Session, *, care_log_id: UUID, user_id: UUID) -> CareLogView:
    """Upsert the user's latest view of a care log."""
    get_care_log(db, care_log_id=care_log_id)
    now = utc_now()

    view = _get_view(db, care_log_id, user_id)
    if view:
        view.viewed_at = now
    else:
        view = CareLogView(care_log_id=care_log_id, user_id=user_id, viewed_at=now)
        db.add(view)

    try:
        db.commit()
    except IntegrityError:
        # A parallel request inserted the row first; update it instead
        db.rollback()
        view = _get_view(db, care_log_id, user_id)
        if view is None:
            logger.warning(f"View of care log {care_log_id} by {user_id} vanished during upsert")
            raise ConcurrentModificationError(
                "Care log view was modified by another request. Try again."
            )
        view.viewed_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to record view of care log {care_log_id}", exc_info=True)
        raise
    return view


def _visibility_for(db: Session, care_log: CareLog, user_id: UUID) -> ChangeVisibility:
    view = _get_view(db, care_log.id, user_id)

    query = db.query(CareLogAuditEntry.changes).filter(
        CareLogAuditEntry.care_log_id == care_log.id
    )
    if view is None:
        # Never viewed: everything is new, but only once something was shared
        if not has_shared_content(care_log):
            return ChangeVisibility(has_unviewed_changes=False, changed_fields=[])
    else:
        query = query.filter(CareLogAuditEntry.created_at > view.viewed_at)

    changed: set[str] = set()
    for (changes,) in query.all():
        # Drafts only report what the family can actually see
        visible = project_changes_for_family(care_log, changes or {})
        for field, change in visible.items():
            # Create entries list every column; empty ones are not news
            if change.get("old") is None and change.get("new") is None:
                continue
            changed.add(field)
    changed -= NON_CONTENT_FIELDS

    changed_fields = sorted(changed)
    return ChangeVisibility(
        has_unviewed_changes=bool(changed_fields),
        changed_fields=changed_fields,
    )


def compute_change_visibility(
    db: Session, *, care_log_id: UUID, user_id: UUID
) -> ChangeVisibility:
    care_log = get_care_log(db, care_log_id=care_log_id)
    return _visibility_for(db, care_log, user_id)


def get_care_log_with_visibility(
    db: Session, *, care_log_id: UUID, user_id: UUID
) -> tuple[CareLog, ChangeVisibility]:
    care_log = get_care_log(db, care_log_id=care_log_id)
    return care_log, _visibility_for(db, care_log, user_id)
