# carelog/services/audit_service.py
"""
Field-level diffs and the append-only audit trail for care logs.

Every care log mutation goes through record_audit_entry() inside the same
transaction as the change itself, so a failed write leaves no audit row behind.
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from carelog.models.care_log import BOOKKEEPING_FIELDS, CareLog
from carelog.models.care_log_audit import AuditAction, CareLogAuditEntry
from carelog.utils.datetime_utils import to_iso_string

logger = logging.getLogger(__name__)

_MISSING = object()


def _to_json_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return to_iso_string(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        # Detached deep copy so later in-memory edits cannot leak into a stored snapshot
        return json.loads(json.dumps(value, default=str))
    return value


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def snapshot_care_log(care_log: CareLog) -> dict[str, Any]:
    """
    JSON-safe copy of every care log column except row bookkeeping
    (version, created_at, updated_at).
    """
    state = inspect(care_log)
    return {
        attr.key: _to_json_value(getattr(care_log, attr.key))
        for attr in state.mapper.column_attrs
        if attr.key not in BOOKKEEPING_FIELDS
    }


def compute_changes(
    before: dict[str, Any], after: dict[str, Any]
) -> dict[str, dict[str, Any]]:
    """
    Top-level keys whose serialized value differs between two snapshots.

    Values are compared by canonical JSON (sorted keys), so structurally equal
    objects never show up as changed. A key missing on one side is a change
    even when the other side holds None; diffing against {} therefore yields
    every key of `after`.
    """
    changes: dict[str, dict[str, Any]] = {}
    for key in after.keys() | before.keys():
        old = before.get(key, _MISSING)
        new = after.get(key, _MISSING)
        if old is not _MISSING and new is not _MISSING and _canonical(old) == _canonical(new):
            continue
        changes[key] = {
            "old": None if old is _MISSING else old,
            "new": None if new is _MISSING else new,
        }
    return dict(sorted(changes.items()))


def _next_sequence(db: Session, care_log_id: UUID) -> int:
    current = (
        db.query(func.max(CareLogAuditEntry.sequence))
        .filter(CareLogAuditEntry.care_log_id == care_log_id)
        .scalar()
    )
    return (current or 0) + 1


def record_audit_entry(
    db: Session,
    *,
    care_log: CareLog,
    before: dict[str, Any],
    action: AuditAction,
    changed_by: UUID,
    changed_at: datetime,
    changed_by_name: str | None = None,
    section: str | None = None,
) -> CareLogAuditEntry:
    """
    Diff `before` against the care log's current state and stage an audit row.

    The caller owns the transaction: the entry is added to the session but not
    committed. No-op updates still produce an entry (with empty changes).
    """
    after = snapshot_care_log(care_log)
    changes = compute_changes(before, after)

    entry = CareLogAuditEntry(
        care_log_id=care_log.id,
        changed_by=changed_by,
        changed_by_name=changed_by_name,
        action=action,
        section_submitted=section,
        changes=changes,
        snapshot=after,
        sequence=_next_sequence(db, care_log.id),
        created_at=changed_at,
    )
    db.add(entry)

    logger.debug(
        "Audit %s on care log %s by %s: %s",
        action.value,
        care_log.id,
        changed_by,
        sorted(changes) or "no changes",
    )
    return entry


def list_care_log_history(db: Session, *, care_log_id: UUID) -> list[CareLogAuditEntry]:
    """Audit entries for one care log, oldest first."""
    return (
        db.query(CareLogAuditEntry)
        .filter(CareLogAuditEntry.care_log_id == care_log_id)
        .order_by(CareLogAuditEntry.created_at, CareLogAuditEntry.sequence)
        .all()
    )


def replay_changes(entries: Iterable[CareLogAuditEntry]) -> dict[str, Any]:
    """
    Rebuild care log state by applying each entry's `new` values in order,
    starting from an empty object. The result equals the last entry's snapshot.
    """
    state: dict[str, Any] = {}
    for entry in entries:
        for field, change in entry.changes.items():
            state[field] = change["new"]
    return state
