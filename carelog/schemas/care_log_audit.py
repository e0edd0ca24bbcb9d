# carelog/schemas/care_log_audit.py
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from carelog.models.care_log_audit import AuditAction


class FieldChange(BaseModel):
    old: Any = None
    new: Any = None


class AuditEntryResponse(BaseModel):
    id: UUID
    care_log_id: UUID
    changed_by: UUID
    changed_by_name: str | None
    action: AuditAction
    section_submitted: str | None
    changes: dict[str, FieldChange]
    snapshot: dict[str, Any]
    sequence: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
