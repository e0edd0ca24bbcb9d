# carelog/models/care_log_audit.py
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from carelog.models.base import Base
from carelog.utils.datetime_utils import utc_now


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SUBMIT = "submit"
    SUBMIT_SECTION = "submit_section"
    INVALIDATE = "invalidate"


class CareLogAuditEntry(Base):
    """
    Append-only audit trail for care log mutations.

    Rows are written in the same transaction as the care log change and are
    never updated or deleted. (created_at, sequence) orders the history.
    """

    __tablename__ = "care_log_audit"
    __table_args__ = (
        UniqueConstraint("care_log_id", "sequence", name="uq_care_log_audit_log_sequence"),
    )

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    care_log_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("care_logs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Who made the change
    changed_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    changed_by_name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
        doc="Display name at time of change (denormalized for history)",
    )

    # What changed
    action: Mapped[AuditAction] = mapped_column(
        SAEnum(
            AuditAction,
            name="care_log_audit_action_enum",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    section_submitted: Mapped[str | None] = mapped_column(String(20), nullable=True)
    changes: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        doc="{field: {'old': value, 'new': value}}",
    )
    snapshot: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        doc="Full care log state right after the mutation",
    )

    # Position of the entry within its care log's history (1-based)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )
