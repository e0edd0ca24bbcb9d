# carelog/models/care_log_view.py
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from carelog.models.base import Base
from carelog.utils.datetime_utils import utc_now


class CareLogView(Base):
    """
    When a family member last viewed a care log.
    One row per (care_log_id, user_id), upserted on every view.
    """

    __tablename__ = "care_log_views"
    __table_args__ = (
        UniqueConstraint("care_log_id", "user_id", name="uq_care_log_views_log_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    care_log_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("care_logs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
