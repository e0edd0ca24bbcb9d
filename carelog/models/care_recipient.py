# carelog/models/care_recipient.py
import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from carelog.core.config import get_settings
from carelog.models.base import Base
from carelog.utils.datetime_utils import utc_now


class CareRecipient(Base):
    """
    The person being cared for.

    Only the fields the care log core depends on live here; profile details
    are owned by the family-management service.
    """

    __tablename__ = "care_recipients"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    family_admin_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
        doc="Family admin who owns this care recipient (may invalidate logs)",
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Local calendar day of every care log is computed in this zone
    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default=lambda: get_settings().default_timezone,
        server_default=text("'Asia/Singapore'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
