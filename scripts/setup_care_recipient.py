#!/usr/bin/env python3
# scripts/setup_care_recipient.py
"""
Local setup: ensure a care recipient exists and print development tokens.
This script is safe to run many times (idempotent). Run `alembic upgrade head` first.

Examples:
  # Ensure a recipient in Singapore time
  python -m scripts.setup_care_recipient --name "Grandma" --timezone Asia/Singapore

  # Same, and print bearer tokens for a caregiver and the family admin
  python -m scripts.setup_care_recipient --name "Grandma" --print-tokens
"""

from __future__ import annotations

import argparse
import logging
import uuid

from sqlalchemy.orm import Session

from carelog.core.config import get_settings
from carelog.core.database import SessionLocal
from carelog.core.security import create_access_token
from carelog.dependencies.authz import RoleName
from carelog.models.care_recipient import CareRecipient
from carelog.utils.datetime_utils import get_zone

logger = logging.getLogger(__name__)


def ensure_care_recipient(
    db: Session,
    *,
    name: str,
    timezone: str,
    family_admin_id: uuid.UUID | None = None,
) -> CareRecipient:
    """
    Ensure a care recipient with this name exists.
    An existing recipient gets its timezone (and family admin, if given) updated.
    """
    get_zone(timezone)  # fail early on typos

    existing = db.query(CareRecipient).filter(CareRecipient.name == name).first()
    if existing:
        existing.timezone = timezone
        if family_admin_id:
            existing.family_admin_id = family_admin_id
        db.commit()
        print(f"Care recipient ensured (updated if needed): {name} ({existing.id})")
        return existing

    recipient = CareRecipient(
        name=name,
        timezone=timezone,
        family_admin_id=family_admin_id or uuid.uuid4(),
    )
    db.add(recipient)
    db.commit()
    db.refresh(recipient)
    print(f"Care recipient created: {name} ({recipient.id})")
    return recipient


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Care log local setup")
    p.add_argument("--name", type=str, required=True, help="Care recipient name")
    p.add_argument(
        "--timezone",
        type=str,
        default=get_settings().default_timezone,
        help="IANA timezone (defaults to DEFAULT_TIMEZONE)",
    )
    p.add_argument("--family-admin-id", type=uuid.UUID, default=None)
    p.add_argument(
        "--print-tokens",
        action="store_true",
        help="Print bearer tokens for a caregiver and the family admin",
    )
    return p.parse_args()


def main() -> None:
    args = parse_args()

    db: Session = SessionLocal()
    try:
        recipient = ensure_care_recipient(
            db,
            name=args.name,
            timezone=args.timezone,
            family_admin_id=args.family_admin_id,
        )
        if args.print_tokens:
            caregiver_token = create_access_token(
                str(uuid.uuid4()), RoleName.CAREGIVER.value, name="Dev Caregiver"
            )
            admin_token = create_access_token(
                str(recipient.family_admin_id), RoleName.FAMILY_ADMIN.value, name="Dev Admin"
            )
            print(f"caregiver token:    {caregiver_token}")
            print(f"family admin token: {admin_token}")
    except Exception:
        db.rollback()
        logger.exception("Care recipient setup failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
