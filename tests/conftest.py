import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from carelog.core.database import get_db
from carelog.core.security import create_access_token
from carelog.main import app
from carelog.models.base import Base
from carelog.models import care_log, care_log_audit, care_log_view  # noqa: F401
from carelog.models.care_recipient import CareRecipient
from carelog.services import care_log_service, view_service

# 10:00 in Singapore, so "today" for the default recipient is 2025-06-01
START = datetime(2025, 6, 1, 2, 0, tzinfo=timezone.utc)

CAREGIVER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
FAMILY_ADMIN_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
FAMILY_MEMBER_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")


class TickingClock:
    """Returns `now` and then moves it forward by `step` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> TickingClock:
    ticking = TickingClock(START)
    monkeypatch.setattr(care_log_service, "utc_now", ticking)
    monkeypatch.setattr(view_service, "utc_now", ticking)
    return ticking


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def recipient(db: Session) -> CareRecipient:
    care_recipient = CareRecipient(
        name="Mdm Tan",
        timezone="Asia/Singapore",
        family_admin_id=FAMILY_ADMIN_ID,
    )
    db.add(care_recipient)
    db.commit()
    return care_recipient


@pytest.fixture()
def client(db: Session, clock: TickingClock) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _bearer(user_id: uuid.UUID, role: str, name: str) -> dict[str, str]:
    token = create_access_token(str(user_id), role, name=name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def caregiver_headers() -> dict[str, str]:
    return _bearer(CAREGIVER_ID, "caregiver", "Siti")


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return _bearer(FAMILY_ADMIN_ID, "family_admin", "Wei Ling")


@pytest.fixture()
def member_headers() -> dict[str, str]:
    return _bearer(FAMILY_MEMBER_ID, "family_member", "Jun")


@pytest.fixture()
def make_headers() -> Callable[[uuid.UUID, str], dict[str, str]]:
    return lambda user_id, role: _bearer(user_id, role, "Someone")
