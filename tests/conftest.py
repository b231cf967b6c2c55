from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from auth import issue_session_token
from cache_layer import cache_clear
from db import SessionLocal, get_engine
from models import Employee, Organization, User
from passwords import hash_password
from utils import iso_utc_now, new_uuid


PASSWORD = "Str0ng!Passw0rd"
INTERNAL_TOKEN = "test-internal-cron-token-0123456789"


class RecordingNotifier:
    def __init__(self):
        self.sent: list[dict] = []

    def onboarding_invitation(self, **kwargs) -> None:
        self.sent.append(kwargs)


class FailingNotifier:
    def __init__(self):
        self.calls = 0

    def onboarding_invitation(self, **kwargs) -> None:
        self.calls += 1
        raise RuntimeError("mail broker unavailable")


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class Seed:
    """Inserts organizations, users and employees directly through the ORM."""

    def organization(self, name: str = "Acme Corp") -> str:
        org_id = "ORG-" + new_uuid()
        now = iso_utc_now()
        with SessionLocal() as db:
            db.add(Organization(id=org_id, name=name, type="company", createdAt=now, updatedAt=now))
            db.commit()
        return org_id

    def user(self, *, role: str, org_id: str | None, email: str | None = None, first_name: str = "Test", last_name: str = "User") -> str:
        user_id = "USR-" + new_uuid()
        now = iso_utc_now()
        with SessionLocal() as db:
            db.add(
                User(
                    id=user_id,
                    email=email or f"{user_id.lower()}@example.com",
                    passwordHash=hash_password(PASSWORD),
                    role=role,
                    organizationId=org_id,
                    firstName=first_name,
                    lastName=last_name,
                    languagePreference="en",
                    isActive=True,
                    lastLoginAt="",
                    createdAt=now,
                    updatedAt=now,
                )
            )
            db.commit()
        return user_id

    def employee(self, *, org_id: str, first_name: str = "Ana", last_name: str = "Lopez", email: str | None = None) -> tuple[str, str]:
        user_id = self.user(role="employee", org_id=org_id, email=email, first_name=first_name, last_name=last_name)
        emp_id = "EMP-" + new_uuid()
        now = iso_utc_now()
        with SessionLocal() as db:
            db.add(
                Employee(
                    id=emp_id,
                    userId=user_id,
                    employeeCode="E-001",
                    position="Cashier",
                    department="Store",
                    hireDate="2025-02-01",
                    employmentStatus="pending",
                    createdAt=now,
                    createdBy="TEST",
                    updatedAt=now,
                )
            )
            db.commit()
        return emp_id, user_id

    def token_for(self, user_id: str) -> str:
        with SessionLocal() as db:
            user = db.get(User, user_id)
            ses = issue_session_token(db, user=user, session_ttl_minutes=60)
            db.commit()
        return ses["sessionToken"]

    def headers_for(self, user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_for(user_id)}"}


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def app_client(tmp_path, monkeypatch, notifier):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'onboarding-test.db'}")
    monkeypatch.setenv("INTERNAL_CRON_TOKEN", INTERNAL_TOKEN)
    monkeypatch.setenv("FRONTEND_URL", "https://hr.example.com")
    monkeypatch.setenv("CELERY_TASK_ALWAYS_EAGER", "1")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("MAIL_API_URL", "")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    cache_clear()

    app = create_app(notifier=notifier)
    app.config["TESTING"] = True
    yield app, app.test_client()

    cache_clear()
    engine = get_engine()
    if engine is not None:
        engine.dispose()


@pytest.fixture()
def seed(app_client):
    return Seed()


@pytest.fixture()
def db(app_client):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def clock():
    return FakeClock()
