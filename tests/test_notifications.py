from __future__ import annotations

from unittest.mock import MagicMock, patch

from app.tasks.onboarding_tasks import mark_expired_sessions_task
from config import Config
from db import SessionLocal
from models import OnboardingSession
from services.mailer import build_onboarding_email, send_onboarding_email
from services.notifications import CeleryNotifier, get_notifier
from utils import iso_utc_in


def test_onboarding_email_links_to_frontend():
    msg = build_onboarding_email("Ana Lopez", "Acme Corp", "AbCdEf123456", "https://hr.example.com/")
    assert msg["subject"] == "Welcome to Acme Corp - Complete Your Onboarding"
    assert msg["url"] == "https://hr.example.com/onboarding?token=AbCdEf123456"
    assert msg["url"] in msg["text"]
    assert "Hi Ana Lopez," in msg["html"]


def test_mail_is_mocked_without_api_url(monkeypatch):
    monkeypatch.setenv("MAIL_API_URL", "")
    with patch("services.mailer.requests.post") as post:
        out = send_onboarding_email(Config(), "ana@example.com", "Ana", "Acme", "tok", "https://hr.example.com")
    assert out == {"delivered": False, "mock": True}
    post.assert_not_called()


def test_mail_posts_to_api(monkeypatch):
    monkeypatch.setenv("MAIL_API_URL", "https://mail.example.com/send")
    monkeypatch.setenv("MAIL_API_KEY", "secret-key")
    resp = MagicMock(status_code=202)
    with patch("services.mailer.requests.post", return_value=resp) as post:
        out = send_onboarding_email(Config(), "ana@example.com", "Ana", "Acme", "tok", "https://hr.example.com")

    assert out == {"delivered": True, "mock": False}
    args, kwargs = post.call_args
    assert args[0] == "https://mail.example.com/send"
    assert kwargs["json"]["to"] == ["ana@example.com"]
    assert kwargs["headers"]["Authorization"] == "Bearer secret-key"
    resp.raise_for_status.assert_called_once()


def test_celery_notifier_enqueues_task():
    with patch("app.tasks.onboarding_tasks.send_onboarding_email_task.apply_async") as apply_async:
        CeleryNotifier().onboarding_invitation(
            to_email="ana@example.com",
            candidate_name="Ana",
            organization_name="Acme",
            token="tok",
            base_url="https://hr.example.com",
        )
    kwargs = apply_async.call_args.kwargs["kwargs"]
    assert kwargs["to_email"] == "ana@example.com"
    assert kwargs["token"] == "tok"


def test_registered_notifier_wins_inside_app(app_client, notifier):
    app, _client = app_client
    with app.app_context():
        assert get_notifier() is notifier
    assert isinstance(get_notifier(), CeleryNotifier)


def test_expiry_sweep_task(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=None))
    ses_id = client.post("/api/onboarding/sessions", json={"employeeId": emp_id}, headers=admin).get_json()["data"]["session"]["id"]

    with SessionLocal() as db:
        db.get(OnboardingSession, ses_id).expiresAt = iso_utc_in(hours=-2)
        db.commit()

    assert mark_expired_sessions_task() == {"expired": 1}
    with SessionLocal() as db:
        assert db.get(OnboardingSession, ses_id).status == "expired"


def test_onboarding_email_escapes_html():
    msg = build_onboarding_email("<script>x</script>", "A&B <Co>", "tok", "https://hr.example.com")
    assert "<script>" not in msg["html"]
    assert "&lt;script&gt;x&lt;/script&gt;" in msg["html"]
    assert "A&amp;B &lt;Co&gt;" in msg["html"]
    assert "Hi <script>x</script>," in msg["text"]
