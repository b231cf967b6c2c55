from __future__ import annotations

import json

from sqlalchemy import select

from conftest import INTERNAL_TOKEN
from db import SessionLocal
from models import AuditLog, OnboardingSession
from utils import iso_utc_in


def _create(client, headers, employee_id: str, **extra):
    return client.post("/api/onboarding/sessions", json={"employeeId": employee_id, **extra}, headers=headers)


def _force_expiry(session_id: str) -> None:
    with SessionLocal() as db:
        row = db.get(OnboardingSession, session_id)
        row.expiresAt = iso_utc_in(hours=-1)
        db.commit()


def _status(session_id: str) -> str:
    with SessionLocal() as db:
        return db.get(OnboardingSession, session_id).status


def test_hr_admin_creates_session(app_client, seed, notifier):
    _app, client = app_client
    org = seed.organization("Acme Corp")
    emp_id, _ = seed.employee(org_id=org, email="ana@example.com")
    headers = seed.headers_for(seed.user(role="hr_admin", org_id=None))

    res = _create(client, headers, emp_id, languagePreference="es", expirationHours=48)
    assert res.status_code == 201
    body = res.get_json()
    assert body["success"] is True
    assert body["message"] == "Onboarding session created successfully"

    ses = body["data"]["session"]
    assert ses["employeeId"] == emp_id
    assert ses["status"] == "in_progress"
    assert ses["languagePreference"] == "es"
    assert ses["currentStep"] == "language_selection"
    assert body["data"]["onboardingUrl"] == f"https://hr.example.com/onboarding?token={ses['token']}"
    assert body["data"]["qrCodeData"] == body["data"]["onboardingUrl"]

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["to_email"] == "ana@example.com"
    assert res.headers.get("X-Request-ID")


def test_success_message_follows_accept_language(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    headers = seed.headers_for(seed.user(role="hr_admin", org_id=org))
    headers["Accept-Language"] = "es-MX,es;q=0.9"

    res = _create(client, headers, emp_id)
    assert res.status_code == 201
    assert res.get_json()["message"] == "Sesión de incorporación creada exitosamente"


def test_duplicate_active_session_conflicts(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    headers = seed.headers_for(seed.user(role="manager", org_id=org))

    assert _create(client, headers, emp_id).status_code == 201
    res = _create(client, headers, emp_id)
    assert res.status_code == 409
    body = res.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "CONFLICT"

    with SessionLocal() as db:
        rows = db.execute(select(OnboardingSession).where(OnboardingSession.employeeId == emp_id)).scalars().all()
        assert len(rows) == 1
        errors = db.execute(select(AuditLog).where(AuditLog.stageTag == "API_ERROR")).scalars().all()
        assert [e.action for e in errors] == ["ONBOARDING_SESSION_CREATE"]


def test_missing_employee_is_not_found(app_client, seed):
    _app, client = app_client
    headers = seed.headers_for(seed.user(role="hr_admin", org_id=None))
    res = _create(client, headers, "EMP-nope")
    assert res.status_code == 404
    assert res.get_json()["error"]["code"] == "NOT_FOUND"


def test_login_required_and_role_table(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, emp_user = seed.employee(org_id=org)

    res = _create(client, {}, emp_id)
    assert res.status_code == 401
    assert res.get_json()["error"]["code"] == "AUTH_INVALID"

    res = _create(client, {"Authorization": "Bearer ST-bogus"}, emp_id)
    assert res.status_code == 401

    res = _create(client, seed.headers_for(emp_user), emp_id)
    assert res.status_code == 403
    assert res.get_json()["error"]["code"] == "FORBIDDEN"


def test_manager_cannot_touch_other_organization(app_client, seed):
    _app, client = app_client
    org_a = seed.organization("Org A")
    org_b = seed.organization("Org B")
    emp_b, _ = seed.employee(org_id=org_b)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=org_a))
    manager_a = seed.headers_for(seed.user(role="manager", org_id=org_a))

    res = _create(client, manager_a, emp_b)
    assert res.status_code == 403
    assert res.get_json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    session_id = _create(client, admin, emp_b).get_json()["data"]["session"]["id"]

    res = client.patch(f"/api/onboarding/sessions/{session_id}", json={"currentStep": "documents"}, headers=manager_a)
    assert res.status_code == 403
    assert res.get_json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    res = client.patch(f"/api/onboarding/sessions/{session_id}", json={"currentStep": "documents"}, headers=admin)
    assert res.status_code == 200
    assert res.get_json()["data"]["session"]["currentStep"] == "documents"


def test_manager_list_is_scoped_to_own_organization(app_client, seed):
    _app, client = app_client
    org_a = seed.organization("Org A")
    org_b = seed.organization("Org B")
    emp_a, _ = seed.employee(org_id=org_a)
    emp_b, _ = seed.employee(org_id=org_b)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=None))
    manager_a = seed.headers_for(seed.user(role="manager", org_id=org_a))

    _create(client, admin, emp_a)
    _create(client, admin, emp_b)

    res = client.get("/api/onboarding/sessions", headers=manager_a)
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert [s["employeeId"] for s in data["data"]] == [emp_a]
    assert data["pagination"]["total"] == 1

    res = client.get(f"/api/onboarding/sessions?organizationId={org_b}", headers=manager_a)
    assert res.status_code == 403

    res = client.get("/api/onboarding/sessions?limit=1&page=1", headers=admin)
    pagination = res.get_json()["data"]["pagination"]
    assert pagination == {"page": 1, "limit": 1, "total": 2, "totalPages": 2, "hasNext": True, "hasPrev": False}

    res = client.get("/api/onboarding/sessions?limit=500", headers=admin)
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_candidate_flow_validate_progress_complete(app_client, seed):
    _app, client = app_client
    org = seed.organization("Acme Corp")
    emp_id, _ = seed.employee(org_id=org, first_name="Ana", last_name="Lopez")
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=org))
    token = _create(client, admin, emp_id).get_json()["data"]["session"]["token"]

    res = client.post("/api/onboarding/access/validate", json={"token": token})
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["isValid"] is True
    assert data["employee"]["name"] == "Ana Lopez"
    assert data["employee"]["organizationName"] == "Acme Corp"

    res = client.patch(f"/api/onboarding/access/{token}/progress", json={"currentStep": "personal_info", "formData": {"phone": "555"}})
    assert res.status_code == 200
    assert res.get_json()["data"]["session"]["formData"] == {"phone": "555"}

    res = client.post(f"/api/onboarding/access/{token}/complete", json={"formData": {"signature": "ana"}})
    assert res.status_code == 200
    ses = res.get_json()["data"]["session"]
    assert ses["status"] == "completed"
    assert ses["currentStep"] == "completed"
    assert ses["completedAt"]
    assert ses["formData"] == {"phone": "555", "signature": "ana"}

    res = client.post("/api/onboarding/access/validate", json={"token": token})
    assert res.status_code == 409
    assert res.get_json()["error"]["code"] == "SESSION_NOT_ACTIVE"


def test_candidate_start_checks_employee(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=org))
    token = _create(client, admin, emp_id).get_json()["data"]["session"]["token"]

    res = client.post("/api/onboarding/access/start", json={"token": token, "employeeId": "EMP-other"})
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "BAD_REQUEST"

    res = client.post("/api/onboarding/access/start", json={"token": token, "employeeId": emp_id, "languagePreference": "es"})
    assert res.status_code == 200
    assert res.get_json()["data"]["session"]["languagePreference"] == "es"


def test_invalid_token(app_client):
    _app, client = app_client
    res = client.post("/api/onboarding/access/validate", json={"token": "nope"}, headers={"Accept-Language": "es"})
    assert res.status_code == 400
    body = res.get_json()
    assert body["error"]["code"] == "INVALID_TOKEN"
    assert body["error"]["message"] == "Token de incorporación inválido"


def test_expired_token_is_persisted_even_though_request_fails(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=org))
    ses = _create(client, admin, emp_id).get_json()["data"]["session"]
    _force_expiry(ses["id"])

    res = client.post("/api/onboarding/access/validate", json={"token": ses["token"]})
    assert res.status_code == 410
    body = res.get_json()
    assert body["error"]["code"] == "SESSION_EXPIRED"
    assert body["details"] == {"isExpired": True}
    assert _status(ses["id"]) == "expired"

    res = client.patch(f"/api/onboarding/access/{ses['token']}/progress", json={"formData": {"a": 1}})
    assert res.status_code == 410

    # HR reopens it.
    res = client.post(f"/api/onboarding/sessions/{ses['id']}/extend", json={"additionalHours": 24}, headers=admin)
    assert res.status_code == 200
    assert res.get_json()["data"]["session"]["status"] == "in_progress"


def test_staff_complete_cancel_extend(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp1, _ = seed.employee(org_id=org)
    emp2, _ = seed.employee(org_id=org)
    manager = seed.headers_for(seed.user(role="manager", org_id=org))

    s1 = _create(client, manager, emp1).get_json()["data"]["session"]["id"]
    s2 = _create(client, manager, emp2).get_json()["data"]["session"]["id"]

    res = client.post(f"/api/onboarding/sessions/{s1}/complete", headers=manager)
    assert res.status_code == 200
    assert res.get_json()["message"] == "Onboarding completed successfully"

    res = client.post(f"/api/onboarding/sessions/{s1}/cancel", headers=manager)
    assert res.status_code == 409
    assert _status(s1) == "completed"

    res = client.post(f"/api/onboarding/sessions/{s2}/extend", json={"additionalHours": 0}, headers=manager)
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "VALIDATION_ERROR"

    res = client.post(f"/api/onboarding/sessions/{s2}/cancel", headers=manager)
    assert res.status_code == 200
    assert res.get_json()["data"]["session"]["status"] == "cancelled"

    res = client.post(f"/api/onboarding/sessions/{s2}/extend", json={"additionalHours": 24}, headers=manager)
    assert res.status_code == 409
    assert res.get_json()["error"]["code"] == "SESSION_NOT_ACTIVE"


def test_employee_reads_own_sessions_only(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp1, user1 = seed.employee(org_id=org)
    emp2, _ = seed.employee(org_id=org)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=org))
    s1 = _create(client, admin, emp1).get_json()["data"]["session"]["id"]
    s2 = _create(client, admin, emp2).get_json()["data"]["session"]["id"]
    own = seed.headers_for(user1)

    res = client.get(f"/api/onboarding/sessions/{s1}", headers=own)
    assert res.status_code == 200

    res = client.get(f"/api/onboarding/sessions/{s2}", headers=own)
    assert res.status_code == 403

    res = client.get(f"/api/onboarding/employees/{emp1}/sessions/active", headers=own)
    assert res.status_code == 200
    assert res.get_json()["data"]["session"]["id"] == s1

    res = client.get(f"/api/onboarding/employees/{emp1}/sessions", headers=own)
    assert [s["id"] for s in res.get_json()["data"]["items"]] == [s1]


def test_stats_and_expiring(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp1, _ = seed.employee(org_id=org)
    emp2, _ = seed.employee(org_id=org)
    manager = seed.headers_for(seed.user(role="manager", org_id=org))

    s1 = _create(client, manager, emp1, expirationHours=5).get_json()["data"]["session"]["id"]
    s2 = _create(client, manager, emp2).get_json()["data"]["session"]["id"]
    client.post(f"/api/onboarding/sessions/{s2}/complete", headers=manager)

    stats = client.get(f"/api/onboarding/organizations/{org}/stats", headers=manager).get_json()["data"]
    assert stats["total"] == 2
    assert stats["completed"] == 1
    assert stats["inProgress"] == 1
    assert stats["completionRate"] == 50

    items = client.get("/api/onboarding/expiring?hours=24", headers=manager).get_json()["data"]["items"]
    assert [s["id"] for s in items] == [s1]


def test_mark_expired_job_requires_internal_token(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=org))
    ses_id = _create(client, admin, emp_id).get_json()["data"]["session"]["id"]
    _force_expiry(ses_id)

    res = client.post("/api/onboarding/jobs/mark-expired", headers={"X-Internal-Token": "wrong"})
    assert res.status_code == 401

    res = client.post("/api/onboarding/jobs/mark-expired", headers={"X-Internal-Token": INTERNAL_TOKEN})
    assert res.status_code == 200
    assert res.get_json()["data"] == {"expired": 1}
    assert _status(ses_id) == "expired"


def test_generic_action_endpoint(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    emp_id, _ = seed.employee(org_id=org)
    headers = seed.headers_for(seed.user(role="hr_admin", org_id=org))

    payload = {"action": "onboarding_session_create", "data": {"employeeId": emp_id}}
    res = client.post("/api", data=json.dumps(payload), content_type="text/plain; charset=utf-8", headers=headers)
    assert res.status_code == 201
    assert res.get_json()["data"]["session"]["employeeId"] == emp_id

    res = client.post("/api", data=json.dumps({"action": "NOPE", "data": {}}), content_type="application/json", headers=headers)
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "BAD_REQUEST"

    res = client.post("/api", data="not json", content_type="text/plain")
    assert res.status_code == 400


def test_unknown_endpoint_uses_envelope(app_client):
    _app, client = app_client
    res = client.get("/api/nothing-here")
    assert res.status_code == 404
    body = res.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"


def test_failed_request_sends_no_invitation(app_client, seed, notifier, monkeypatch):
    import app.routes.api as api_module

    _app, client = app_client
    emp_id, _ = seed.employee(org_id=seed.organization(), email="ana@example.com")
    headers = seed.headers_for(seed.user(role="hr_admin", org_id=None))
    real_append_audit = api_module.append_audit

    def failing_append_audit(db, **kwargs):
        if kwargs.get("stageTag") == "API_CALL":
            raise RuntimeError("audit store unavailable")
        return real_append_audit(db, **kwargs)

    monkeypatch.setattr(api_module, "append_audit", failing_append_audit)

    res = _create(client, headers, emp_id)
    assert res.status_code == 500
    assert res.get_json()["error"]["code"] == "INTERNAL"
    assert notifier.sent == []
    with SessionLocal() as db:
        assert db.execute(select(OnboardingSession).where(OnboardingSession.employeeId == emp_id)).first() is None

    monkeypatch.setattr(api_module, "append_audit", real_append_audit)
    res = _create(client, headers, emp_id)
    assert res.status_code == 201
    assert [m["token"] for m in notifier.sent] == [res.get_json()["data"]["session"]["token"]]
