from __future__ import annotations

import json
import re
from datetime import timedelta
from typing import Any

from actions.helpers import append_audit, require_str
from actions.onboarding import OnboardingService, build_onboarding_service, serialize_session
from actions.onboarding_repo import STATUS_IN_PROGRESS, OrganizationRepository
from config import Config
from models import OnboardingSession
from services.authorization import ResourceScope, assert_allowed
from utils import AuthContext, NotFound, ValidationError, loads_json_object, new_uuid, to_iso_utc


WALKIN_START_STEP = "personal_info"
WALKIN_RECENT_HOURS = 24

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _hourly_rate(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise ValidationError("hourlyRate must be a number", details={"field": "hourlyRate"})
    if rate < 0:
        raise ValidationError("hourlyRate must not be negative", details={"field": "hourlyRate"})
    return rate


def create_walkin_session(
    svc: OnboardingService,
    orgs: OrganizationRepository,
    data: dict[str, Any],
    *,
    actor: AuthContext,
    expiration_hours: int,
) -> OnboardingSession:
    first_name = require_str(data, "firstName", max_len=100)
    last_name = require_str(data, "lastName", max_len=100)
    email = require_str(data, "email", max_len=254).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email", details={"field": "email"})
    position = require_str(data, "position", max_len=120)
    department = str(data.get("department") or "").strip()
    rate = _hourly_rate(data.get("hourlyRate"))
    organization_id = require_str(data, "organizationId")

    assert_allowed(actor, "create", ResourceScope(organizationId=organization_id))
    org = orgs.get(organization_id)
    if not org:
        raise NotFound("Organization not found", message_key="onboarding.errors.organizationNotFound")

    now = svc.clock()
    now_iso = to_iso_utc(now)
    form = {
        "position": position,
        "department": department,
        "hourlyRate": rate,
        "employmentType": "full_time",
        "hireDate": now.date().isoformat(),
        "firstName": first_name,
        "lastName": last_name,
        "email": email,
    }

    row = svc.sessions.add(
        OnboardingSession(
            id="ONB-" + new_uuid(),
            employeeId=None,
            token=svc.tokens.generate_unique_token(),
            firstName=first_name,
            lastName=last_name,
            email=email,
            jobTitle=position,
            organizationId=org.id,
            organizationName=org.name,
            languagePreference="en",
            currentStep=WALKIN_START_STEP,
            formDataJson=json.dumps(form),
            status=STATUS_IN_PROGRESS,
            expiresAt=to_iso_utc(now + timedelta(hours=expiration_hours)),
            completedAt=None,
            createdAt=now_iso,
            createdBy=str(actor.userId),
            updatedAt=now_iso,
        )
    )
    append_audit(
        svc.sessions.db,
        entityType="ONBOARDING_SESSION",
        entityId=row.id,
        action="WALKIN_SESSION_CREATE",
        toState=STATUS_IN_PROGRESS,
        actor=actor,
        at=now_iso,
        meta={"organizationId": org.id, "position": position},
    )
    svc.notify_invitation(
        row,
        to_email=email,
        candidate_name=f"{first_name} {last_name}",
        organization_name=org.name or "",
    )
    return row


def _serialize_walkin(row: OnboardingSession) -> dict[str, Any]:
    form = loads_json_object(row.formDataJson)
    out = serialize_session(row)
    out["candidate"] = {
        "firstName": row.firstName or "",
        "lastName": row.lastName or "",
        "email": row.email or "",
        "position": row.jobTitle or "",
        "department": str(form.get("department") or ""),
        "hourlyRate": form.get("hourlyRate") or 0,
        "organizationName": row.organizationName or "",
        "hireDate": str(form.get("hireDate") or ""),
        "employmentType": str(form.get("employmentType") or "full_time"),
    }
    return out


def walkin_session_create(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    row = create_walkin_session(
        svc,
        OrganizationRepository(db),
        data or {},
        actor=auth,
        expiration_hours=cfg.ONBOARDING_WALKIN_EXPIRATION_HOURS,
    )
    url = svc.onboarding_url(row)
    return {"session": _serialize_walkin(row), "token": row.token, "onboardingUrl": url, "qrCodeData": url}


def walkin_sessions_active(data, auth: AuthContext, db, cfg: Config):
    organization_id = require_str(data, "organizationId")
    assert_allowed(auth, "list", ResourceScope(organizationId=organization_id))

    svc = build_onboarding_service(db, cfg)
    now = svc.clock()
    rows = svc.sessions.active_walkins(
        organization_id,
        now_iso=to_iso_utc(now),
        created_since_iso=to_iso_utc(now - timedelta(hours=WALKIN_RECENT_HOURS)),
    )
    return {"items": [_serialize_walkin(r) for r in rows]}
