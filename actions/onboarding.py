from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable, Optional

from sqlalchemy import event

from actions.employee_repo import EmployeeRepository
from actions.helpers import append_audit, paginated, parse_bool_maybe, parse_pagination, require_str
from actions.onboarding_repo import (
    SESSION_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_EXPIRED,
    STATUS_IN_PROGRESS,
    OnboardingSessionRepository,
)
from config import Config
from i18n import SUPPORTED_LOCALES
from models import OnboardingSession
from services.authorization import ResourceScope, assert_allowed, organization_scope
from services.mailer import onboarding_url
from services.notifications import get_notifier
from services.tokens import TokenGenerator
from utils import (
    ApiError,
    AuthContext,
    Conflict,
    InvalidToken,
    NotFound,
    SessionExpired,
    SessionNotActive,
    ValidationError,
    loads_json_object,
    new_uuid,
    parse_datetime_maybe,
    to_iso_utc,
    utc_now,
)


log = logging.getLogger("onboarding")

DEFAULT_EXPIRATION_HOURS = 168
DEFAULT_START_STEP = "language_selection"
COMPLETED_STEP = "completed"
ENTITY = "ONBOARDING_SESSION"
_PENDING_INVITATIONS = "pending_onboarding_invitations"


@dataclass
class TokenValidation:
    is_valid: bool
    is_expired: bool
    session: Optional[OnboardingSession] = None
    error: Optional[ApiError] = None

    def raise_for_error(self) -> OnboardingSession:
        if self.error is not None:
            raise self.error
        return self.session


def serialize_session(row: OnboardingSession) -> dict[str, Any]:
    return {
        "id": row.id,
        "employeeId": row.employeeId,
        "token": row.token,
        "firstName": row.firstName,
        "lastName": row.lastName,
        "email": row.email,
        "jobTitle": row.jobTitle,
        "organizationId": row.organizationId,
        "organizationName": row.organizationName,
        "languagePreference": row.languagePreference or "en",
        "currentStep": row.currentStep,
        "formData": loads_json_object(row.formDataJson),
        "status": row.status,
        "expiresAt": row.expiresAt,
        "completedAt": row.completedAt,
        "createdAt": row.createdAt,
        "updatedAt": row.updatedAt,
        "isWalkIn": not row.employeeId,
    }


def _pending_invitations(db) -> list[Callable[[], None]]:
    """Invitations queued on a DB session; sent after its commit, dropped otherwise."""
    pending = db.info.get(_PENDING_INVITATIONS)
    if pending is None:
        pending = db.info[_PENDING_INVITATIONS] = []
        event.listen(db, "after_commit", _send_pending_invitations)
        event.listen(db, "after_transaction_end", _drop_pending_invitations)
    return pending


def _send_pending_invitations(db) -> None:
    pending = db.info.get(_PENDING_INVITATIONS) or []
    while pending:
        pending.pop(0)()


def _drop_pending_invitations(db, transaction) -> None:
    if transaction.parent is None:
        pending = db.info.get(_PENDING_INVITATIONS)
        if pending:
            log.warning("dropping %s onboarding invitation(s) from an uncommitted transaction", len(pending))
            pending.clear()


def _language(value: Any, *, default: Optional[str] = None) -> Optional[str]:
    if value is None or value == "":
        return default
    lang = str(value).strip().lower()
    if lang not in SUPPORTED_LOCALES:
        raise ValidationError(f"languagePreference must be one of {', '.join(SUPPORTED_LOCALES)}", details={"field": "languagePreference"})
    return lang


def _positive_hours(value: Any, *, field: str, message_key: str = "") -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive number", message_key=message_key, details={"field": field})
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive number", message_key=message_key, details={"field": field})
    if hours <= 0 or hours != hours or hours == float("inf"):
        raise ValidationError(f"{field} must be a positive number", message_key=message_key, details={"field": field})
    return hours


def _form_data(value: Any) -> Optional[dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("formData must be an object", details={"field": "formData"})
    return value


def _step(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    s = str(value).strip()
    if len(s) > 100:
        raise ValidationError("currentStep is too long", details={"field": "currentStep"})
    return s


class OnboardingService:
    """
    Onboarding session lifecycle.

    States: in_progress (initial), completed and cancelled (terminal), expired
    (left only through `extend_session`). Expiry is detected lazily on token
    validation and progress updates, and in bulk by `mark_expired_sessions`.

    Collaborators are passed in so tests can substitute them; the caller owns the
    transaction (commit/rollback happens at the HTTP boundary or in the task).
    """

    def __init__(
        self,
        sessions: OnboardingSessionRepository,
        employees: EmployeeRepository,
        *,
        tokens: Optional[TokenGenerator] = None,
        notifier: Any = None,
        base_url: str = "http://localhost:3000",
        default_expiration_hours: int = DEFAULT_EXPIRATION_HOURS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sessions = sessions
        self.employees = employees
        self.tokens = tokens or TokenGenerator(sessions.token_exists)
        self.notifier = notifier
        self.base_url = str(base_url or "").rstrip("/")
        self.default_expiration_hours = int(default_expiration_hours)
        self.clock = clock

    # -- helpers -------------------------------------------------------------

    def _now(self) -> datetime:
        return self.clock()

    def _is_overdue(self, row: OnboardingSession, now: datetime) -> bool:
        exp = parse_datetime_maybe(row.expiresAt)
        return exp is None or exp <= now

    def _require(self, session_id: str, *, for_update: bool = False) -> OnboardingSession:
        row = self.sessions.get(session_id, for_update=for_update)
        if not row:
            raise NotFound("Onboarding session not found", message_key="onboarding.errors.onboardingSessionNotFound")
        return row

    def _transition(
        self,
        row: OnboardingSession,
        to_status: str,
        *,
        actor: Optional[AuthContext],
        action: str,
        now: datetime,
        meta: Optional[dict[str, Any]] = None,
    ) -> None:
        from_status = row.status
        row.status = to_status
        row.updatedAt = to_iso_utc(now)
        append_audit(
            self.sessions.db,
            entityType=ENTITY,
            entityId=row.id,
            action=action,
            fromState=from_status,
            toState=to_status,
            actor=actor,
            at=row.updatedAt,
            meta=meta,
        )

    def onboarding_url(self, row: OnboardingSession) -> str:
        return onboarding_url(self.base_url, row.token)

    def notify_invitation(self, row: OnboardingSession, *, to_email: str, candidate_name: str, organization_name: str) -> None:
        """Queue the invitation; it goes out only once the session row is committed."""
        if self.notifier is None or not to_email:
            return
        invitation = {
            "to_email": to_email,
            "candidate_name": candidate_name,
            "organization_name": organization_name,
            "token": row.token,
            "base_url": self.base_url,
        }
        _pending_invitations(self.sessions.db).append(partial(self._deliver_invitation, row.id, invitation))

    def _deliver_invitation(self, session_id: str, invitation: dict[str, str]) -> None:
        try:
            self.notifier.onboarding_invitation(**invitation)
        except Exception:
            log.exception("onboarding invitation dispatch failed session=%s", session_id)

    # -- lifecycle -----------------------------------------------------------

    def create_session(
        self,
        employee_id: str,
        *,
        language_preference: Optional[str] = None,
        expiration_hours: Any = None,
        current_step: Optional[str] = None,
        form_data: Optional[dict[str, Any]] = None,
        actor: Optional[AuthContext] = None,
    ) -> OnboardingSession:
        lang = _language(language_preference, default="en")
        hours = self.default_expiration_hours if expiration_hours in (None, "") else _positive_hours(expiration_hours, field="expirationHours")
        step = _step(current_step) or DEFAULT_START_STEP
        data = _form_data(form_data) or {}

        employee = self.employees.get(employee_id, for_update=True)
        if not employee:
            raise NotFound("Employee not found", message_key="onboarding.errors.employeeNotFound")

        now = self._now()
        now_iso = to_iso_utc(now)
        existing = self.sessions.find_active_for_employee(employee.id, now_iso)
        if existing:
            raise Conflict(
                "An active onboarding session already exists for this employee",
                message_key="onboarding.errors.onboardingSessionAlreadyExists",
                details={"sessionId": existing.id},
            )

        token = self.tokens.generate_unique_token()
        row = self.sessions.add(
            OnboardingSession(
                id="ONB-" + new_uuid(),
                employeeId=employee.id,
                token=token,
                languagePreference=lang,
                currentStep=step,
                formDataJson=json.dumps(data),
                status=STATUS_IN_PROGRESS,
                expiresAt=to_iso_utc(now + timedelta(hours=hours)),
                completedAt=None,
                createdAt=now_iso,
                createdBy=str(actor.userId) if actor else "SYSTEM",
                updatedAt=now_iso,
            )
        )
        append_audit(
            self.sessions.db,
            entityType=ENTITY,
            entityId=row.id,
            action="ONBOARDING_SESSION_CREATE",
            toState=STATUS_IN_PROGRESS,
            actor=actor,
            at=now_iso,
            meta={"employeeId": employee.id, "expiresAt": row.expiresAt},
        )
        log.info("onboarding session created id=%s employee=%s expires=%s", row.id, employee.id, row.expiresAt)

        user = self.employees.user_of(employee)
        org = self.employees.organization_of(employee)
        self.notify_invitation(
            row,
            to_email=str(user.email or "") if user else "",
            candidate_name=f"{user.firstName} {user.lastName}".strip() if user else "",
            organization_name=str(org.name or "") if org else "",
        )
        return row

    def validate_token(self, token: str) -> TokenValidation:
        tok = str(token or "").strip()
        row = self.sessions.get_by_token(tok, for_update=True) if tok else None
        if not row:
            return TokenValidation(False, False, None, InvalidToken(details={"isExpired": False}))

        now = self._now()
        if self._is_overdue(row, now) or row.status == STATUS_EXPIRED:
            if row.status == STATUS_IN_PROGRESS:
                self._transition(row, STATUS_EXPIRED, actor=None, action="ONBOARDING_SESSION_EXPIRE", now=now)
                log.info("onboarding session expired on validation id=%s", row.id)
            return TokenValidation(False, True, row, SessionExpired(details={"isExpired": True}, keep_changes=True))

        if row.status != STATUS_IN_PROGRESS:
            return TokenValidation(False, False, row, SessionNotActive(details={"isExpired": False, "status": row.status}))

        return TokenValidation(True, False, row, None)

    def update_progress(
        self,
        session_id: str,
        *,
        current_step: Any = None,
        form_data: Any = None,
        language_preference: Any = None,
        actor: Optional[AuthContext] = None,
    ) -> OnboardingSession:
        step = _step(current_step)
        data = _form_data(form_data)
        lang = _language(language_preference)

        row = self._require(session_id, for_update=True)
        now = self._now()
        if row.status == STATUS_IN_PROGRESS and self._is_overdue(row, now):
            self._transition(row, STATUS_EXPIRED, actor=None, action="ONBOARDING_SESSION_EXPIRE", now=now)
            raise SessionExpired(details={"status": STATUS_EXPIRED}, keep_changes=True)
        if row.status != STATUS_IN_PROGRESS:
            raise SessionExpired(details={"status": row.status})

        changed: list[str] = []
        if data:
            merged = loads_json_object(row.formDataJson)
            merged.update(data)
            row.formDataJson = json.dumps(merged)
            changed.append("formData")
        if step is not None:
            row.currentStep = step
            changed.append("currentStep")
        if lang is not None:
            row.languagePreference = lang
            changed.append("languagePreference")
        row.updatedAt = to_iso_utc(now)

        append_audit(
            self.sessions.db,
            entityType=ENTITY,
            entityId=row.id,
            action="ONBOARDING_PROGRESS_UPDATE",
            actor=actor,
            at=row.updatedAt,
            meta={"changed": changed, "currentStep": row.currentStep, "formDataKeys": sorted((data or {}).keys())},
        )
        return row

    def complete_session(self, session_id: str, *, actor: Optional[AuthContext] = None) -> OnboardingSession:
        row = self._require(session_id, for_update=True)
        if row.status != STATUS_IN_PROGRESS:
            raise SessionNotActive(details={"status": row.status})

        now = self._now()
        row.completedAt = to_iso_utc(now)
        row.currentStep = COMPLETED_STEP
        self._transition(row, STATUS_COMPLETED, actor=actor, action="ONBOARDING_SESSION_COMPLETE", now=now)
        log.info("onboarding session completed id=%s", row.id)
        return row

    def cancel_session(self, session_id: str, *, actor: Optional[AuthContext] = None) -> OnboardingSession:
        row = self._require(session_id, for_update=True)
        if row.status == STATUS_CANCELLED:
            return row
        if row.status == STATUS_COMPLETED:
            raise SessionNotActive("Completed onboarding sessions cannot be cancelled", details={"status": row.status})

        self._transition(row, STATUS_CANCELLED, actor=actor, action="ONBOARDING_SESSION_CANCEL", now=self._now())
        log.info("onboarding session cancelled id=%s", row.id)
        return row

    def extend_session(self, session_id: str, additional_hours: Any, *, actor: Optional[AuthContext] = None) -> OnboardingSession:
        hours = _positive_hours(
            additional_hours,
            field="additionalHours",
            message_key="onboarding.errors.additionalHoursRequired",
        )
        row = self._require(session_id, for_update=True)
        if row.status in {STATUS_COMPLETED, STATUS_CANCELLED}:
            raise SessionNotActive(details={"status": row.status})

        now = self._now()
        if row.employeeId and (row.status == STATUS_EXPIRED or self._is_overdue(row, now)):
            live = self.sessions.find_active_for_employee(row.employeeId, to_iso_utc(now))
            if live is not None and live.id != row.id:
                raise Conflict(
                    "An active onboarding session already exists for this employee",
                    message_key="onboarding.errors.onboardingSessionAlreadyExists",
                    details={"sessionId": live.id},
                )
        previous = row.expiresAt
        base = parse_datetime_maybe(row.expiresAt) or now
        row.expiresAt = to_iso_utc(base + timedelta(hours=hours))
        meta = {"additionalHours": hours, "previousExpiresAt": previous, "expiresAt": row.expiresAt}

        if row.status == STATUS_EXPIRED:
            self._transition(row, STATUS_IN_PROGRESS, actor=actor, action="ONBOARDING_SESSION_EXTEND", now=now, meta=meta)
        else:
            row.updatedAt = to_iso_utc(now)
            append_audit(
                self.sessions.db,
                entityType=ENTITY,
                entityId=row.id,
                action="ONBOARDING_SESSION_EXTEND",
                fromState=row.status,
                toState=row.status,
                actor=actor,
                at=row.updatedAt,
                meta=meta,
            )
        return row

    # -- reads ---------------------------------------------------------------

    def get_session(self, session_id: str) -> OnboardingSession:
        return self._require(session_id)

    def list_sessions(self, filters: dict[str, Any], *, page: int = 1, limit: int = 10) -> tuple[list[OnboardingSession], int]:
        clean: dict[str, Any] = {}
        for key in ("employeeId", "organizationId"):
            v = str(filters.get(key) or "").strip()
            if v:
                clean[key] = v

        status = str(filters.get("status") or "").strip().lower()
        if status:
            if status not in SESSION_STATUSES:
                raise ValidationError(f"Invalid status: {status}", details={"field": "status"})
            clean["status"] = status

        expired = parse_bool_maybe(filters.get("expired"))
        if expired is not None:
            clean["expired"] = expired

        for key in ("createdAfter", "createdBefore"):
            raw = filters.get(key)
            if raw in (None, ""):
                continue
            dt = parse_datetime_maybe(raw)
            if not dt:
                raise ValidationError(f"Invalid {key}", details={"field": key})
            clean[key] = to_iso_utc(dt)

        return self.sessions.search(clean, now_iso=to_iso_utc(self._now()), page=page, limit=limit)

    def get_sessions_by_employee(self, employee_id: str) -> list[OnboardingSession]:
        return self.sessions.list_for_employee(employee_id)

    def get_active_session_by_employee(self, employee_id: str) -> Optional[OnboardingSession]:
        return self.sessions.find_active_for_employee(employee_id, to_iso_utc(self._now()))

    def mark_expired_sessions(self) -> int:
        now_iso = to_iso_utc(self._now())
        count = self.sessions.mark_expired(now_iso)
        if count:
            append_audit(
                self.sessions.db,
                entityType=ENTITY,
                entityId="*",
                action="ONBOARDING_SESSIONS_EXPIRE_SWEEP",
                toState=STATUS_EXPIRED,
                actor=None,
                at=now_iso,
                meta={"count": count},
            )
        log.info("onboarding expiry sweep marked=%s", count)
        return count

    def get_organization_stats(self, organization_id: str) -> dict[str, Any]:
        counts = self.sessions.status_counts(organization_id, to_iso_utc(self._now()))
        overdue = counts.get("overdue", 0)
        total = sum(counts.get(s, 0) for s in SESSION_STATUSES)
        completed = counts.get(STATUS_COMPLETED, 0)
        return {
            "organizationId": organization_id,
            "total": total,
            "inProgress": counts.get(STATUS_IN_PROGRESS, 0) - overdue,
            "completed": completed,
            "expired": counts.get(STATUS_EXPIRED, 0) + overdue,
            "cancelled": counts.get(STATUS_CANCELLED, 0),
            "completionRate": round(completed / total * 100) if total else 0,
        }

    def get_expiring_sessions(self, hours: Any = 24, *, organization_id: Optional[str] = None) -> list[OnboardingSession]:
        window = _positive_hours(hours, field="hours")
        now = self._now()
        return self.sessions.expiring_between(
            to_iso_utc(now),
            to_iso_utc(now + timedelta(hours=window)),
            organization_id=organization_id,
        )


def build_onboarding_service(db, cfg: Config, *, notifier: Any = None, clock: Optional[Callable[[], datetime]] = None) -> OnboardingService:
    return OnboardingService(
        OnboardingSessionRepository(db),
        EmployeeRepository(db),
        notifier=notifier if notifier is not None else get_notifier(),
        base_url=cfg.FRONTEND_URL,
        default_expiration_hours=cfg.ONBOARDING_EXPIRATION_HOURS,
        clock=clock or utc_now,
    )


# -- action handlers -----------------------------------------------------------


def _session_scope(svc: OnboardingService, row: OnboardingSession) -> ResourceScope:
    return ResourceScope(
        organizationId=svc.sessions.organization_of(row),
        ownerUserId=svc.sessions.owner_user_id(row),
    )


def _employee_scope(svc: OnboardingService, employee_id: str) -> ResourceScope:
    employee = svc.employees.get(employee_id)
    if not employee:
        raise NotFound("Employee not found", message_key="onboarding.errors.employeeNotFound")
    user = svc.employees.user_of(employee)
    return ResourceScope(
        organizationId=str(user.organizationId or "") if user else "",
        ownerUserId=str(employee.userId or ""),
    )


def _guarded_session(svc: OnboardingService, auth: AuthContext, session_id: str, action: str) -> OnboardingSession:
    row = svc.get_session(session_id)
    assert_allowed(auth, action, _session_scope(svc, row))
    return row


def _candidate_view(svc: OnboardingService, row: OnboardingSession) -> dict[str, Any]:
    out = {"id": "", "name": "", "position": "", "department": "", "startDate": "", "organizationName": row.organizationName or ""}
    if row.employeeId:
        employee = svc.employees.get(row.employeeId)
        if employee:
            user = svc.employees.user_of(employee)
            org = svc.employees.organization_of(employee)
            out.update(
                {
                    "id": employee.id,
                    "name": f"{user.firstName} {user.lastName}".strip() if user else "",
                    "position": employee.position or "",
                    "department": employee.department or "",
                    "startDate": employee.hireDate or "",
                    "organizationName": str(org.name or "") if org else "",
                }
            )
    else:
        form = loads_json_object(row.formDataJson)
        out.update(
            {
                "name": f"{row.firstName or ''} {row.lastName or ''}".strip(),
                "position": row.jobTitle or str(form.get("position") or ""),
                "department": str(form.get("department") or ""),
                "startDate": str(form.get("hireDate") or ""),
            }
        )
    return out


def onboarding_session_create(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    employee_id = require_str(data, "employeeId")
    assert_allowed(auth, "create", _employee_scope(svc, employee_id))

    row = svc.create_session(
        employee_id,
        language_preference=data.get("languagePreference"),
        expiration_hours=data.get("expirationHours"),
        current_step=data.get("currentStep"),
        form_data=data.get("formData"),
        actor=auth,
    )
    url = svc.onboarding_url(row)
    return {"session": serialize_session(row), "onboardingUrl": url, "qrCodeData": url}


def onboarding_session_get(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    row = _guarded_session(svc, auth, require_str(data, "sessionId"), "view")
    return {"session": serialize_session(row)}


def onboarding_session_list(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    page, limit = parse_pagination(data)
    filters = dict(data or {})

    scoped_org = organization_scope(auth)
    requested_org = str(filters.get("organizationId") or "").strip()
    if scoped_org is not None:
        if not scoped_org:
            return paginated([], total=0, page=page, limit=limit)
        if requested_org and requested_org != scoped_org:
            assert_allowed(auth, "list", ResourceScope(organizationId=requested_org))
        filters["organizationId"] = scoped_org

    rows, total = svc.list_sessions(filters, page=page, limit=limit)
    return paginated([serialize_session(r) for r in rows], total=total, page=page, limit=limit)


def onboarding_session_update(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    session_id = require_str(data, "sessionId")
    _guarded_session(svc, auth, session_id, "update")
    row = svc.update_progress(
        session_id,
        current_step=data.get("currentStep"),
        form_data=data.get("formData"),
        language_preference=data.get("languagePreference"),
        actor=auth,
    )
    return {"session": serialize_session(row)}


def onboarding_session_complete(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    session_id = require_str(data, "sessionId")
    _guarded_session(svc, auth, session_id, "update")
    return {"session": serialize_session(svc.complete_session(session_id, actor=auth))}


def onboarding_session_cancel(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    session_id = require_str(data, "sessionId")
    _guarded_session(svc, auth, session_id, "update")
    return {"session": serialize_session(svc.cancel_session(session_id, actor=auth))}


def onboarding_session_extend(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    session_id = require_str(data, "sessionId")
    _guarded_session(svc, auth, session_id, "update")
    row = svc.extend_session(session_id, data.get("additionalHours"), actor=auth)
    return {"session": serialize_session(row)}


def onboarding_employee_sessions(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    employee_id = require_str(data, "employeeId")
    assert_allowed(auth, "view", _employee_scope(svc, employee_id))
    return {"items": [serialize_session(r) for r in svc.get_sessions_by_employee(employee_id)]}


def onboarding_employee_active_session(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    employee_id = require_str(data, "employeeId")
    assert_allowed(auth, "view", _employee_scope(svc, employee_id))
    row = svc.get_active_session_by_employee(employee_id)
    return {"session": serialize_session(row) if row else None}


def onboarding_org_stats(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    organization_id = require_str(data, "organizationId")
    assert_allowed(auth, "view", ResourceScope(organizationId=organization_id))
    return svc.get_organization_stats(organization_id)


def onboarding_expiring_list(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    hours = data.get("hours") or cfg.ONBOARDING_EXPIRING_WINDOW_HOURS
    scoped_org = organization_scope(auth)
    if scoped_org == "":
        return {"items": []}
    rows = svc.get_expiring_sessions(hours, organization_id=scoped_org)
    return {"items": [serialize_session(r) for r in rows]}


def onboarding_mark_expired(data, auth: AuthContext, db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    return {"expired": svc.mark_expired_sessions()}


# Candidate-facing handlers: the onboarding token is the only credential.


def onboarding_token_validate(data, auth: Optional[AuthContext], db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    result = svc.validate_token(require_str(data, "token", max_len=64))
    row = result.raise_for_error()
    return {
        "isValid": True,
        "isExpired": False,
        "session": serialize_session(row),
        "employee": _candidate_view(svc, row),
    }


def onboarding_start(data, auth: Optional[AuthContext], db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    row = svc.validate_token(require_str(data, "token", max_len=64)).raise_for_error()

    employee_id = str(data.get("employeeId") or "").strip()
    if employee_id and employee_id != str(row.employeeId or ""):
        raise ApiError("BAD_REQUEST", "Token does not match the specified employee", message_key="onboarding.errors.tokenEmployeeMismatch")

    lang = _language(data.get("languagePreference"))
    if lang and lang != row.languagePreference:
        row = svc.update_progress(row.id, language_preference=lang)

    return {"session": serialize_session(row), "employee": _candidate_view(svc, row)}


def onboarding_token_progress(data, auth: Optional[AuthContext], db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    row = svc.validate_token(require_str(data, "token", max_len=64)).raise_for_error()
    row = svc.update_progress(
        row.id,
        current_step=data.get("currentStep"),
        form_data=data.get("formData"),
        language_preference=data.get("languagePreference"),
    )
    return {"session": serialize_session(row)}


def onboarding_token_complete(data, auth: Optional[AuthContext], db, cfg: Config):
    svc = build_onboarding_service(db, cfg)
    row = svc.validate_token(require_str(data, "token", max_len=64)).raise_for_error()
    if data.get("formData") is not None:
        row = svc.update_progress(row.id, form_data=data.get("formData"))
    return {"session": serialize_session(svc.complete_session(row.id))}
