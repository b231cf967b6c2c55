from __future__ import annotations

import logging
import re
from typing import Any, Optional

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import DBAPIError

from actions import dispatch
from actions.helpers import append_audit
from auth import assert_permission, is_public_action, role_or_public, validate_session_token
from config import Config
from db import SessionLocal
from i18n import default_translator, normalize_locale
from utils import SYSTEM_ACTOR, ApiError, AuthContext, SimpleRateLimiter, err, now_monotonic, ok, parse_json_body, redact_for_audit


log = logging.getLogger("api")

rest_api = Blueprint("rest_api", __name__)

_limiter = SimpleRateLimiter()

SUCCESS_MESSAGE_KEYS = {
    "ONBOARDING_SESSION_CREATE": "onboarding.success.sessionCreated",
    "ONBOARDING_SESSION_UPDATE": "onboarding.success.progressUpdated",
    "ONBOARDING_SESSION_COMPLETE": "onboarding.success.sessionCompleted",
    "ONBOARDING_SESSION_CANCEL": "onboarding.success.sessionCancelled",
    "ONBOARDING_SESSION_EXTEND": "onboarding.success.sessionExtended",
    "ONBOARDING_START": "onboarding.success.onboardingStarted",
    "ONBOARDING_TOKEN_PROGRESS": "onboarding.success.progressUpdated",
    "ONBOARDING_TOKEN_COMPLETE": "onboarding.success.sessionCompleted",
    "WALKIN_SESSION_CREATE": "onboarding.success.walkInCreated",
    "EMPLOYEE_CREATE": "employee.success.employeeCreated",
    "MESSAGE_SEND": "messages.success.messageSent",
    "ANNOUNCEMENT_CREATE": "announcements.success.announcementCreated",
    "ANNOUNCEMENT_DEACTIVATE": "announcements.success.announcementDeactivated",
}

CREATED_ACTIONS = {"ONBOARDING_SESSION_CREATE", "WALKIN_SESSION_CREATE", "EMPLOYEE_CREATE", "MESSAGE_SEND", "ANNOUNCEMENT_CREATE"}

CANDIDATE_ACTIONS = {"ONBOARDING_TOKEN_VALIDATE", "ONBOARDING_START", "ONBOARDING_TOKEN_PROGRESS", "ONBOARDING_TOKEN_COMPLETE"}


def request_locale() -> str:
    return normalize_locale(request.args.get("lang") or request.headers.get("Accept-Language"))


def bearer_token() -> str:
    authz = str(request.headers.get("Authorization") or "").strip()
    if authz.lower().startswith("bearer "):
        return authz.split(" ", 1)[1].strip()
    return str(request.headers.get("X-Session-Token") or "").strip()


def _client_ip() -> str:
    fwd = str(request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return fwd or str(request.remote_addr or "")


def _check_rate_limits(cfg: Config, action_u: str) -> None:
    ip = _client_ip()
    if action_u == "AUTH_LOGIN":
        _limiter.check(f"{ip}:LOGIN", cfg.RATE_LIMIT_LOGIN)
    elif action_u in CANDIDATE_ACTIONS:
        _limiter.check(f"{ip}:TOKEN", cfg.RATE_LIMIT_TOKEN)
    else:
        _limiter.check(f"{ip}:GLOBAL", cfg.RATE_LIMIT_GLOBAL)
        _limiter.check(f"{ip}:API:{action_u}", cfg.RATE_LIMIT_DEFAULT)


def _error_message(e: ApiError, locale: str) -> str:
    # English messages are the precise ones; other locales use the catalog text.
    if locale != "en" and e.message_key and default_translator.has(e.message_key):
        return default_translator.t(e.message_key, locale=locale)
    return e.message


def _success_message(action_u: str, out: Any, locale: str) -> str:
    key = SUCCESS_MESSAGE_KEYS.get(action_u)
    if not key:
        return ""
    params: dict[str, Any] = {}
    if action_u == "WALKIN_SESSION_CREATE" and isinstance(out, dict):
        ses = out.get("session") or {}
        params["name"] = f"{ses.get('firstName') or ''} {ses.get('lastName') or ''}".strip()
    return default_translator.t(key, params, locale=locale)


def _authenticate(db, cfg: Config, action_u: str, *, allow_internal: bool) -> Optional[AuthContext]:
    if allow_internal:
        internal = str(request.headers.get("X-Internal-Token") or "").strip()
        expected = str(cfg.INTERNAL_CRON_TOKEN or "").strip()
        if expected and internal and internal == expected:
            return SYSTEM_ACTOR

    if is_public_action(action_u):
        return None

    auth_ctx = validate_session_token(db, bearer_token())
    if not auth_ctx.valid:
        raise ApiError("AUTH_INVALID", "Invalid or expired session", message_key="auth.errors.sessionInvalid")
    return auth_ctx


def _write_error_audit(action: str, auth_ctx: Optional[AuthContext], data: Any, err_obj: ApiError) -> None:
    db2 = SessionLocal()
    try:
        append_audit(
            db2,
            entityType="API",
            entityId=str(auth_ctx.userId) if auth_ctx else "PUBLIC",
            action=str(action or "").upper() or "UNKNOWN",
            stageTag="API_ERROR",
            remark=f"{err_obj.code}: {err_obj.message}",
            actor=auth_ctx,
            meta={"data": redact_for_audit(data or {}), "error": {"code": err_obj.code, "message": err_obj.message}},
        )
        db2.commit()
    except Exception:
        db2.rollback()
        log.exception("failed to write error audit action=%s", action)
    finally:
        db2.close()


def _unexpected_message(cfg: Config, e: Exception, prefix: str, raw: str = "") -> str:
    request_id = str(getattr(g, "request_id", "") or "").strip()
    suffix = f" (requestId: {request_id})" if request_id else ""
    if cfg.IS_PRODUCTION:
        return f"{prefix}{suffix}"

    detail = raw or type(e).__name__
    if cfg.DEBUG_ERROR_DETAILS and not raw:
        msg = re.sub(r"\s+", " ", str(e) or "").strip()
        if msg:
            detail = f"{detail}: {msg[:300]}"
    return f"{prefix}: {detail}{suffix}"


def rest_handle(action: str, data: Any, *, allow_internal: bool = False):
    """Run one action inside its own DB session and render the JSON envelope."""
    cfg: Config = current_app.config["CFG"]
    action_u = str(action or "").upper().strip()
    locale = request_locale()
    data = data if isinstance(data, dict) else {}

    db = None
    auth_ctx: Optional[AuthContext] = None
    try:
        if not action_u:
            raise ApiError("BAD_REQUEST", "Missing action")
        _check_rate_limits(cfg, action_u)

        db = SessionLocal()
        auth_ctx = _authenticate(db, cfg, action_u, allow_internal=allow_internal)
        assert_permission(role_or_public(auth_ctx), action_u)

        out = dispatch(action_u, data, auth_ctx, db, cfg)

        append_audit(
            db,
            entityType="API",
            entityId=str(auth_ctx.userId) if auth_ctx else "PUBLIC",
            action=action_u,
            stageTag="API_CALL",
            actor=auth_ctx,
            meta={"data": redact_for_audit(data)},
        )
        db.commit()

        log.info(
            "request_id=%s action=%s user=%s role=%s latency_ms=%s",
            getattr(g, "request_id", ""),
            action_u,
            auth_ctx.userId if auth_ctx else "PUBLIC",
            auth_ctx.role if auth_ctx else "PUBLIC",
            int((now_monotonic() - getattr(g, "start_ts", now_monotonic())) * 1000),
        )
        status = 201 if action_u in CREATED_ACTIONS else 200
        return ok(out, message=_success_message(action_u, out, locale), http_status=status)
    except ApiError as e:
        if db is not None:
            if e.keep_changes:
                db.commit()
            else:
                db.rollback()
        _write_error_audit(action_u, auth_ctx, data, e)
        log.info("request_id=%s action=%s error=%s", getattr(g, "request_id", ""), action_u, e.code)
        return err(e.code, _error_message(e, locale), http_status=e.http_status, details=e.details)
    except DBAPIError as e:
        if db is not None:
            db.rollback()
        orig = re.sub(r"\s+", " ", str(getattr(e, "orig", "") or "")).strip()[:300]
        api_err = ApiError("INTERNAL", _unexpected_message(cfg, e, "Database error", orig), http_status=500)
        _write_error_audit(action_u, auth_ctx, data, api_err)
        log.exception("request_id=%s action=%s", getattr(g, "request_id", ""), action_u)
        return err(api_err.code, api_err.message, http_status=500)
    except Exception as e:
        if db is not None:
            db.rollback()
        api_err = ApiError("INTERNAL", _unexpected_message(cfg, e, "Unexpected error"), http_status=500)
        _write_error_audit(action_u, auth_ctx, data, api_err)
        log.exception("request_id=%s action=%s", getattr(g, "request_id", ""), action_u)
        return err(api_err.code, api_err.message, http_status=500)
    finally:
        if db is not None:
            db.close()


def json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@rest_api.post("/api")
def api_route():
    try:
        body = parse_json_body(request.get_data(as_text=True))
    except ApiError as e:
        return err(e.code, e.message, http_status=e.http_status)
    return rest_handle(str(body.get("action") or ""), body.get("data") or {})
