from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import select

from models import StaffSession, User
from utils import ApiError, AuthContext, iso_utc_now, new_uuid, normalize_role, parse_datetime_maybe, sha256_hex, to_iso_utc


PUBLIC_ACTIONS = {
    "AUTH_LOGIN",
    "ONBOARDING_TOKEN_VALIDATE",
    "ONBOARDING_START",
    "ONBOARDING_TOKEN_PROGRESS",
    "ONBOARDING_TOKEN_COMPLETE",
}

_ALL_ROLES = ["HR_ADMIN", "MANAGER", "EMPLOYEE"]
_STAFF = ["HR_ADMIN", "MANAGER"]


STATIC_RBAC_PERMISSIONS: dict[str, list[str]] = {
    "AUTH_LOGIN": ["PUBLIC"],
    "AUTH_ME": _ALL_ROLES,
    "AUTH_LOGOUT": _ALL_ROLES,
    # Candidate-facing flow (token is the credential)
    "ONBOARDING_TOKEN_VALIDATE": ["PUBLIC"],
    "ONBOARDING_START": ["PUBLIC"],
    "ONBOARDING_TOKEN_PROGRESS": ["PUBLIC"],
    "ONBOARDING_TOKEN_COMPLETE": ["PUBLIC"],
    # Staff-facing session management
    "ONBOARDING_SESSION_CREATE": _STAFF,
    "ONBOARDING_SESSION_GET": _ALL_ROLES,
    "ONBOARDING_SESSION_LIST": _STAFF,
    "ONBOARDING_SESSION_UPDATE": _STAFF,
    "ONBOARDING_SESSION_COMPLETE": _STAFF,
    "ONBOARDING_SESSION_CANCEL": _STAFF,
    "ONBOARDING_SESSION_EXTEND": _STAFF,
    "ONBOARDING_EMPLOYEE_SESSIONS": _ALL_ROLES,
    "ONBOARDING_EMPLOYEE_ACTIVE_SESSION": _ALL_ROLES,
    "ONBOARDING_ORG_STATS": _STAFF,
    "ONBOARDING_EXPIRING_LIST": _STAFF,
    "ONBOARDING_MARK_EXPIRED": ["HR_ADMIN"],
    # Walk-in candidates
    "WALKIN_SESSION_CREATE": _STAFF,
    "WALKIN_SESSIONS_ACTIVE": _STAFF,
    # Employees
    "EMPLOYEE_CREATE": _STAFF,
    "EMPLOYEE_GET": _ALL_ROLES,
    "EMPLOYEE_LIST": _STAFF,
    # Internal messaging
    "MESSAGE_SEND": _ALL_ROLES,
    "MESSAGE_INBOX": _ALL_ROLES,
    "MESSAGE_SENT": _ALL_ROLES,
    "MESSAGE_UNREAD_COUNT": _ALL_ROLES,
    "MESSAGE_MARK_READ": _ALL_ROLES,
    "MESSAGE_DELETE": _ALL_ROLES,
    # Announcements
    "ANNOUNCEMENT_CREATE": _STAFF,
    "ANNOUNCEMENT_LIST_ACTIVE": _ALL_ROLES,
    "ANNOUNCEMENT_GET": _ALL_ROLES,
    "ANNOUNCEMENT_DEACTIVATE": _STAFF,
}


_INVALID = AuthContext(valid=False, userId="", email="", role="", expiresAt="")


def is_public_action(action: str) -> bool:
    return str(action or "").upper() in PUBLIC_ACTIONS


def uuid_hex_32() -> str:
    return new_uuid().replace("-", "")


def issue_session_token(db, *, user: User, session_ttl_minutes: int) -> dict[str, str]:
    token = "ST-" + uuid_hex_32() + uuid_hex_32()
    now = datetime.now(timezone.utc)
    issued_at = to_iso_utc(now)
    expires_at = to_iso_utc(now + timedelta(minutes=session_ttl_minutes))

    db.add(
        StaffSession(
            sessionId="SES-" + new_uuid(),
            tokenHash=sha256_hex(token),
            tokenPrefix=token[:12],
            userId=str(user.id),
            email=str(user.email or ""),
            role=str(normalize_role(user.role) or ""),
            organizationId=str(user.organizationId or ""),
            issuedAt=issued_at,
            expiresAt=expires_at,
            lastSeenAt=issued_at,
            revokedAt="",
            revokedBy="",
        )
    )
    return {"sessionToken": token, "expiresAt": expires_at}


def revoke_session_token(db, token: Any, *, revoked_by: str) -> bool:
    if not token or not isinstance(token, str):
        return False
    ses = db.execute(select(StaffSession).where(StaffSession.tokenHash == sha256_hex(token))).scalar_one_or_none()
    if not ses or ses.revokedAt:
        return False
    ses.revokedAt = iso_utc_now()
    ses.revokedBy = str(revoked_by or "")
    return True


def validate_session_token(db, token: Any) -> AuthContext:
    if not token or not isinstance(token, str):
        return _INVALID

    ses = db.execute(select(StaffSession).where(StaffSession.tokenHash == sha256_hex(token))).scalar_one_or_none()
    if not ses or ses.revokedAt:
        return _INVALID

    exp_dt = parse_datetime_maybe(ses.expiresAt)
    if not exp_dt or exp_dt < datetime.now(timezone.utc):
        return _INVALID

    usr = db.get(User, ses.userId)
    if not usr:
        return _INVALID
    if not usr.isActive:
        raise ApiError("FORBIDDEN", "User is disabled", http_status=403)

    # Avoid writing on every request: update lastSeenAt at most once per interval.
    try:
        interval_s = int(str(os.getenv("SESSION_LAST_SEEN_UPDATE_SECONDS", "300") or "300"))
    except ValueError:
        interval_s = 300

    last_dt = parse_datetime_maybe(ses.lastSeenAt)
    if interval_s <= 0 or not last_dt or (datetime.now(timezone.utc) - last_dt).total_seconds() >= interval_s:
        ses.lastSeenAt = iso_utc_now()

    # Role and organization come from the user row so changes apply without re-login.
    return AuthContext(
        valid=True,
        userId=str(usr.id),
        email=str(usr.email or ""),
        role=str(normalize_role(usr.role) or ""),
        expiresAt=str(ses.expiresAt or ""),
        organizationId=str(usr.organizationId or ""),
    )


def assert_permission(role: str, action: str) -> None:
    role_u = normalize_role(role) or ""
    action_u = str(action or "").upper().strip()

    allowed = STATIC_RBAC_PERMISSIONS.get(action_u)
    if allowed is None:
        raise ApiError("BAD_REQUEST", f"Unknown action: {action_u}")
    if is_public_action(action_u):
        return
    if not role_u or role_u == "PUBLIC":
        raise ApiError("AUTH_INVALID", "Login required", message_key="common.errors.authenticationRequired")
    if role_u not in allowed:
        raise ApiError("FORBIDDEN", f"Not allowed for role: {role_u}", message_key="common.errors.insufficientPermissions")


def role_or_public(auth: Optional[AuthContext]) -> str:
    if not auth or not auth.valid:
        return "PUBLIC"
    return normalize_role(auth.role) or "PUBLIC"
