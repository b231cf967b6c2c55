from __future__ import annotations

from sqlalchemy import func, select

from actions.helpers import append_audit
from auth import issue_session_token, revoke_session_token
from models import User
from passwords import verify_password
from utils import ApiError, AuthContext, iso_utc_now, normalize_role


def _find_user_by_email(db, email: str):
    email_lc = str(email or "").strip().lower()
    if not email_lc or "@" not in email_lc:
        return None
    return db.execute(select(User).where(func.lower(User.email) == email_lc)).scalars().first()


def _me(user: User) -> dict:
    return {
        "userId": user.id,
        "email": user.email or "",
        "firstName": user.firstName or "",
        "lastName": user.lastName or "",
        "role": normalize_role(user.role),
        "organizationId": user.organizationId or "",
        "languagePreference": user.languagePreference or "en",
    }


def auth_login(data, auth: AuthContext | None, db, cfg):
    email = str((data or {}).get("email") or "").strip()
    password = str((data or {}).get("password") or "")
    if not email:
        raise ApiError("BAD_REQUEST", "Missing email")
    if not password:
        raise ApiError("BAD_REQUEST", "Missing password")
    if len(password) > 256:
        raise ApiError("BAD_REQUEST", "Password is too long")

    user = _find_user_by_email(db, email)
    # Same error for unknown email and wrong password.
    if not user or not verify_password(password, user.passwordHash or ""):
        raise ApiError("AUTH_INVALID", "Invalid credentials", message_key="auth.errors.invalidCredentials")
    if not user.isActive:
        raise ApiError("FORBIDDEN", "User is disabled", http_status=403)

    user.lastLoginAt = iso_utc_now()
    ses = issue_session_token(db, user=user, session_ttl_minutes=cfg.SESSION_TTL_MINUTES)

    append_audit(
        db,
        entityType="AUTH",
        entityId=str(user.id),
        action="AUTH_LOGIN",
        stageTag="AUTH_LOGIN",
        actor=AuthContext(
            valid=True,
            userId=user.id,
            email=user.email,
            role=normalize_role(user.role) or "",
            expiresAt=ses["expiresAt"],
            organizationId=user.organizationId or "",
        ),
    )

    return {"sessionToken": ses["sessionToken"], "expiresAt": ses["expiresAt"], "me": _me(user)}


def auth_me(data, auth: AuthContext | None, db, cfg):
    if not auth or not auth.valid:
        raise ApiError("AUTH_INVALID", "Invalid or expired session", message_key="auth.errors.sessionInvalid")
    user = db.get(User, auth.userId)
    if not user:
        raise ApiError("AUTH_INVALID", "User missing", message_key="auth.errors.sessionInvalid")
    return {"expiresAt": auth.expiresAt, "me": _me(user)}


def auth_logout(data, auth: AuthContext | None, db, cfg):
    if not auth or not auth.valid:
        raise ApiError("AUTH_INVALID", "Invalid or expired session", message_key="auth.errors.sessionInvalid")
    token = str((data or {}).get("sessionToken") or "")
    revoked = revoke_session_token(db, token, revoked_by=auth.userId)
    if revoked:
        append_audit(db, entityType="AUTH", entityId=str(auth.userId), action="AUTH_LOGOUT", stageTag="AUTH_LOGOUT", actor=auth)
    return {"ok": True, "revoked": bool(revoked)}
