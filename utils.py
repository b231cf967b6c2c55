from __future__ import annotations

import hashlib
import json
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from cache_layer import cache_incr


ROLES = {"HR_ADMIN", "MANAGER", "EMPLOYEE"}

_DEFAULT_HTTP_STATUS = {
    "BAD_REQUEST": 400,
    "VALIDATION_ERROR": 400,
    "AUTH_INVALID": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "RATE_LIMITED": 429,
    "INTERNAL": 500,
}


class ApiError(Exception):
    """
    Business error surfaced to API callers.

    `message_key` points into the i18n catalog; the HTTP boundary renders it in the
    request locale and falls back to `message`.
    """

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int | None = None,
        *,
        details: Any = None,
        message_key: str = "",
        keep_changes: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = int(http_status or _DEFAULT_HTTP_STATUS.get(code, 400))
        self.details = details
        self.message_key = message_key
        # Changes made before the error are committed rather than rolled back.
        self.keep_changes = keep_changes


class NotFound(ApiError):
    def __init__(self, message: str = "Not found", *, message_key: str = "", details: Any = None):
        super().__init__("NOT_FOUND", message, 404, message_key=message_key, details=details)


class Conflict(ApiError):
    def __init__(self, message: str = "Conflict", *, message_key: str = "", details: Any = None):
        super().__init__("CONFLICT", message, 409, message_key=message_key, details=details)


class InvalidToken(ApiError):
    def __init__(self, message: str = "Invalid onboarding token", *, details: Any = None):
        super().__init__("INVALID_TOKEN", message, 400, message_key="onboarding.errors.invalidToken", details=details)


class TokenGenerationExhausted(ApiError):
    def __init__(self, message: str = "Unable to generate unique token"):
        super().__init__("TOKEN_GENERATION_EXHAUSTED", message, 503, message_key="onboarding.errors.tokenGenerationFailed")


class SessionNotActive(ApiError):
    def __init__(self, message: str = "Onboarding session is not active", *, details: Any = None, keep_changes: bool = False):
        super().__init__(
            "SESSION_NOT_ACTIVE",
            message,
            409,
            message_key="onboarding.errors.onboardingSessionNotActive",
            details=details,
            keep_changes=keep_changes,
        )


class SessionExpired(ApiError):
    def __init__(self, message: str = "Onboarding session has expired", *, details: Any = None, keep_changes: bool = False):
        super().__init__(
            "SESSION_EXPIRED",
            message,
            410,
            message_key="onboarding.errors.onboardingSessionExpired",
            details=details,
            keep_changes=keep_changes,
        )


class Forbidden(ApiError):
    def __init__(self, message: str = "Insufficient permissions", *, message_key: str = "", details: Any = None):
        super().__init__(
            "INSUFFICIENT_PERMISSIONS",
            message,
            403,
            message_key=message_key or "common.errors.insufficientPermissions",
            details=details,
        )


class ValidationError(ApiError):
    def __init__(self, message: str = "Validation error", *, message_key: str = "", details: Any = None):
        super().__init__("VALIDATION_ERROR", message, 400, message_key=message_key or "common.errors.validation", details=details)


@dataclass(frozen=True)
class AuthContext:
    valid: bool
    userId: str
    email: str
    role: str
    expiresAt: str
    organizationId: str = ""


SYSTEM_ACTOR = AuthContext(valid=True, userId="SYSTEM", email="SYSTEM", role="HR_ADMIN", expiresAt="")


def normalize_role(role: Any) -> Optional[str]:
    r = str(role or "").strip().upper().replace("-", "_").replace(" ", "_")
    if not r:
        return None
    if r == "PUBLIC":
        return r
    return r if r in ROLES else None


def new_uuid() -> str:
    return str(uuid.uuid4())


def sha256_hex(value: str) -> str:
    return hashlib.sha256(str(value or "").encode("utf-8")).hexdigest()


def now_monotonic() -> float:
    return time.monotonic()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    dt = dt.replace(microsecond=(dt.microsecond // 1000) * 1000)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_utc_now() -> str:
    return to_iso_utc(utc_now())


def iso_utc_in(*, hours: float = 0, base: datetime | None = None) -> str:
    return to_iso_utc((base or utc_now()) + timedelta(hours=hours))


def parse_datetime_maybe(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    s = str(value or "").strip()
    if not s:
        return None
    try:
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def loads_json_object(raw: Any) -> dict[str, Any]:
    s = str(raw or "").strip()
    if not s:
        return {}
    try:
        out = json.loads(s)
    except ValueError:
        return {}
    return out if isinstance(out, dict) else {}


def parse_json_body(raw: str) -> dict[str, Any]:
    s = str(raw or "").strip()
    if not s:
        raise ApiError("BAD_REQUEST", "Missing request body")
    try:
        body = json.loads(s)
    except ValueError:
        raise ApiError("BAD_REQUEST", "Invalid JSON body")
    if not isinstance(body, dict):
        raise ApiError("BAD_REQUEST", "JSON body must be an object")
    return body


_REDACT_KEYS = {"password", "currentpassword", "newpassword", "token", "sessiontoken", "ssn", "bankaccount"}


def redact_for_audit(data: Any, depth: int = 0) -> Any:
    if depth > 4:
        return "..."
    if isinstance(data, dict):
        out = {}
        for k, v in data.items():
            if str(k).lower() in _REDACT_KEYS:
                out[k] = "[REDACTED]"
            else:
                out[k] = redact_for_audit(v, depth + 1)
        return out
    if isinstance(data, list):
        return [redact_for_audit(v, depth + 1) for v in data[:50]]
    if isinstance(data, str) and len(data) > 500:
        return data[:500] + "..."
    return data


def ok(data: Any, *, message: str = "", http_status: int = 200):
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body, http_status


def err(code: str, message: str, *, http_status: int = 400, details: Any = None):
    body: dict[str, Any] = {"success": False, "error": {"code": code, "message": message}}
    if details is not None:
        body["details"] = details
    return body, http_status


class SimpleRateLimiter:
    """Fixed-window counter per key, stored in the in-process TTL cache."""

    def __init__(self, window_seconds: int = 60):
        self.window_seconds = max(1, int(window_seconds))

    def check(self, key: str, limit: int) -> None:
        if int(limit or 0) <= 0:
            return
        window = int(time.time() // self.window_seconds)
        count = cache_incr(f"RL:{key}:{window}")
        if count > int(limit):
            raise ApiError("RATE_LIMITED", "Too many requests, try again later", 429, message_key="common.errors.rateLimited")
