from __future__ import annotations

import json
import math
import os
from typing import Any, Optional

from flask import g, has_request_context

from models import AuditLog
from utils import AuthContext, ValidationError, iso_utc_now


DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def _correlation_id() -> str:
    if not has_request_context():
        return ""
    return str(getattr(g, "request_id", "") or "")


def append_audit(
    db,
    *,
    entityType: str,
    entityId: str,
    action: str,
    actor: Optional[AuthContext],
    fromState: str = "",
    toState: str = "",
    stageTag: str = "",
    remark: str = "",
    at: str = "",
    meta: Optional[dict[str, Any]] = None,
) -> None:
    db.add(
        AuditLog(
            logId=f"LOG-{os.urandom(16).hex()}",
            entityType=str(entityType or ""),
            entityId=str(entityId or ""),
            action=str(action or ""),
            fromState=str(fromState or ""),
            toState=str(toState or ""),
            stageTag=str(stageTag or action or ""),
            remark=str(remark or ""),
            actorUserId=str(actor.userId) if actor else "SYSTEM",
            actorRole=str(actor.role) if actor else "SYSTEM",
            actorEmail=str(actor.email or "") if actor else "",
            at=at or iso_utc_now(),
            correlationId=_correlation_id(),
            metaJson=json.dumps(meta or {}, default=str),
        )
    )


def parse_pagination(data: dict[str, Any]) -> tuple[int, int]:
    try:
        page = int(str((data or {}).get("page") or 1))
        limit = int(str((data or {}).get("limit") or DEFAULT_PAGE_LIMIT))
    except ValueError:
        raise ValidationError("page and limit must be integers", details={"fields": ["page", "limit"]})
    if page < 1:
        raise ValidationError("page must be >= 1", details={"field": "page"})
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}", details={"field": "limit"})
    return page, limit


def paginated(items: list[Any], *, total: int, page: int, limit: int) -> dict[str, Any]:
    total_pages = int(math.ceil(total / limit)) if limit else 0
    return {
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


def parse_bool_maybe(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    raise ValidationError(f"Invalid boolean: {value}")


def require_str(data: dict[str, Any], key: str, *, max_len: int = 500) -> str:
    s = str((data or {}).get(key) or "").strip()
    if not s:
        raise ValidationError(f"Missing {key}", details={"field": key})
    if len(s) > max_len:
        raise ValidationError(f"{key} is too long", details={"field": key})
    return s
