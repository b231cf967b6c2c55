from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select

from actions.helpers import append_audit, paginated, parse_pagination, require_str
from actions.onboarding_repo import OrganizationRepository
from models import Announcement
from services.authorization import ResourceScope, assert_allowed, organization_scope
from utils import AuthContext, NotFound, ValidationError, new_uuid, parse_datetime_maybe, to_iso_utc, utc_now


PRIORITIES = ("low", "normal", "high", "urgent")


def serialize_announcement(a: Announcement) -> dict[str, Any]:
    return {
        "id": a.id,
        "organizationId": a.organizationId,
        "authorId": a.authorId,
        "title": a.title or "",
        "content": a.content or "",
        "priority": a.priority or "normal",
        "isActive": bool(a.isActive),
        "expiresAt": a.expiresAt or None,
        "createdAt": a.createdAt or "",
    }


def _is_live(a: Announcement, now_iso: str) -> bool:
    return bool(a.isActive) and (not a.expiresAt or a.expiresAt > now_iso)


def _live_clause(now_iso: str):
    return (Announcement.isActive.is_(True)) & or_(Announcement.expiresAt == "", Announcement.expiresAt > now_iso)


def _load(db, announcement_id: str, *, for_update: bool = False) -> Announcement:
    q = select(Announcement).where(Announcement.id == announcement_id)
    if for_update:
        q = q.with_for_update(of=Announcement)
    a = db.execute(q).scalar_one_or_none()
    if not a:
        raise NotFound("Announcement not found", message_key="announcements.errors.announcementNotFound")
    return a


def announcement_create(data, auth: AuthContext, db, cfg):
    title = require_str(data, "title", max_len=200)
    content = require_str(data, "content", max_len=5000)
    priority = str(data.get("priority") or "normal").strip().lower()
    if priority not in PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}", details={"field": "priority"})

    organization_id = str(data.get("organizationId") or auth.organizationId or "").strip()
    if not organization_id:
        raise ValidationError("Organization ID is required", message_key="common.errors.organizationIdRequired")
    assert_allowed(auth, "create", ResourceScope(organizationId=organization_id))
    if not OrganizationRepository(db).get(organization_id):
        raise NotFound("Organization not found", message_key="onboarding.errors.organizationNotFound")

    now = utc_now()
    expires_at = ""
    if data.get("expiresAt"):
        exp = parse_datetime_maybe(data.get("expiresAt"))
        if not exp or exp <= now:
            raise ValidationError("expiresAt must be a future timestamp", details={"field": "expiresAt"})
        expires_at = to_iso_utc(exp)

    now_iso = to_iso_utc(now)
    a = Announcement(
        id="ANN-" + new_uuid(),
        organizationId=organization_id,
        authorId=str(auth.userId),
        title=title,
        content=content,
        priority=priority,
        isActive=True,
        expiresAt=expires_at,
        createdAt=now_iso,
        updatedAt=now_iso,
    )
    db.add(a)
    db.flush()
    append_audit(
        db,
        entityType="ANNOUNCEMENT",
        entityId=a.id,
        action="ANNOUNCEMENT_CREATE",
        actor=auth,
        at=now_iso,
        meta={"organizationId": organization_id, "priority": priority},
    )
    return {"announcement": serialize_announcement(a)}


def announcement_list_active(data, auth: AuthContext, db, cfg):
    """Live announcements of one organization, newest first. Readable by every member."""
    page, limit = parse_pagination(data)
    requested = str((data or {}).get("organizationId") or "").strip()
    org_id = requested or organization_scope(auth)
    now_iso = to_iso_utc(utc_now())

    where = _live_clause(now_iso)
    if org_id is not None:
        assert_allowed(auth, "list", ResourceScope(organizationId=org_id, broadcast=True))
        where = where & (Announcement.organizationId == org_id)

    total = int(db.execute(select(func.count()).select_from(Announcement).where(where)).scalar() or 0)
    rows = (
        db.execute(
            select(Announcement)
            .where(where)
            .order_by(Announcement.createdAt.desc(), Announcement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return paginated([serialize_announcement(a) for a in rows], total=total, page=page, limit=limit)


def announcement_get(data, auth: AuthContext, db, cfg):
    a = _load(db, require_str(data, "announcementId"))
    live = _is_live(a, to_iso_utc(utc_now()))
    # Employees only see announcements that are still live.
    assert_allowed(auth, "view", ResourceScope(organizationId=a.organizationId, broadcast=live))
    return {"announcement": serialize_announcement(a)}


def announcement_deactivate(data, auth: AuthContext, db, cfg):
    a = _load(db, require_str(data, "announcementId"), for_update=True)
    assert_allowed(auth, "update", ResourceScope(organizationId=a.organizationId))
    if a.isActive:
        a.isActive = False
        a.updatedAt = to_iso_utc(utc_now())
        append_audit(
            db,
            entityType="ANNOUNCEMENT",
            entityId=a.id,
            action="ANNOUNCEMENT_DEACTIVATE",
            fromState="active",
            toState="inactive",
            actor=auth,
            at=a.updatedAt,
        )
    return {"announcement": serialize_announcement(a)}
