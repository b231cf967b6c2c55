from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import and_, func, or_, select, update

from models import Employee, OnboardingSession, Organization, User


STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_EXPIRED = "expired"

SESSION_STATUSES = {STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_CANCELLED, STATUS_EXPIRED}


def _employee_ids_in_org(organization_id: str):
    return (
        select(Employee.id)
        .join(User, User.id == Employee.userId)
        .where(User.organizationId == organization_id)
    )


def _org_clause(organization_id: str):
    # Walk-ins carry the organization inline; employee sessions inherit it from the user.
    return or_(
        OnboardingSession.organizationId == organization_id,
        OnboardingSession.employeeId.in_(_employee_ids_in_org(organization_id)),
    )


class OnboardingSessionRepository:
    """
    Persistence for onboarding sessions over one SQLAlchemy session.

    Timestamps are ISO-8601 UTC strings with fixed millisecond precision, so string
    comparison in SQL matches chronological order.
    """

    def __init__(self, db):
        self.db = db

    def add(self, row: OnboardingSession) -> OnboardingSession:
        self.db.add(row)
        self.db.flush()
        return row

    def token_exists(self, token: str) -> bool:
        q = select(func.count()).select_from(OnboardingSession).where(OnboardingSession.token == token)
        return int(self.db.execute(q).scalar_one() or 0) > 0

    def get(self, session_id: str, *, for_update: bool = False) -> Optional[OnboardingSession]:
        q = select(OnboardingSession).where(OnboardingSession.id == str(session_id or "").strip())
        if for_update:
            q = q.with_for_update(of=OnboardingSession)
        return self.db.execute(q).scalars().first()

    def get_by_token(self, token: str, *, for_update: bool = False) -> Optional[OnboardingSession]:
        q = select(OnboardingSession).where(OnboardingSession.token == str(token or "").strip())
        if for_update:
            q = q.with_for_update(of=OnboardingSession)
        return self.db.execute(q).scalars().first()

    def find_active_for_employee(self, employee_id: str, now_iso: str) -> Optional[OnboardingSession]:
        q = (
            select(OnboardingSession)
            .where(OnboardingSession.employeeId == employee_id)
            .where(OnboardingSession.status == STATUS_IN_PROGRESS)
            .where(OnboardingSession.expiresAt > now_iso)
            .order_by(OnboardingSession.createdAt.desc())
        )
        return self.db.execute(q).scalars().first()

    def list_for_employee(self, employee_id: str) -> list[OnboardingSession]:
        q = (
            select(OnboardingSession)
            .where(OnboardingSession.employeeId == employee_id)
            .order_by(OnboardingSession.createdAt.desc(), OnboardingSession.id.desc())
        )
        return list(self.db.execute(q).scalars().all())

    def search(self, filters: dict[str, Any], *, now_iso: str, page: int, limit: int) -> tuple[list[OnboardingSession], int]:
        conds = []
        if filters.get("employeeId"):
            conds.append(OnboardingSession.employeeId == filters["employeeId"])
        if filters.get("status"):
            conds.append(OnboardingSession.status == filters["status"])
        if filters.get("organizationId"):
            conds.append(_org_clause(filters["organizationId"]))
        if filters.get("expired") is True:
            conds.append(OnboardingSession.expiresAt <= now_iso)
        elif filters.get("expired") is False:
            conds.append(OnboardingSession.expiresAt > now_iso)
        if filters.get("createdAfter"):
            conds.append(OnboardingSession.createdAt >= filters["createdAfter"])
        if filters.get("createdBefore"):
            conds.append(OnboardingSession.createdAt <= filters["createdBefore"])

        where = and_(*conds) if conds else None

        count_q = select(func.count()).select_from(OnboardingSession)
        rows_q = select(OnboardingSession)
        if where is not None:
            count_q = count_q.where(where)
            rows_q = rows_q.where(where)

        total = int(self.db.execute(count_q).scalar_one() or 0)
        rows_q = (
            rows_q.order_by(OnboardingSession.createdAt.desc(), OnboardingSession.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.db.execute(rows_q).scalars().all()), total

    def mark_expired(self, now_iso: str) -> int:
        res = self.db.execute(
            update(OnboardingSession)
            .where(OnboardingSession.status == STATUS_IN_PROGRESS)
            .where(OnboardingSession.expiresAt <= now_iso)
            .values(status=STATUS_EXPIRED, updatedAt=now_iso)
        )
        return int(res.rowcount or 0)

    def status_counts(self, organization_id: str, now_iso: str) -> dict[str, int]:
        q = (
            select(OnboardingSession.status, func.count())
            .where(_org_clause(organization_id))
            .group_by(OnboardingSession.status)
        )
        counts = {s: 0 for s in SESSION_STATUSES}
        for status, n in self.db.execute(q).all():
            counts[str(status)] = int(n or 0)

        overdue_q = (
            select(func.count())
            .select_from(OnboardingSession)
            .where(_org_clause(organization_id))
            .where(OnboardingSession.status == STATUS_IN_PROGRESS)
            .where(OnboardingSession.expiresAt <= now_iso)
        )
        counts["overdue"] = int(self.db.execute(overdue_q).scalar_one() or 0)
        return counts

    def expiring_between(self, start_iso: str, end_iso: str, *, organization_id: Optional[str] = None) -> list[OnboardingSession]:
        q = (
            select(OnboardingSession)
            .where(OnboardingSession.status == STATUS_IN_PROGRESS)
            .where(OnboardingSession.expiresAt > start_iso)
            .where(OnboardingSession.expiresAt <= end_iso)
        )
        if organization_id is not None:
            q = q.where(_org_clause(organization_id))
        q = q.order_by(OnboardingSession.expiresAt.asc())
        return list(self.db.execute(q).scalars().all())

    def active_walkins(self, organization_id: str, *, now_iso: str, created_since_iso: str) -> list[OnboardingSession]:
        q = (
            select(OnboardingSession)
            .where(OnboardingSession.employeeId.is_(None))
            .where(OnboardingSession.organizationId == organization_id)
            .where(OnboardingSession.status == STATUS_IN_PROGRESS)
            .where(OnboardingSession.expiresAt > now_iso)
            .where(OnboardingSession.createdAt >= created_since_iso)
            .order_by(OnboardingSession.createdAt.desc())
        )
        return list(self.db.execute(q).scalars().all())

    def organization_of(self, row: OnboardingSession) -> str:
        if row.organizationId:
            return str(row.organizationId)
        if not row.employeeId:
            return ""
        q = select(User.organizationId).join(Employee, Employee.userId == User.id).where(Employee.id == row.employeeId)
        return str(self.db.execute(q).scalar_one_or_none() or "")

    def owner_user_id(self, row: OnboardingSession) -> str:
        if not row.employeeId:
            return ""
        q = select(Employee.userId).where(Employee.id == row.employeeId)
        return str(self.db.execute(q).scalar_one_or_none() or "")


class OrganizationRepository:
    def __init__(self, db):
        self.db = db

    def get(self, organization_id: str) -> Optional[Organization]:
        return self.db.get(Organization, str(organization_id or "").strip())
