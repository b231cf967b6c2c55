from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select

from models import Employee, Organization, User


class EmployeeRepository:
    def __init__(self, db):
        self.db = db

    def get(self, employee_id: str, *, for_update: bool = False) -> Optional[Employee]:
        q = select(Employee).where(Employee.id == str(employee_id or "").strip())
        if for_update:
            # Serializes concurrent session creation for the same employee.
            q = q.with_for_update(of=Employee)
        return self.db.execute(q).scalars().first()

    def user_of(self, employee: Employee) -> Optional[User]:
        return self.db.get(User, employee.userId)

    def organization_of(self, employee: Employee) -> Optional[Organization]:
        user = self.user_of(employee)
        if not user or not user.organizationId:
            return None
        return self.db.get(Organization, user.organizationId)

    def email_exists(self, email: str) -> bool:
        q = select(func.count()).select_from(User).where(func.lower(User.email) == str(email or "").strip().lower())
        return int(self.db.execute(q).scalar_one() or 0) > 0

    def add(self, user: User, employee: Employee) -> Employee:
        self.db.add(user)
        self.db.flush()
        self.db.add(employee)
        self.db.flush()
        return employee

    def search(self, *, organization_id: Optional[str], page: int, limit: int) -> tuple[list[tuple[Employee, User]], int]:
        base = select(Employee, User).join(User, User.id == Employee.userId)
        count_q = select(func.count()).select_from(Employee).join(User, User.id == Employee.userId)
        if organization_id is not None:
            base = base.where(User.organizationId == organization_id)
            count_q = count_q.where(User.organizationId == organization_id)

        total = int(self.db.execute(count_q).scalar_one() or 0)
        q = base.order_by(Employee.createdAt.desc(), Employee.id.desc()).offset((page - 1) * limit).limit(limit)
        return [(e, u) for e, u in self.db.execute(q).all()], total
