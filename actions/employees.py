from __future__ import annotations

import re
from typing import Any

from actions.employee_repo import EmployeeRepository
from actions.helpers import append_audit, paginated, parse_pagination, require_str
from actions.onboarding_repo import OrganizationRepository
from config import Config
from models import Employee, User
from passwords import generate_temporary_password, hash_password
from services.authorization import ResourceScope, assert_allowed, organization_scope
from utils import AuthContext, Conflict, NotFound, ValidationError, iso_utc_now, new_uuid, normalize_role, parse_datetime_maybe


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_CREATABLE_ROLES = {
    "HR_ADMIN": {"hr_admin", "manager", "employee"},
    "MANAGER": {"employee"},
}


def serialize_employee(emp: Employee, user: User | None) -> dict[str, Any]:
    return {
        "id": emp.id,
        "userId": emp.userId,
        "employeeCode": emp.employeeCode or "",
        "position": emp.position or "",
        "department": emp.department or "",
        "hireDate": emp.hireDate or "",
        "employmentStatus": emp.employmentStatus or "",
        "createdAt": emp.createdAt or "",
        "user": {
            "email": user.email if user else "",
            "firstName": user.firstName if user else "",
            "lastName": user.lastName if user else "",
            "role": user.role if user else "",
            "organizationId": user.organizationId if user else None,
            "languagePreference": user.languagePreference if user else "en",
        },
    }


def employee_create(data, auth: AuthContext, db, cfg: Config):
    repo = EmployeeRepository(db)

    email = require_str(data, "email", max_len=254).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email", details={"field": "email"})
    first_name = require_str(data, "firstName", max_len=100)
    last_name = require_str(data, "lastName", max_len=100)

    role = str(data.get("role") or "employee").strip().lower()
    actor_role = normalize_role(auth.role) or ""
    if role not in _CREATABLE_ROLES.get(actor_role, set()):
        raise ValidationError(f"Cannot create a user with role: {role}", details={"field": "role"})

    organization_id = str(data.get("organizationId") or auth.organizationId or "").strip()
    if not organization_id:
        raise ValidationError("Organization ID is required", message_key="common.errors.organizationIdRequired")
    assert_allowed(auth, "create", ResourceScope(organizationId=organization_id))
    if not OrganizationRepository(db).get(organization_id):
        raise NotFound("Organization not found", message_key="onboarding.errors.organizationNotFound")

    if repo.email_exists(email):
        raise Conflict("Email already exists", message_key="employee.errors.emailExists")

    hire_date = str(data.get("hireDate") or "").strip()
    if hire_date and not parse_datetime_maybe(hire_date):
        raise ValidationError("Invalid hireDate", details={"field": "hireDate"})

    password = str(data.get("password") or "") or generate_temporary_password()
    now = iso_utc_now()
    user = User(
        id="USR-" + new_uuid(),
        email=email,
        passwordHash=hash_password(password),
        role=role,
        organizationId=organization_id,
        firstName=first_name,
        lastName=last_name,
        languagePreference=str(data.get("languagePreference") or "en").strip().lower()[:2] or "en",
        isActive=True,
        lastLoginAt="",
        createdAt=now,
        updatedAt=now,
    )
    emp = Employee(
        id="EMP-" + new_uuid(),
        userId=user.id,
        employeeCode=str(data.get("employeeCode") or "").strip(),
        position=str(data.get("position") or "").strip(),
        department=str(data.get("department") or "").strip(),
        hireDate=hire_date,
        employmentStatus="pending",
        createdAt=now,
        createdBy=str(auth.userId),
        updatedAt=now,
    )
    repo.add(user, emp)

    append_audit(
        db,
        entityType="EMPLOYEE",
        entityId=emp.id,
        action="EMPLOYEE_CREATE",
        actor=auth,
        at=now,
        meta={"organizationId": organization_id, "role": role},
    )
    return {"employee": serialize_employee(emp, user)}


def employee_get(data, auth: AuthContext, db, cfg: Config):
    repo = EmployeeRepository(db)
    emp = repo.get(require_str(data, "employeeId"))
    if not emp:
        raise NotFound("Employee not found", message_key="employee.errors.employeeNotFound")
    user = repo.user_of(emp)
    assert_allowed(
        auth,
        "view",
        ResourceScope(organizationId=str(user.organizationId or "") if user else "", ownerUserId=emp.userId),
    )
    return {"employee": serialize_employee(emp, user)}


def employee_list(data, auth: AuthContext, db, cfg: Config):
    page, limit = parse_pagination(data)
    scoped_org = organization_scope(auth)
    if scoped_org == "":
        return paginated([], total=0, page=page, limit=limit)

    requested = str((data or {}).get("organizationId") or "").strip()
    if requested:
        assert_allowed(auth, "list", ResourceScope(organizationId=requested))
        scoped_org = requested

    rows, total = EmployeeRepository(db).search(organization_id=scoped_org, page=page, limit=limit)
    return paginated([serialize_employee(e, u) for e, u in rows], total=total, page=page, limit=limit)
