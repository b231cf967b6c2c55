from __future__ import annotations

from db import SessionLocal
from models import User
from passwords import verify_password


def test_hr_admin_creates_employee_with_password(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    admin = seed.headers_for(seed.user(role="hr_admin", org_id=None))

    res = client.post(
        "/api/employees",
        json={
            "email": "New.Hire@Example.com",
            "firstName": "New",
            "lastName": "Hire",
            "organizationId": org,
            "position": "Barista",
            "password": "Welcome!2025x",
        },
        headers=admin,
    )
    assert res.status_code == 201
    body = res.get_json()
    assert body["message"] == "Employee created successfully"
    emp = body["data"]["employee"]
    assert emp["position"] == "Barista"
    assert emp["user"]["email"] == "new.hire@example.com"
    assert emp["user"]["role"] == "employee"
    assert emp["user"]["organizationId"] == org

    with SessionLocal() as db:
        user = db.get(User, emp["userId"])
        assert verify_password("Welcome!2025x", user.passwordHash)


def test_employee_create_rules(app_client, seed):
    _app, client = app_client
    org_a = seed.organization("Org A")
    org_b = seed.organization("Org B")
    manager = seed.headers_for(seed.user(role="manager", org_id=org_a, email="boss@example.com"))

    # Manager defaults to their own organization and gets a generated password.
    res = client.post("/api/employees", json={"email": "x@example.com", "firstName": "X", "lastName": "Y"}, headers=manager)
    assert res.status_code == 201
    assert res.get_json()["data"]["employee"]["user"]["organizationId"] == org_a

    res = client.post("/api/employees", json={"email": "x@example.com", "firstName": "X", "lastName": "Y"}, headers=manager)
    assert res.status_code == 409

    res = client.post(
        "/api/employees",
        json={"email": "z@example.com", "firstName": "Z", "lastName": "Z", "organizationId": org_b},
        headers=manager,
    )
    assert res.status_code == 403

    res = client.post(
        "/api/employees",
        json={"email": "m@example.com", "firstName": "M", "lastName": "M", "role": "manager"},
        headers=manager,
    )
    assert res.status_code == 400

    res = client.post(
        "/api/employees",
        json={"email": "weak@example.com", "firstName": "W", "lastName": "W", "password": "short"},
        headers=manager,
    )
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "VALIDATION_ERROR"


def test_employee_get_and_list_scoping(app_client, seed):
    _app, client = app_client
    org_a = seed.organization("Org A")
    org_b = seed.organization("Org B")
    emp_a, user_a = seed.employee(org_id=org_a)
    emp_b, _ = seed.employee(org_id=org_b)
    manager_a = seed.headers_for(seed.user(role="manager", org_id=org_a))

    assert client.get(f"/api/employees/{emp_a}", headers=manager_a).status_code == 200
    assert client.get(f"/api/employees/{emp_b}", headers=manager_a).status_code == 403
    assert client.get("/api/employees/EMP-missing", headers=manager_a).status_code == 404

    own = seed.headers_for(user_a)
    assert client.get(f"/api/employees/{emp_a}", headers=own).status_code == 200
    assert client.get(f"/api/employees/{emp_b}", headers=own).status_code == 403
    assert client.get("/api/employees", headers=own).status_code == 403

    res = client.get("/api/employees", headers=manager_a)
    data = res.get_json()["data"]
    assert [e["id"] for e in data["data"]] == [emp_a]
    assert data["pagination"]["total"] == 1
