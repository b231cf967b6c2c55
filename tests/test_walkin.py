from __future__ import annotations


def _walkin(client, headers, org_id: str, **overrides):
    payload = {
        "firstName": "Luis",
        "lastName": "Garcia",
        "email": "Luis.Garcia@Example.com",
        "position": "Line Cook",
        "department": "Kitchen",
        "hourlyRate": "17.50",
        "organizationId": org_id,
    }
    payload.update(overrides)
    return client.post("/api/onboarding/walkin", json=payload, headers=headers)


def test_manager_creates_walkin_session(app_client, seed, notifier):
    _app, client = app_client
    org = seed.organization("Taqueria Uno")
    manager = seed.headers_for(seed.user(role="manager", org_id=org))

    res = _walkin(client, manager, org)
    assert res.status_code == 201
    body = res.get_json()
    assert body["message"] == "Walk-in onboarding session created for Luis Garcia"

    ses = body["data"]["session"]
    assert ses["isWalkIn"] is True
    assert ses["employeeId"] is None
    assert ses["status"] == "in_progress"
    assert ses["currentStep"] == "personal_info"
    assert ses["email"] == "luis.garcia@example.com"
    assert ses["organizationName"] == "Taqueria Uno"
    assert ses["formData"]["employmentType"] == "full_time"
    assert ses["formData"]["hourlyRate"] == 17.5
    assert ses["formData"]["hireDate"]
    assert ses["candidate"]["position"] == "Line Cook"
    assert ses["candidate"]["hourlyRate"] == 17.5
    assert body["data"]["token"] == ses["token"]

    assert notifier.sent[0]["to_email"] == "luis.garcia@example.com"
    assert notifier.sent[0]["candidate_name"] == "Luis Garcia"
    assert notifier.sent[0]["organization_name"] == "Taqueria Uno"


def test_walkin_token_works_for_candidate(app_client, seed):
    _app, client = app_client
    org = seed.organization("Taqueria Uno")
    manager = seed.headers_for(seed.user(role="manager", org_id=org))
    token = _walkin(client, manager, org).get_json()["data"]["token"]

    res = client.post("/api/onboarding/access/validate", json={"token": token})
    assert res.status_code == 200
    employee = res.get_json()["data"]["employee"]
    assert employee["name"] == "Luis Garcia"
    assert employee["position"] == "Line Cook"
    assert employee["department"] == "Kitchen"


def test_walkin_rules(app_client, seed):
    _app, client = app_client
    org_a = seed.organization("Org A")
    org_b = seed.organization("Org B")
    manager_a = seed.headers_for(seed.user(role="manager", org_id=org_a))
    _emp, emp_user = seed.employee(org_id=org_a)

    res = _walkin(client, manager_a, org_b)
    assert res.status_code == 403
    assert res.get_json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    res = _walkin(client, seed.headers_for(emp_user), org_a)
    assert res.status_code == 403
    assert res.get_json()["error"]["code"] == "FORBIDDEN"

    res = _walkin(client, manager_a, org_a, email="not-an-email")
    assert res.status_code == 400

    res = _walkin(client, manager_a, org_a, hourlyRate="-1")
    assert res.status_code == 400

    admin = seed.headers_for(seed.user(role="hr_admin", org_id=None))
    res = _walkin(client, admin, "ORG-missing")
    assert res.status_code == 404


def test_active_walkins_listing(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    manager = seed.headers_for(seed.user(role="manager", org_id=org))
    emp_id, _ = seed.employee(org_id=org)

    first = _walkin(client, manager, org, email="a@example.com").get_json()["data"]["session"]["id"]
    second = _walkin(client, manager, org, email="b@example.com").get_json()["data"]["session"]["id"]
    client.post(f"/api/onboarding/sessions/{first}/cancel", headers=manager)
    client.post("/api/onboarding/sessions", json={"employeeId": emp_id}, headers=manager)

    res = client.get(f"/api/onboarding/walkin/organizations/{org}/active", headers=manager)
    assert res.status_code == 200
    assert [s["id"] for s in res.get_json()["data"]["items"]] == [second]
