from __future__ import annotations

from conftest import PASSWORD


def _login(client, email: str, password: str = PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_login_me_logout_flow(app_client, seed):
    _app, client = app_client
    org = seed.organization()
    seed.user(role="manager", org_id=org, email="manager@example.com", first_name="Maria")

    res = _login(client, "Manager@Example.com")
    assert res.status_code == 200
    data = res.get_json()["data"]
    token = data["sessionToken"]
    assert token.startswith("ST-")
    assert data["me"]["role"] == "MANAGER"
    assert data["me"]["organizationId"] == org

    headers = {"Authorization": f"Bearer {token}"}
    res = client.get("/api/auth/me", headers=headers)
    assert res.status_code == 200
    assert res.get_json()["data"]["me"]["firstName"] == "Maria"

    res = client.post("/api/auth/logout", headers=headers)
    assert res.status_code == 200
    assert res.get_json()["data"]["revoked"] is True

    res = client.get("/api/auth/me", headers=headers)
    assert res.status_code == 401
    assert res.get_json()["error"]["code"] == "AUTH_INVALID"


def test_login_rejects_bad_credentials(app_client, seed):
    _app, client = app_client
    seed.user(role="hr_admin", org_id=None, email="admin@example.com")

    wrong = _login(client, "admin@example.com", "Wr0ng!Password")
    unknown = _login(client, "nobody@example.com")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_json()["error"]["message"] == unknown.get_json()["error"]["message"]

    res = client.post("/api/auth/login?lang=es", json={"email": "admin@example.com", "password": "nope"})
    assert res.get_json()["error"]["message"] == "Correo electrónico o contraseña inválidos"

    res = client.post("/api/auth/login", json={"email": "admin@example.com"})
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "BAD_REQUEST"


def test_login_is_rate_limited(app_client, seed):
    app, client = app_client
    app.config["CFG"].RATE_LIMIT_LOGIN = 3
    seed.user(role="hr_admin", org_id=None, email="admin@example.com")

    for _ in range(3):
        assert _login(client, "admin@example.com", "Wr0ng!Password").status_code == 401

    res = _login(client, "admin@example.com")
    assert res.status_code == 429
    assert res.get_json()["error"]["code"] == "RATE_LIMITED"
