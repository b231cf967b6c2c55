from __future__ import annotations

from flask import Blueprint

from app.routes.api import bearer_token, json_body, rest_handle


auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
def login():
    return rest_handle("AUTH_LOGIN", json_body())


@auth_bp.get("/me")
def me():
    return rest_handle("AUTH_ME", {})


@auth_bp.post("/logout")
def logout():
    return rest_handle("AUTH_LOGOUT", {"sessionToken": bearer_token()})
