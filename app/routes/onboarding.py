from __future__ import annotations

from flask import Blueprint, request

from app.routes.api import json_body, rest_handle


onboarding_bp = Blueprint("onboarding", __name__)


def _with(extra: dict, base: dict | None = None) -> dict:
    out = dict(base or {})
    out.update(extra)
    return out


# -- staff ---------------------------------------------------------------------


@onboarding_bp.post("/sessions")
def create_session():
    return rest_handle("ONBOARDING_SESSION_CREATE", json_body())


@onboarding_bp.get("/sessions")
def list_sessions():
    return rest_handle("ONBOARDING_SESSION_LIST", request.args.to_dict())


@onboarding_bp.get("/sessions/<session_id>")
def get_session(session_id: str):
    return rest_handle("ONBOARDING_SESSION_GET", {"sessionId": session_id})


@onboarding_bp.patch("/sessions/<session_id>")
def update_session(session_id: str):
    return rest_handle("ONBOARDING_SESSION_UPDATE", _with({"sessionId": session_id}, json_body()))


@onboarding_bp.post("/sessions/<session_id>/complete")
def complete_session(session_id: str):
    return rest_handle("ONBOARDING_SESSION_COMPLETE", {"sessionId": session_id})


@onboarding_bp.post("/sessions/<session_id>/cancel")
def cancel_session(session_id: str):
    return rest_handle("ONBOARDING_SESSION_CANCEL", {"sessionId": session_id})


@onboarding_bp.post("/sessions/<session_id>/extend")
def extend_session(session_id: str):
    return rest_handle("ONBOARDING_SESSION_EXTEND", _with({"sessionId": session_id}, json_body()))


@onboarding_bp.get("/employees/<employee_id>/sessions")
def employee_sessions(employee_id: str):
    return rest_handle("ONBOARDING_EMPLOYEE_SESSIONS", {"employeeId": employee_id})


@onboarding_bp.get("/employees/<employee_id>/sessions/active")
def employee_active_session(employee_id: str):
    return rest_handle("ONBOARDING_EMPLOYEE_ACTIVE_SESSION", {"employeeId": employee_id})


@onboarding_bp.get("/organizations/<organization_id>/stats")
def organization_stats(organization_id: str):
    return rest_handle("ONBOARDING_ORG_STATS", {"organizationId": organization_id})


@onboarding_bp.get("/expiring")
def expiring_sessions():
    return rest_handle("ONBOARDING_EXPIRING_LIST", request.args.to_dict())


@onboarding_bp.post("/walkin")
def create_walkin():
    return rest_handle("WALKIN_SESSION_CREATE", json_body())


@onboarding_bp.get("/walkin/organizations/<organization_id>/active")
def active_walkins(organization_id: str):
    return rest_handle("WALKIN_SESSIONS_ACTIVE", {"organizationId": organization_id})


# -- candidate (onboarding token only) ------------------------------------------


@onboarding_bp.post("/access/validate")
def validate_token():
    return rest_handle("ONBOARDING_TOKEN_VALIDATE", json_body())


@onboarding_bp.post("/access/start")
def start_onboarding():
    return rest_handle("ONBOARDING_START", json_body())


@onboarding_bp.patch("/access/<token>/progress")
def token_progress(token: str):
    return rest_handle("ONBOARDING_TOKEN_PROGRESS", _with({"token": token}, json_body()))


@onboarding_bp.post("/access/<token>/complete")
def token_complete(token: str):
    return rest_handle("ONBOARDING_TOKEN_COMPLETE", _with({"token": token}, json_body()))


# -- internal -------------------------------------------------------------------


@onboarding_bp.post("/jobs/mark-expired")
def mark_expired():
    return rest_handle("ONBOARDING_MARK_EXPIRED", {}, allow_internal=True)
