from __future__ import annotations

from flask import Blueprint, request

from app.routes.api import json_body, rest_handle


announcements_bp = Blueprint("announcements", __name__)


@announcements_bp.post("")
def create_announcement():
    return rest_handle("ANNOUNCEMENT_CREATE", json_body())


@announcements_bp.get("/active")
def list_active_announcements():
    return rest_handle("ANNOUNCEMENT_LIST_ACTIVE", request.args.to_dict())


@announcements_bp.get("/<announcement_id>")
def get_announcement(announcement_id: str):
    return rest_handle("ANNOUNCEMENT_GET", {"announcementId": announcement_id})


@announcements_bp.post("/<announcement_id>/deactivate")
def deactivate_announcement(announcement_id: str):
    return rest_handle("ANNOUNCEMENT_DEACTIVATE", {"announcementId": announcement_id})
