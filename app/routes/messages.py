from __future__ import annotations

from flask import Blueprint, request

from app.routes.api import json_body, rest_handle


messages_bp = Blueprint("messages", __name__)


@messages_bp.post("")
def send_message():
    return rest_handle("MESSAGE_SEND", json_body())


@messages_bp.get("/inbox")
def inbox():
    return rest_handle("MESSAGE_INBOX", request.args.to_dict())


@messages_bp.get("/sent")
def sent():
    return rest_handle("MESSAGE_SENT", request.args.to_dict())


@messages_bp.get("/unread-count")
def unread_count():
    return rest_handle("MESSAGE_UNREAD_COUNT", {})


@messages_bp.patch("/<message_id>/read")
def mark_read(message_id: str):
    return rest_handle("MESSAGE_MARK_READ", {"messageId": message_id})


@messages_bp.delete("/<message_id>")
def delete_message(message_id: str):
    return rest_handle("MESSAGE_DELETE", {"messageId": message_id})
