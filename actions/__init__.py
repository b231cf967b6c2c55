from __future__ import annotations

from typing import Any, Callable

from actions.announcements import (
    announcement_create,
    announcement_deactivate,
    announcement_get,
    announcement_list_active,
)
from actions.auth_actions import auth_login, auth_logout, auth_me
from actions.employees import employee_create, employee_get, employee_list
from actions.messages import (
    message_delete,
    message_inbox,
    message_mark_read,
    message_send,
    message_sent,
    message_unread_count,
)
from actions.onboarding import (
    onboarding_employee_active_session,
    onboarding_employee_sessions,
    onboarding_expiring_list,
    onboarding_mark_expired,
    onboarding_org_stats,
    onboarding_session_cancel,
    onboarding_session_complete,
    onboarding_session_create,
    onboarding_session_extend,
    onboarding_session_get,
    onboarding_session_list,
    onboarding_session_update,
    onboarding_start,
    onboarding_token_complete,
    onboarding_token_progress,
    onboarding_token_validate,
)
from actions.walkin import walkin_session_create, walkin_sessions_active
from utils import ApiError


Handler = Callable[[dict, Any, Any, Any], Any]


ACTION_HANDLERS: dict[str, Handler] = {
    "AUTH_LOGIN": auth_login,
    "AUTH_ME": auth_me,
    "AUTH_LOGOUT": auth_logout,
    "ONBOARDING_SESSION_CREATE": onboarding_session_create,
    "ONBOARDING_SESSION_GET": onboarding_session_get,
    "ONBOARDING_SESSION_LIST": onboarding_session_list,
    "ONBOARDING_SESSION_UPDATE": onboarding_session_update,
    "ONBOARDING_SESSION_COMPLETE": onboarding_session_complete,
    "ONBOARDING_SESSION_CANCEL": onboarding_session_cancel,
    "ONBOARDING_SESSION_EXTEND": onboarding_session_extend,
    "ONBOARDING_EMPLOYEE_SESSIONS": onboarding_employee_sessions,
    "ONBOARDING_EMPLOYEE_ACTIVE_SESSION": onboarding_employee_active_session,
    "ONBOARDING_ORG_STATS": onboarding_org_stats,
    "ONBOARDING_EXPIRING_LIST": onboarding_expiring_list,
    "ONBOARDING_MARK_EXPIRED": onboarding_mark_expired,
    "ONBOARDING_TOKEN_VALIDATE": onboarding_token_validate,
    "ONBOARDING_START": onboarding_start,
    "ONBOARDING_TOKEN_PROGRESS": onboarding_token_progress,
    "ONBOARDING_TOKEN_COMPLETE": onboarding_token_complete,
    "WALKIN_SESSION_CREATE": walkin_session_create,
    "WALKIN_SESSIONS_ACTIVE": walkin_sessions_active,
    "EMPLOYEE_CREATE": employee_create,
    "EMPLOYEE_GET": employee_get,
    "EMPLOYEE_LIST": employee_list,
    "MESSAGE_SEND": message_send,
    "MESSAGE_INBOX": message_inbox,
    "MESSAGE_SENT": message_sent,
    "MESSAGE_UNREAD_COUNT": message_unread_count,
    "MESSAGE_MARK_READ": message_mark_read,
    "MESSAGE_DELETE": message_delete,
    "ANNOUNCEMENT_CREATE": announcement_create,
    "ANNOUNCEMENT_LIST_ACTIVE": announcement_list_active,
    "ANNOUNCEMENT_GET": announcement_get,
    "ANNOUNCEMENT_DEACTIVATE": announcement_deactivate,
}


def dispatch(action: str, data: dict, auth, db, cfg):
    action_u = str(action or "").upper().strip()
    handler = ACTION_HANDLERS.get(action_u)
    if handler is None:
        raise ApiError("BAD_REQUEST", f"Unknown action: {action_u}")
    return handler(data or {}, auth, db, cfg)
