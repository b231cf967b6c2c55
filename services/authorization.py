"""
Organization-scoped role guard.

Every service entry point asks `assert_allowed(actor, action, scope)` before touching a
resource. The coarse action -> role table lives in `auth.STATIC_RBAC_PERMISSIONS`; this
module decides whether the actor may act on a *specific* resource:

- HR_ADMIN: unrestricted across organizations.
- MANAGER: only resources whose organization equals the manager's organization.
- EMPLOYEE: only resources they own, except broadcast resources (such as
  active announcements) which are read-only and scoped by organization membership.

Messaging adds a directed rule on top, see `can_message`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from utils import AuthContext, Forbidden, normalize_role


ACTIONS = {"create", "view", "update", "delete", "list"}
READ_ACTIONS = {"view", "list"}


@dataclass(frozen=True)
class ResourceScope:
    organizationId: str = ""
    ownerUserId: str = ""
    broadcast: bool = False


@dataclass(frozen=True)
class Participant:
    userId: str
    role: str
    organizationId: str = ""


def _role(value) -> str:
    return normalize_role(value) or ""


def is_allowed(actor: Optional[AuthContext], action: str, scope: ResourceScope) -> bool:
    if not actor or not actor.valid:
        return False
    act = str(action or "").lower().strip()
    if act not in ACTIONS:
        return False

    role = _role(actor.role)
    if role == "HR_ADMIN":
        return True

    actor_org = str(actor.organizationId or "").strip()
    target_org = str(scope.organizationId or "").strip()

    if role == "MANAGER":
        return bool(actor_org) and actor_org == target_org

    if role == "EMPLOYEE":
        if scope.broadcast:
            return act in READ_ACTIONS and (not target_org or target_org == actor_org)
        owner = str(scope.ownerUserId or "").strip()
        return bool(owner) and owner == str(actor.userId or "").strip()

    return False


def assert_allowed(actor: Optional[AuthContext], action: str, scope: ResourceScope, *, message: str = "") -> None:
    if not is_allowed(actor, action, scope):
        raise Forbidden(message or f"Insufficient permissions to {str(action or '').lower()} this resource")


def organization_scope(actor: AuthContext) -> Optional[str]:
    """Organization filter for list queries. None means every organization."""
    if _role(actor.role) == "HR_ADMIN":
        return None
    return str(actor.organizationId or "")


def can_message(sender: Participant, receiver: Participant) -> bool:
    s_role = _role(sender.role)
    r_role = _role(receiver.role)
    same_org = bool(sender.organizationId) and sender.organizationId == receiver.organizationId

    if s_role == "HR_ADMIN":
        return True
    if s_role == "MANAGER":
        return r_role == "HR_ADMIN" or (r_role == "EMPLOYEE" and same_org)
    if s_role == "EMPLOYEE":
        return r_role == "HR_ADMIN" or (r_role == "MANAGER" and same_org)
    return False


def assert_can_message(sender: Participant, receiver: Participant) -> None:
    if not can_message(sender, receiver):
        raise Forbidden("You are not allowed to message this user", message_key="messages.errors.cannotMessageUser")
