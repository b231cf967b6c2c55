from __future__ import annotations

from typing import Any

from sqlalchemy import func, select

from actions.helpers import paginated, parse_pagination, require_str
from models import Message, User
from services.authorization import Participant, assert_can_message
from utils import AuthContext, NotFound, iso_utc_now, new_uuid


def serialize_message(m: Message) -> dict[str, Any]:
    return {
        "id": m.id,
        "senderId": m.senderId,
        "receiverId": m.receiverId,
        "subject": m.subject or "",
        "content": m.content or "",
        "isRead": bool(m.isRead),
        "createdAt": m.createdAt or "",
        "readAt": m.readAt or None,
    }


def _participant(user: User) -> Participant:
    return Participant(userId=user.id, role=user.role, organizationId=str(user.organizationId or ""))


def _load_message(db, message_id: str, *, for_update: bool = False) -> Message:
    q = select(Message).where(Message.id == message_id)
    if for_update:
        q = q.with_for_update(of=Message)
    m = db.execute(q).scalar_one_or_none()
    if not m:
        raise NotFound("Message not found", message_key="messages.errors.messageNotFound")
    return m


def message_send(data, auth: AuthContext, db, cfg):
    receiver_id = require_str(data, "receiverId")
    subject = require_str(data, "subject", max_len=200)
    content = require_str(data, "content", max_len=5000)

    receiver = db.get(User, receiver_id)
    if not receiver or not receiver.isActive:
        raise NotFound("Receiver not found", message_key="messages.errors.receiverNotFound")

    sender = Participant(userId=auth.userId, role=auth.role, organizationId=auth.organizationId)
    assert_can_message(sender, _participant(receiver))

    m = Message(
        id="MSG-" + new_uuid(),
        senderId=str(auth.userId),
        receiverId=receiver.id,
        subject=subject,
        content=content,
        isRead=False,
        createdAt=iso_utc_now(),
        readAt=None,
    )
    db.add(m)
    db.flush()
    return {"message": serialize_message(m)}


def _mailbox(db, data, where) -> dict[str, Any]:
    page, limit = parse_pagination(data)
    total = int(db.execute(select(func.count()).select_from(Message).where(where)).scalar() or 0)
    rows = (
        db.execute(
            select(Message)
            .where(where)
            .order_by(Message.createdAt.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return paginated([serialize_message(m) for m in rows], total=total, page=page, limit=limit)


def message_inbox(data, auth: AuthContext, db, cfg):
    return _mailbox(db, data, Message.receiverId == str(auth.userId))


def message_sent(data, auth: AuthContext, db, cfg):
    return _mailbox(db, data, Message.senderId == str(auth.userId))


def message_unread_count(data, auth: AuthContext, db, cfg):
    count = db.execute(
        select(func.count())
        .select_from(Message)
        .where(Message.receiverId == str(auth.userId), Message.isRead.is_(False))
    ).scalar()
    return {"count": int(count or 0)}


def message_mark_read(data, auth: AuthContext, db, cfg):
    m = _load_message(db, require_str(data, "messageId"), for_update=True)
    if m.receiverId != str(auth.userId):
        # Hide messages the caller cannot see.
        raise NotFound("Message not found", message_key="messages.errors.messageNotFound")
    if not m.isRead:
        m.isRead = True
        m.readAt = iso_utc_now()
    return {"message": serialize_message(m)}


def message_delete(data, auth: AuthContext, db, cfg):
    m = _load_message(db, require_str(data, "messageId"), for_update=True)
    if str(auth.userId) not in {m.senderId, m.receiverId}:
        raise NotFound("Message not found", message_key="messages.errors.messageNotFound")
    db.delete(m)
    return {"ok": True, "id": m.id}
