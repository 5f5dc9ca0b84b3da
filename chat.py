# chat.py
import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import and_, case, func, or_
from sqlalchemy.orm import Session

import notifications
from database import Message, User
from errors import BadRequestError, NotFoundError
from presence import presence

logger = logging.getLogger(__name__)

DELETE_WINDOW = timedelta(minutes=5)
SEARCH_LIMIT = 50


def _between(user_id: int, other_id: int):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == other_id),
        and_(Message.sender_id == other_id, Message.receiver_id == user_id),
    )


def _get_user(db: Session, user_id: int, message: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(message)
    return user


def send_message(db: Session, sender: User, receiver_id: int, content: str) -> Message:
    _get_user(db, receiver_id, "Receiver not found")
    if receiver_id == sender.id:
        raise BadRequestError("Cannot send message to yourself")

    message = Message(sender_id=sender.id, receiver_id=receiver_id, content=content)
    db.add(message)
    db.commit()
    db.refresh(message)

    if not presence.is_online(receiver_id):
        notifications.send_chat_notification(receiver_id, sender.name, content)
    return message


def conversation(db: Session, user_id: int, other_id: int, page: int = 1, limit: int = 50) -> dict:
    """One page of the conversation; pages run newest first, messages inside a page oldest first."""
    _get_user(db, other_id, "User not found")
    query = db.query(Message).filter(_between(user_id, other_id))

    total = query.count()
    newest_first = (
        query.order_by(Message.created_at.desc(), Message.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = math.ceil(total / limit)
    return {
        "data": list(reversed(newest_first)),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def conversations(db: Session, user_id: int) -> list:
    other = case((Message.sender_id == user_id, Message.receiver_id), else_=Message.sender_id)
    latest_ids = (
        db.query(func.max(Message.id))
        .filter(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
        .group_by(other)
        .all()
    )
    latest = (
        db.query(Message)
        .filter(Message.id.in_([row[0] for row in latest_ids]))
        .order_by(Message.created_at.desc(), Message.id.desc())
        .all()
    )
    unread = dict(
        db.query(Message.sender_id, func.count(Message.id))
        .filter(Message.receiver_id == user_id, Message.is_read.is_(False))
        .group_by(Message.sender_id)
        .all()
    )

    result = []
    for message in latest:
        other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
        user = db.get(User, other_id)
        if user is None:
            continue
        result.append(
            {
                "user_id": user.id,
                "user_name": user.name,
                "user_email": user.email,
                "last_message": message.content,
                "last_message_time": message.created_at,
                "unread_count": unread.get(other_id, 0),
                "is_online": presence.is_online(other_id),
            }
        )
    return result


def mark_read(db: Session, user_id: int, sender_id: int, now: datetime = None) -> int:
    updated = (
        db.query(Message)
        .filter(
            Message.sender_id == sender_id,
            Message.receiver_id == user_id,
            Message.is_read.is_(False),
        )
        .update({"is_read": True, "read_at": now or datetime.now()}, synchronize_session=False)
    )
    db.commit()
    return updated


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(Message.id))
        .filter(Message.receiver_id == user_id, Message.is_read.is_(False))
        .scalar()
    )


def delete_message(db: Session, user_id: int, message_id: int, now: datetime = None):
    message = db.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_id != user_id:
        raise BadRequestError("You can only delete your own messages")
    if message.created_at < (now or datetime.now()) - DELETE_WINDOW:
        raise BadRequestError("Cannot delete messages older than 5 minutes")
    db.delete(message)
    db.commit()


def search_messages(db: Session, user_id: int, other_id: int, query: str) -> list:
    return (
        db.query(Message)
        .filter(_between(user_id, other_id), Message.content.ilike(f"%{query}%"))
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(SEARCH_LIMIT)
        .all()
    )
