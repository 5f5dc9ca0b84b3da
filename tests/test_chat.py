from datetime import datetime, timedelta

import pytest

from chat import (
    conversation,
    conversations,
    delete_message,
    mark_read,
    search_messages,
    send_message,
    unread_count,
)
from database import Message
from errors import BadRequestError, NotFoundError
from presence import presence


def test_cannot_message_yourself(db, user):
    with pytest.raises(BadRequestError):
        send_message(db, user, user.id, "hi me")


def test_missing_receiver_is_not_found(db, user):
    with pytest.raises(NotFoundError):
        send_message(db, user, 999, "anyone?")


def test_offline_receiver_is_notified(db, user, other_user, sent):
    send_message(db, user, other_user.id, "Lunch tomorrow?")

    (user_id, payload), = sent
    assert user_id == other_user.id
    assert payload.type == "chat_message"
    assert payload.body == "Lunch tomorrow?"


def test_online_receiver_is_not_notified(db, user, other_user, sent):
    presence.connect(other_user.id, object())

    send_message(db, user, other_user.id, "You there?")

    assert sent == []


def test_conversation_pages_oldest_first_within_page(db, user, other_user):
    start = datetime(2024, 3, 1, 9, 0)
    for i in range(5):
        sender, receiver = (user, other_user) if i % 2 == 0 else (other_user, user)
        db.add(Message(sender_id=sender.id, receiver_id=receiver.id, content=f"m{i}",
                       created_at=start + timedelta(minutes=i)))
    db.commit()

    latest = conversation(db, user.id, other_user.id, page=1, limit=2)
    earlier = conversation(db, user.id, other_user.id, page=2, limit=2)

    assert [m.content for m in latest["data"]] == ["m3", "m4"]
    assert [m.content for m in earlier["data"]] == ["m1", "m2"]
    assert latest["pagination"]["total"] == 5
    assert latest["pagination"]["total_pages"] == 3


def test_conversation_list_with_unread_counts(db, user, other_user):
    db.add_all(
        [
            Message(sender_id=other_user.id, receiver_id=user.id, content="one"),
            Message(sender_id=other_user.id, receiver_id=user.id, content="two"),
        ]
    )
    db.commit()

    (entry,) = conversations(db, user.id)

    assert entry["user_id"] == other_user.id
    assert entry["last_message"] == "two"
    assert entry["unread_count"] == 2
    assert entry["is_online"] is False


def test_mark_read(db, user, other_user):
    db.add_all(
        [
            Message(sender_id=other_user.id, receiver_id=user.id, content="one"),
            Message(sender_id=user.id, receiver_id=other_user.id, content="reply"),
        ]
    )
    db.commit()

    assert unread_count(db, user.id) == 1
    assert mark_read(db, user.id, other_user.id) == 1
    assert unread_count(db, user.id) == 0
    assert unread_count(db, other_user.id) == 1


def test_delete_only_own_recent_messages(db, user, other_user):
    sent_at = datetime(2024, 3, 15, 12, 0)
    mine = Message(sender_id=user.id, receiver_id=other_user.id, content="oops", created_at=sent_at)
    theirs = Message(sender_id=other_user.id, receiver_id=user.id, content="hey", created_at=sent_at)
    db.add_all([mine, theirs])
    db.commit()

    with pytest.raises(BadRequestError):
        delete_message(db, user.id, theirs.id, now=sent_at)
    with pytest.raises(BadRequestError):
        delete_message(db, user.id, mine.id, now=sent_at + timedelta(minutes=6))

    delete_message(db, user.id, mine.id, now=sent_at + timedelta(minutes=4))
    assert db.get(Message, mine.id) is None


def test_search_is_case_insensitive(db, user, other_user):
    db.add_all(
        [
            Message(sender_id=user.id, receiver_id=other_user.id, content="See you at the Station"),
            Message(sender_id=other_user.id, receiver_id=user.id, content="ok"),
        ]
    )
    db.commit()

    assert [m.content for m in search_messages(db, user.id, other_user.id, "station")] == [
        "See you at the Station"
    ]
