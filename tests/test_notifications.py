from datetime import datetime, timedelta

import pytest

import notifications
from database import Notification
from notifications import (
    budget_alert_payload,
    chat_payload,
    list_notifications,
    send_notification_to_user,
    task_reminder_payload,
)
from notifications import dispatch as real_dispatch

NOW = datetime(2024, 3, 15, 12, 0)


def test_budget_alert_payloads():
    warning = budget_alert_payload("Food", 85.0)
    exceeded = budget_alert_payload("Transport", 120.0)

    assert (warning.type, warning.title) == ("budget_warning", "Budget Warning")
    assert warning.body == "⚠️ Food: 85% of budget used"
    assert (exceeded.type, exceeded.title) == ("budget_exceeded", "Budget Exceeded!")
    assert exceeded.data == {"category_name": "Transport", "percentage": "120.0"}


def test_chat_preview_is_truncated():
    payload = chat_payload("Ana", "x" * 60)

    assert payload.title == "💬 Ana"
    assert payload.body == "x" * 50 + "..."
    assert chat_payload("Ana", "short").body == "short"


def test_task_reminder_wording():
    soon = task_reminder_payload("Dentist", NOW + timedelta(hours=5), now=NOW)
    later = task_reminder_payload("Taxes", NOW + timedelta(days=2, hours=1), now=NOW)

    assert soon.type == "task_due_today"
    assert soon.body == "🔔 Task due today: Dentist"
    assert later.type == "task_reminder"
    assert later.body == "🔔 Reminder: Taxes - Due in 3 days"


def test_delivery_records_inbox_entry(db, user):
    user.device_tokens = ["device-a", "device-b"]
    db.commit()

    result = send_notification_to_user(db, user.id, budget_alert_payload("Food", 90.0))

    assert result == {"stored": True, "device_count": 2}
    (entry,) = list_notifications(db, user.id)
    assert entry.type == "budget_warning"
    assert entry.device_count == 2


def test_delivery_without_devices_still_records(db, user):
    result = send_notification_to_user(db, user.id, chat_payload("Ben", "hello"))

    assert result == {"stored": True, "device_count": 0}
    assert db.query(Notification).count() == 1


def test_delivery_to_missing_user_is_dropped(db):
    assert send_notification_to_user(db, 404, chat_payload("Ben", "hello")) == {"stored": False, "device_count": 0}
    assert db.query(Notification).count() == 0


def test_dispatch_delivers_inline_without_scheduler(db, user):
    real_dispatch(user.id, chat_payload("Ben", "hello"))

    assert db.query(Notification).filter(Notification.user_id == user.id).count() == 1


def test_dispatch_swallows_delivery_failures(monkeypatch, user):
    def broken(user_id, payload):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(notifications, "deliver", broken)

    real_dispatch(user.id, chat_payload("Ben", "hello"))


def test_inbox_is_newest_first_and_scoped(db, user, other_user):
    db.add_all(
        [
            Notification(user_id=user.id, type="a", title="A", body="a", data={}, created_at=NOW),
            Notification(user_id=user.id, type="b", title="B", body="b", data={}, created_at=NOW + timedelta(minutes=1)),
            Notification(user_id=other_user.id, type="c", title="C", body="c", data={}, created_at=NOW),
        ]
    )
    db.commit()

    assert [n.type for n in list_notifications(db, user.id)] == ["b", "a"]


def test_dispatch_queues_a_job_while_scheduler_runs(monkeypatch, user):
    queued = []

    class RunningScheduler:
        running = True

        def add_job(self, func, args):
            queued.append((func, args))

    monkeypatch.setattr(notifications, "scheduler", RunningScheduler())
    monkeypatch.setattr(notifications, "deliver", lambda user_id, payload: pytest.fail("delivered inline"))

    payload = chat_payload("Ben", "hello")
    real_dispatch(user.id, payload)

    (func, args), = queued
    assert args == [user.id, payload]
