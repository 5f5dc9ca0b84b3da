# notifications.py
"""Notification dispatch.

Every ``send_*`` helper is fire-and-forget: it builds a payload and hands it
to the background scheduler. Delivery stores the notification in the user's
inbox, where clients pick it up; no push transport is wired in, so the
registered device tokens are only counted. With the scheduler stopped
(tests, ``SCHEDULER_ENABLED=false``) delivery runs inline in the caller.
Failures are logged and never reach the caller.
"""
import logging
import math
from datetime import datetime
from enum import Enum

from sqlalchemy.orm import Session

from database import Notification, SessionLocal, User
from scheduler import scheduler
from schemas import NotificationPayload

logger = logging.getLogger(__name__)

CHAT_PREVIEW_LENGTH = 50


class NotificationType(str, Enum):
    BUDGET_WARNING = "budget_warning"
    BUDGET_EXCEEDED = "budget_exceeded"
    TASK_REMINDER = "task_reminder"
    TASK_DUE_TODAY = "task_due_today"
    SAVINGS_MILESTONE = "savings_milestone"
    SAVINGS_COMPLETED = "savings_completed"
    CHAT_MESSAGE = "chat_message"


def send_notification_to_user(db: Session, user_id: int, payload: NotificationPayload) -> dict:
    user = db.get(User, user_id)
    if user is None:
        logger.warning("Notification %s dropped: user %s not found", payload.type, user_id)
        return {"stored": False, "device_count": 0}

    tokens = list(user.device_tokens or [])
    db.add(
        Notification(
            user_id=user_id,
            type=payload.type,
            title=payload.title,
            body=payload.body,
            data=payload.data,
            device_count=len(tokens),
        )
    )
    db.commit()

    logger.info(
        "Notification %s stored in inbox of user %s; %d device token(s) registered",
        payload.type,
        user_id,
        len(tokens),
    )
    return {"stored": True, "device_count": len(tokens)}


def deliver(user_id: int, payload: NotificationPayload):
    db = SessionLocal()
    try:
        send_notification_to_user(db, user_id, payload)
    except Exception:
        db.rollback()
        logger.exception("Failed to deliver %s notification to user %s", payload.type, user_id)
    finally:
        db.close()


def dispatch(user_id: int, payload: NotificationPayload):
    """Queue ``payload`` for delivery without blocking the caller."""
    try:
        if scheduler.running:
            scheduler.add_job(deliver, args=[user_id, payload])
        else:
            deliver(user_id, payload)
    except Exception:
        logger.exception("Failed to dispatch %s notification to user %s", payload.type, user_id)


# --- payload builders -------------------------------------------------------


def budget_alert_payload(category_name: str, percentage: float) -> NotificationPayload:
    if percentage >= 100:
        kind, title, emoji = NotificationType.BUDGET_EXCEEDED, "Budget Exceeded!", "🚨"
    else:
        kind, title, emoji = NotificationType.BUDGET_WARNING, "Budget Warning", "⚠️"
    return NotificationPayload(
        type=kind.value,
        title=title,
        body=f"{emoji} {category_name}: {percentage:.0f}% of budget used",
        data={"category_name": category_name, "percentage": str(percentage)},
    )


def savings_milestone_payload(goal_title: str, percentage: float) -> NotificationPayload:
    if percentage >= 100:
        kind, title, emoji = NotificationType.SAVINGS_COMPLETED, "Goal Completed!", "🎉"
    else:
        kind, title, emoji = NotificationType.SAVINGS_MILESTONE, "Savings Milestone", "🎯"
    return NotificationPayload(
        type=kind.value,
        title=title,
        body=f"{emoji} {goal_title}: {percentage:.0f}% achieved!",
        data={"goal_title": goal_title, "percentage": str(percentage)},
    )


def task_reminder_payload(task_title: str, due_date: datetime, now: datetime = None) -> NotificationPayload:
    now = now or datetime.now()
    hours_until_due = (due_date - now).total_seconds() / 3600
    if hours_until_due <= 24:
        kind = NotificationType.TASK_DUE_TODAY
        body = f"🔔 Task due today: {task_title}"
    else:
        kind = NotificationType.TASK_REMINDER
        body = f"🔔 Reminder: {task_title} - Due in {math.ceil(hours_until_due / 24)} days"
    return NotificationPayload(
        type=kind.value,
        title="Task Reminder",
        body=body,
        data={"task_title": task_title, "due_date": due_date.isoformat()},
    )


def chat_payload(sender_name: str, message: str) -> NotificationPayload:
    preview = message
    if len(message) > CHAT_PREVIEW_LENGTH:
        preview = message[:CHAT_PREVIEW_LENGTH] + "..."
    return NotificationPayload(
        type=NotificationType.CHAT_MESSAGE.value,
        title=f"💬 {sender_name}",
        body=preview,
        data={"sender_name": sender_name},
    )


# --- fire-and-forget senders ------------------------------------------------


def send_budget_alert(user_id: int, category_name: str, percentage: float):
    dispatch(user_id, budget_alert_payload(category_name, percentage))


def send_savings_milestone(user_id: int, goal_title: str, percentage: float):
    dispatch(user_id, savings_milestone_payload(goal_title, percentage))


def send_task_reminder(user_id: int, task_title: str, due_date: datetime):
    dispatch(user_id, task_reminder_payload(task_title, due_date))


def send_chat_notification(user_id: int, sender_name: str, message: str):
    dispatch(user_id, chat_payload(sender_name, message))


def list_notifications(db: Session, user_id: int, limit: int = 50):
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
