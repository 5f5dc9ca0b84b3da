# tasks.py
import logging
from datetime import datetime

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

import notifications
from database import Subtask, Task
from errors import NotFoundError
from periods import start_of_day, end_of_day
from schemas import SubtaskCreate, SubtaskUpdate, TaskCreate, TaskFilters, TaskUpdate

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("todo", "in_progress")
CLOSED_STATUSES = ("completed", "cancelled")

PRIORITY_RANK = case(
    {"urgent": 0, "high": 1, "medium": 2, "low": 3},
    value=Task.priority,
    else_=4,
)


def sync_task_completion(task: Task, now: datetime = None):
    if task.status == "completed":
        if task.completed_at is None:
            task.completed_at = now or datetime.now()
    else:
        task.completed_at = None


def sync_subtask_completion(subtask: Subtask, now: datetime = None):
    if subtask.completed:
        if subtask.completed_at is None:
            subtask.completed_at = now or datetime.now()
    else:
        subtask.completed_at = None


def is_overdue(task: Task, now: datetime = None) -> bool:
    if task.due_date is None or task.status in CLOSED_STATUSES:
        return False
    return (now or datetime.now()) > task.due_date


def subtask_progress(task: Task) -> int:
    if not task.subtasks:
        return 0
    done = sum(1 for s in task.subtasks if s.completed)
    return round(done / len(task.subtasks) * 100)


def task_view(task: Task, now: datetime = None) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "due_date": task.due_date,
        "completed_at": task.completed_at,
        "reminder": {"enabled": bool(task.reminder_enabled), "time": task.reminder_time},
        "repeat": {
            "enabled": bool(task.repeat_enabled),
            "interval": task.repeat_interval,
            "end_date": task.repeat_end_date,
        },
        "tags": task.tags or [],
        "subtasks": task.subtasks,
        "is_overdue": is_overdue(task, now),
        "subtask_progress": subtask_progress(task),
        "created_at": task.created_at,
    }


def _apply_reminder(task: Task, reminder):
    enabled = bool(reminder and reminder.enabled)
    new_time = reminder.time if enabled else None
    if new_time != task.reminder_time or not enabled:
        # a moved reminder fires again
        task.reminder_sent = False
    task.reminder_enabled = enabled
    task.reminder_time = new_time


def _apply_repeat(task: Task, repeat):
    enabled = bool(repeat and repeat.enabled)
    task.repeat_enabled = enabled
    task.repeat_interval = repeat.interval if enabled else None
    task.repeat_end_date = repeat.end_date if enabled else None


def create_task(db: Session, user_id: int, data: TaskCreate) -> Task:
    task = Task(
        user_id=user_id,
        title=data.title,
        description=data.description,
        priority=data.priority,
        status=data.status,
        due_date=data.due_date,
        tags=list(data.tags),
    )
    _apply_reminder(task, data.reminder)
    _apply_repeat(task, data.repeat)
    sync_task_completion(task)

    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def list_tasks(db: Session, user_id: int, filters: TaskFilters, now: datetime = None):
    now = now or datetime.now()
    query = db.query(Task).filter(Task.user_id == user_id)

    if filters.status:
        query = query.filter(Task.status == filters.status)
    if filters.priority:
        query = query.filter(Task.priority == filters.priority)

    today = start_of_day(now)
    if filters.due == "today":
        query = query.filter(Task.due_date.between(today, end_of_day(now)))
    elif filters.due == "upcoming":
        query = query.filter(Task.due_date >= today, Task.status != "completed")
    elif filters.due == "overdue":
        query = query.filter(Task.due_date < today, Task.status.notin_(CLOSED_STATUSES))

    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))

    tasks = query.order_by(
        PRIORITY_RANK,
        Task.due_date.is_(None),
        Task.due_date,
        Task.created_at.desc(),
        Task.id.desc(),
    ).all()

    if filters.tag:
        wanted = {t.strip() for t in filters.tag.split(",") if t.strip()}
        tasks = [t for t in tasks if wanted.intersection(t.tags or [])]
    return tasks


def get_task(db: Session, user_id: int, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()
    if not task:
        raise NotFoundError("Task not found")
    return task


def update_task(db: Session, user_id: int, task_id: int, data: TaskUpdate) -> Task:
    task = get_task(db, user_id, task_id)
    changes = data.model_dump(exclude_unset=True)

    for field in ("title", "priority", "status"):
        if changes.get(field) is not None:
            setattr(task, field, changes[field])
    for field in ("description", "due_date"):
        if field in changes:
            setattr(task, field, changes[field])
    if data.tags is not None:
        task.tags = list(data.tags)
    if "reminder" in changes:
        _apply_reminder(task, data.reminder)
    if "repeat" in changes:
        _apply_repeat(task, data.repeat)

    sync_task_completion(task)
    db.commit()
    db.refresh(task)
    return task


def update_task_status(db: Session, user_id: int, task_id: int, status: str) -> Task:
    task = get_task(db, user_id, task_id)
    task.status = status
    sync_task_completion(task)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, user_id: int, task_id: int):
    task = get_task(db, user_id, task_id)
    db.delete(task)
    db.commit()


def _get_subtask(task: Task, subtask_id: int) -> Subtask:
    for subtask in task.subtasks:
        if subtask.id == subtask_id:
            return subtask
    raise NotFoundError("Subtask not found")


def add_subtask(db: Session, user_id: int, task_id: int, data: SubtaskCreate) -> Task:
    task = get_task(db, user_id, task_id)
    task.subtasks.append(Subtask(title=data.title, completed=False))
    db.commit()
    db.refresh(task)
    return task


def update_subtask(db: Session, user_id: int, task_id: int, subtask_id: int, data: SubtaskUpdate) -> Task:
    task = get_task(db, user_id, task_id)
    subtask = _get_subtask(task, subtask_id)

    if data.title is not None:
        subtask.title = data.title
    if data.completed is not None:
        subtask.completed = data.completed
    sync_subtask_completion(subtask)

    db.commit()
    db.refresh(task)
    return task


def delete_subtask(db: Session, user_id: int, task_id: int, subtask_id: int) -> Task:
    task = get_task(db, user_id, task_id)
    task.subtasks.remove(_get_subtask(task, subtask_id))
    db.commit()
    db.refresh(task)
    return task


def task_stats(db: Session, user_id: int, now: datetime = None) -> dict:
    now = now or datetime.now()
    tasks = db.query(Task).filter(Task.user_id == user_id).all()
    today, tonight = start_of_day(now), end_of_day(now)

    def count(status):
        return sum(1 for t in tasks if t.status == status)

    return {
        "total": len(tasks),
        "todo": count("todo"),
        "in_progress": count("in_progress"),
        "completed": count("completed"),
        "cancelled": count("cancelled"),
        "overdue": sum(1 for t in tasks if is_overdue(t, now)),
        "due_today": sum(1 for t in tasks if t.due_date and today <= t.due_date <= tonight),
    }


def check_task_reminders(db: Session, now: datetime = None) -> int:
    """Send every enabled, unsent reminder whose time has come; returns the number sent."""
    now = now or datetime.now()
    due = (
        db.query(Task)
        .filter(
            Task.reminder_enabled.is_(True),
            Task.reminder_sent.is_(False),
            Task.reminder_time <= now,
            Task.status.in_(ACTIVE_STATUSES),
        )
        .all()
    )
    logger.info("Found %d task(s) with due reminders", len(due))

    sent = 0
    for task in due:
        if task.due_date is None:
            continue
        notifications.send_task_reminder(task.user_id, task.title, task.due_date)
        task.reminder_sent = True
        sent += 1

    db.commit()
    return sent
