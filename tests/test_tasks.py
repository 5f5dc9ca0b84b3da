from datetime import datetime, timedelta

import pytest

from database import Task
from errors import NotFoundError
from schemas import ReminderIn, SubtaskCreate, SubtaskUpdate, TaskCreate, TaskFilters, TaskUpdate
from tasks import (
    add_subtask,
    check_task_reminders,
    create_task,
    delete_subtask,
    is_overdue,
    list_tasks,
    subtask_progress,
    task_stats,
    task_view,
    update_subtask,
    update_task,
    update_task_status,
)

NOW = datetime(2024, 3, 15, 12, 0)


def _create(db, user, title, **fields):
    return create_task(db, user.id, TaskCreate(title=title, **fields))


def test_completing_a_task_stamps_completed_at(db, user):
    task = _create(db, user, "Pay rent")

    task = update_task_status(db, user.id, task.id, "completed")
    assert task.completed_at is not None

    task = update_task_status(db, user.id, task.id, "todo")
    assert task.completed_at is None


def test_task_created_completed_has_completed_at(db, user):
    task = _create(db, user, "Already done", status="completed")

    assert task.completed_at is not None


def test_is_overdue_ignores_closed_tasks():
    past = NOW - timedelta(hours=1)

    assert is_overdue(Task(status="todo", due_date=past), NOW)
    assert not is_overdue(Task(status="completed", due_date=past), NOW)
    assert not is_overdue(Task(status="cancelled", due_date=past), NOW)
    assert not is_overdue(Task(status="todo", due_date=None), NOW)
    assert not is_overdue(Task(status="todo", due_date=NOW + timedelta(hours=1)), NOW)


def test_subtasks_drive_progress(db, user):
    task = _create(db, user, "Move house")
    for title in ("Pack", "Hire van", "Clean"):
        task = add_subtask(db, user.id, task.id, SubtaskCreate(title=title))

    first = task.subtasks[0]
    task = update_subtask(db, user.id, task.id, first.id, SubtaskUpdate(completed=True))

    assert subtask_progress(task) == 33
    assert task.subtasks[0].completed_at is not None

    task = update_subtask(db, user.id, task.id, first.id, SubtaskUpdate(completed=False))
    assert task.subtasks[0].completed_at is None

    task = delete_subtask(db, user.id, task.id, task.subtasks[1].id)
    assert [s.title for s in task.subtasks] == ["Pack", "Clean"]


def test_unknown_subtask_is_not_found(db, user):
    task = _create(db, user, "Solo")

    with pytest.raises(NotFoundError):
        update_subtask(db, user.id, task.id, 999, SubtaskUpdate(completed=True))


def test_list_sorted_by_priority_then_due_date(db, user):
    _create(db, user, "Low", priority="low")
    _create(db, user, "High later", priority="high", due_date=NOW + timedelta(days=3))
    _create(db, user, "Urgent", priority="urgent")
    _create(db, user, "High soon", priority="high", due_date=NOW + timedelta(days=1))
    _create(db, user, "High undated", priority="high")

    titles = [t.title for t in list_tasks(db, user.id, TaskFilters(), now=NOW)]

    assert titles == ["Urgent", "High soon", "High later", "High undated", "Low"]


def test_list_filters(db, user):
    _create(db, user, "Late report", due_date=NOW - timedelta(days=2), tags=["work"])
    _create(db, user, "Dentist", due_date=NOW + timedelta(hours=3), tags=["health"])
    _create(db, user, "Holiday plan", due_date=NOW + timedelta(days=10), description="beach trip")
    _create(db, user, "Closed", status="completed", due_date=NOW - timedelta(days=2))

    def titles(**filters):
        return [t.title for t in list_tasks(db, user.id, TaskFilters(**filters), now=NOW)]

    assert titles(due="overdue") == ["Late report"]
    assert titles(due="today") == ["Dentist"]
    assert sorted(titles(due="upcoming")) == ["Dentist", "Holiday plan"]
    assert titles(search="BEACH") == ["Holiday plan"]
    assert titles(tag="work,health") == ["Late report", "Dentist"]
    assert titles(status="completed") == ["Closed"]


def test_update_moves_reminder_and_resets_sent_flag(db, user):
    task = _create(
        db, user, "Call mum", due_date=NOW + timedelta(days=1),
        reminder=ReminderIn(enabled=True, time=NOW - timedelta(minutes=5)),
    )
    assert check_task_reminders(db, now=NOW) == 1

    task = update_task(db, user.id, task.id, TaskUpdate(reminder=ReminderIn(enabled=True, time=NOW + timedelta(hours=1))))

    assert task.reminder_sent is False
    assert task_view(task, NOW)["reminder"] == {"enabled": True, "time": NOW + timedelta(hours=1)}


def test_reminders_are_sent_once(db, user, sent):
    _create(
        db, user, "Renew passport", due_date=NOW + timedelta(days=3),
        reminder=ReminderIn(enabled=True, time=NOW - timedelta(minutes=1)),
    )
    _create(
        db, user, "Not yet", due_date=NOW + timedelta(days=3),
        reminder=ReminderIn(enabled=True, time=NOW + timedelta(hours=1)),
    )
    _create(
        db, user, "Finished", status="completed", due_date=NOW,
        reminder=ReminderIn(enabled=True, time=NOW - timedelta(hours=1)),
    )
    _create(
        db, user, "No due date",
        reminder=ReminderIn(enabled=True, time=NOW - timedelta(hours=1)),
    )

    assert check_task_reminders(db, now=NOW) == 1
    assert check_task_reminders(db, now=NOW) == 0

    (user_id, payload), = sent
    assert user_id == user.id
    assert payload.title == "Task Reminder"
    assert payload.data["task_title"] == "Renew passport"


def test_task_stats(db, user):
    _create(db, user, "Task A", due_date=NOW - timedelta(days=1))
    _create(db, user, "Task B", status="in_progress", due_date=NOW + timedelta(hours=2))
    _create(db, user, "Task C", status="completed")
    _create(db, user, "Task D", status="cancelled", due_date=NOW - timedelta(days=1))

    stats = task_stats(db, user.id, now=NOW)

    assert stats == {
        "total": 4,
        "todo": 1,
        "in_progress": 1,
        "completed": 1,
        "cancelled": 1,
        "overdue": 1,
        "due_today": 1,
    }


def test_task_view_shape(db, user):
    task = _create(db, user, "Water plants", due_date=NOW - timedelta(hours=1), tags=["home"])

    view = task_view(task, NOW)

    assert view["is_overdue"] is True
    assert view["subtask_progress"] == 0
    assert view["repeat"] == {"enabled": False, "interval": None, "end_date": None}
    assert view["tags"] == ["home"]
