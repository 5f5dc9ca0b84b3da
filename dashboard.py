# dashboard.py
"""Home screen overview.

The sub-queries share one session and run one after another; a SQLAlchemy
session must not be used from several threads at once.
"""
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from analytics import day_bucket
from budget import month_spent
from calculations import change_type, classify_budget, percent_of, round2
from database import (
    Category,
    Expense,
    Message,
    Note,
    SavingsContribution,
    SavingsGoal,
    ShoppingList,
    Task,
)
from periods import (
    day_range,
    month_range,
    previous_month_range,
    start_of_day,
    trailing_day_keys,
)
from tasks import ACTIVE_STATUSES

RECENT_LIMIT = 5
TREND_DAYS = 7


def _month_total(db: Session, user_id: int, start: datetime, end: datetime):
    return (
        db.query(func.coalesce(func.sum(Expense.amount), 0), func.count(Expense.id))
        .filter(Expense.user_id == user_id, Expense.date.between(start, end))
        .one()
    )


def _category_totals(db: Session, user_id: int, start: datetime, end: datetime, limit: int = None):
    total = func.sum(Expense.amount)
    query = (
        db.query(
            Category.id,
            Category.name,
            Category.color,
            Category.icon,
            total.label("total"),
            func.count(Expense.id).label("count"),
        )
        .select_from(Expense)
        .join(Category, Category.id == Expense.category_id)
        .filter(Expense.user_id == user_id, Expense.date.between(start, end))
        .group_by(Category.id)
        .order_by(total.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def _financial(db: Session, user_id: int, now: datetime) -> dict:
    start, end = month_range(now)
    month_total, month_count = _month_total(db, user_id, start, end)

    total_budget = 0
    total_spent = 0
    budgeted = (
        db.query(Category)
        .filter(Category.user_id == user_id, Category.monthly_budget.isnot(None))
        .all()
    )
    for category in budgeted:
        total_budget += category.monthly_budget or 0
        total_spent += month_spent(db, user_id, category.id, start, end)
    budget_percentage = round2(percent_of(total_spent, total_budget))

    goals = (
        db.query(SavingsGoal)
        .filter(SavingsGoal.user_id == user_id, SavingsGoal.is_completed.is_(False))
        .all()
    )
    savings_target = sum(g.target_amount for g in goals)
    savings_current = sum(g.current_amount for g in goals)

    top_categories = [
        {
            "category_id": row.id,
            "category_name": row.name,
            "category_color": row.color,
            "category_icon": row.icon,
            "total_spent": row.total,
            "transaction_count": row.count,
        }
        for row in _category_totals(db, user_id, start, end, limit=RECENT_LIMIT)
    ]

    return {
        "total_expenses_this_month": month_total,
        "expense_count_this_month": month_count,
        "total_budget": total_budget,
        "total_spent": total_spent,
        "budget_remaining": total_budget - total_spent,
        "budget_percentage": budget_percentage,
        "budget_status": classify_budget(budget_percentage),
        "savings": {
            "total_target": savings_target,
            "total_current": savings_current,
            "progress": round2(percent_of(savings_current, savings_target)),
            "active_goals": len(goals),
        },
        "top_categories": top_categories,
    }


def _task_counts(db: Session, user_id: int, now: datetime) -> dict:
    today, tonight = day_range(now)
    active = db.query(func.count(Task.id)).filter(
        Task.user_id == user_id, Task.status.in_(ACTIVE_STATUSES)
    )
    completed_this_week = (
        db.query(func.count(Task.id))
        .filter(
            Task.user_id == user_id,
            Task.status == "completed",
            Task.completed_at >= now - timedelta(days=7),
        )
        .scalar()
    )
    return {
        "due_today": active.filter(Task.due_date.between(today, tonight)).scalar(),
        "overdue": active.filter(Task.due_date < today).scalar(),
        "completed_this_week": completed_this_week,
        "active": active.scalar(),
    }


def _expense_entry(expense: Expense) -> dict:
    return {
        "id": expense.id,
        "amount": expense.amount,
        "description": expense.description,
        "date": expense.date,
        "payment_method": expense.payment_method,
        "category": {
            "id": expense.category.id,
            "name": expense.category.name,
            "color": expense.category.color,
            "icon": expense.category.icon,
        },
    }


def _recent_activity(db: Session, user_id: int) -> dict:
    expenses = (
        db.query(Expense)
        .options(joinedload(Expense.category))
        .filter(Expense.user_id == user_id)
        .order_by(Expense.date.desc(), Expense.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    contributions = (
        db.query(SavingsContribution, SavingsGoal.title)
        .join(SavingsGoal, SavingsGoal.id == SavingsContribution.goal_id)
        .filter(SavingsGoal.user_id == user_id)
        .order_by(SavingsContribution.date.desc(), SavingsContribution.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    tasks = (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.status.in_(ACTIVE_STATUSES))
        .order_by(Task.due_date.is_(None), Task.due_date, Task.id)
        .limit(RECENT_LIMIT)
        .all()
    )
    return {
        "expenses": [_expense_entry(e) for e in expenses],
        "savings": [
            {
                "goal_title": title,
                "amount": contribution.amount,
                "date": contribution.date,
                "note": contribution.note,
            }
            for contribution, title in contributions
        ],
        "tasks": [
            {
                "id": t.id,
                "title": t.title,
                "priority": t.priority,
                "status": t.status,
                "due_date": t.due_date,
            }
            for t in tasks
        ],
    }


def _quick_stats(db: Session, user_id: int) -> dict:
    return {
        "unread_messages": db.query(func.count(Message.id))
        .filter(Message.receiver_id == user_id, Message.is_read.is_(False))
        .scalar(),
        "active_shopping_lists": db.query(func.count(ShoppingList.id))
        .filter(ShoppingList.user_id == user_id, ShoppingList.is_completed.is_(False))
        .scalar(),
        "total_notes": db.query(func.count(Note.id))
        .filter(Note.user_id == user_id, Note.is_archived.is_(False))
        .scalar(),
    }


def _expense_trends(db: Session, user_id: int, now: datetime) -> list:
    day = day_bucket(Expense.date).label("day")
    rows = (
        db.query(day, func.sum(Expense.amount), func.count(Expense.id))
        .filter(
            Expense.user_id == user_id,
            Expense.date >= start_of_day(now - timedelta(days=TREND_DAYS - 1)),
        )
        .group_by(day)
        .all()
    )
    by_day = {str(key): (amount, count) for key, amount, count in rows}
    trends = []
    for key in trailing_day_keys(now, TREND_DAYS):
        amount, count = by_day.get(key, (0, 0))
        trends.append({"date": key, "amount": amount, "count": count})
    return trends


def _category_spending(db: Session, user_id: int, now: datetime, month_total: float) -> list:
    start, end = month_range(now)
    return [
        {
            "category_name": row.name,
            "category_color": row.color,
            "amount": row.total,
            "percentage": round2(percent_of(row.total, month_total)),
        }
        for row in _category_totals(db, user_id, start, end)
    ]


def dashboard_data(db: Session, user_id: int, now: datetime = None) -> dict:
    now = now or datetime.now()
    financial = _financial(db, user_id, now)
    return {
        "financial": financial,
        "tasks": _task_counts(db, user_id, now),
        "recent_activity": _recent_activity(db, user_id),
        "quick_stats": _quick_stats(db, user_id),
        "charts": {
            "expense_trends": _expense_trends(db, user_id, now),
            "category_spending": _category_spending(
                db, user_id, now, financial["total_expenses_this_month"]
            ),
        },
    }


def financial_summary(db: Session, user_id: int, now: datetime = None) -> dict:
    now = now or datetime.now()
    this_month, _ = _month_total(db, user_id, *month_range(now))
    last_month, _ = _month_total(db, user_id, *previous_month_range(now))

    change = round2(percent_of(this_month - last_month, last_month))
    return {
        "this_month": this_month,
        "last_month": last_month,
        "change": change,
        "change_type": change_type(change),
    }
