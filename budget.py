# budget.py
"""Budget status for the current calendar month.

A category's budget lives on the category itself (``monthly_budget``); what
was spent is summed from its expenses inside the month window.
"""
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

import notifications
from calculations import STATUS_COLORS, WARNING_THRESHOLD, classify_budget, percent_of, round2
from categories import get_category
from database import Category, Expense
from errors import NotFoundError
from periods import month_range


def month_spent(db: Session, user_id: int, category_id: int, start: datetime, end: datetime) -> float:
    total = (
        db.query(func.sum(Expense.amount))
        .filter(
            Expense.user_id == user_id,
            Expense.category_id == category_id,
            Expense.date >= start,
            Expense.date <= end,
        )
        .scalar()
    )
    return total or 0.0


def build_status(category: Category, spent: float) -> dict:
    budget = category.monthly_budget
    percentage = round2(percent_of(spent, budget))
    status = classify_budget(percentage)
    return {
        "category_id": category.id,
        "category_name": category.name,
        "category_color": category.color,
        "category_icon": category.icon,
        "budget": budget,
        "spent": spent,
        "remaining": budget - spent,
        "percentage": percentage,
        "status": status,
        "color": STATUS_COLORS[status],
    }


def category_budget_status(db: Session, user_id: int, category_id: int, now: datetime = None) -> dict:
    """Status of one category's budget.

    Every call at or above the warning threshold sends a budget alert, so
    repeated reads of an over-budget category alert repeatedly.
    """
    category = get_category(db, user_id, category_id)
    if category.monthly_budget is None:
        raise NotFoundError("Category has no budget set")

    start, end = month_range(now or datetime.now())
    status = build_status(category, month_spent(db, user_id, category.id, start, end))

    if status["percentage"] >= WARNING_THRESHOLD:
        notifications.send_budget_alert(user_id, category.name, status["percentage"])
    return status


def empty_summary() -> dict:
    return {
        "total_budget": 0,
        "total_spent": 0,
        "total_remaining": 0,
        "overall_percentage": 0,
        "categories_with_budget": 0,
        "categories_over_budget": 0,
        "categories": [],
    }


def budget_summary(db: Session, user_id: int, now: datetime = None) -> dict:
    categories = (
        db.query(Category)
        .filter(
            Category.user_id == user_id,
            Category.monthly_budget.isnot(None),
            Category.monthly_budget > 0,
        )
        .order_by(Category.order, Category.id)
        .all()
    )
    if not categories:
        return empty_summary()

    start, end = month_range(now or datetime.now())
    spending = dict(
        db.query(Expense.category_id, func.sum(Expense.amount))
        .filter(
            Expense.user_id == user_id,
            Expense.category_id.in_([c.id for c in categories]),
            Expense.date >= start,
            Expense.date <= end,
        )
        .group_by(Expense.category_id)
        .all()
    )

    statuses = [build_status(c, spending.get(c.id) or 0.0) for c in categories]
    statuses.sort(key=lambda s: s["percentage"], reverse=True)

    total_budget = sum(s["budget"] for s in statuses)
    total_spent = sum(s["spent"] for s in statuses)
    return {
        "total_budget": total_budget,
        "total_spent": total_spent,
        "total_remaining": total_budget - total_spent,
        "overall_percentage": round2(percent_of(total_spent, total_budget)),
        "categories_with_budget": len(categories),
        "categories_over_budget": sum(1 for s in statuses if s["status"] == "exceeded"),
        "categories": statuses,
    }


def budget_alerts(db: Session, user_id: int, now: datetime = None) -> list:
    summary = budget_summary(db, user_id, now=now)
    return [s for s in summary["categories"] if s["status"] in ("warning", "exceeded")]


def update_category_budget(db: Session, user_id: int, category_id: int, budget) -> Category:
    category = get_category(db, user_id, category_id)
    category.monthly_budget = budget
    db.commit()
    db.refresh(category)
    return category
