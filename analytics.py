# analytics.py
"""Expense statistics, daily series and filtered expense listing."""
import math
from datetime import datetime, timedelta

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from calculations import percent_of, round2
from database import Category, Expense, ExpenseTag
from periods import days_in_month, end_of_day, month_range, previous_month_range, start_of_day
from schemas import ExpenseFilters

SORT_COLUMNS = {
    "date": Expense.date,
    "amount": Expense.amount,
    "created_at": Expense.created_at,
}


def day_bucket(column):
    """Calendar day of ``column``; a string on SQLite, a date on other backends."""
    return func.date(column)


def _category_budget_status(budget, spent: float):
    if not budget:
        return None
    return {
        "budget": budget,
        "spent": spent,
        "remaining": budget - spent,
        "percentage": round2(percent_of(spent, budget)),
    }


def expense_stats(db: Session, user_id: int, now: datetime = None) -> dict:
    now = now or datetime.now()
    month_start, _ = month_range(now)
    last_start, last_end = previous_month_range(now)

    in_this_month = Expense.date >= month_start
    in_last_month = Expense.date.between(last_start, last_end)

    # this month, last month and all time in a single pass over the user's rows
    totals = (
        db.query(
            func.coalesce(func.sum(case((in_this_month, Expense.amount), else_=0)), 0),
            func.count(case((in_this_month, 1))),
            func.coalesce(func.sum(case((in_last_month, Expense.amount), else_=0)), 0),
            func.count(case((in_last_month, 1))),
            func.coalesce(func.sum(Expense.amount), 0),
            func.count(Expense.id),
        )
        .filter(Expense.user_id == user_id)
        .one()
    )
    this_total, this_count, last_total, last_count, all_total, all_count = totals

    month_total = func.sum(Expense.amount)
    rows = (
        db.query(
            Category.id,
            Category.name,
            Category.icon,
            Category.color,
            Category.monthly_budget,
            month_total.label("total"),
            func.count(Expense.id).label("count"),
        )
        .select_from(Expense)
        .join(Category, Category.id == Expense.category_id)
        .filter(Expense.user_id == user_id, in_this_month)
        .group_by(Category.id)
        .order_by(month_total.desc())
        .all()
    )
    category_breakdown = [
        {
            "category_id": row.id,
            "category_name": row.name,
            "category_icon": row.icon,
            "category_color": row.color,
            "category_budget": row.monthly_budget,
            "total": row.total,
            "count": row.count,
            "percentage": round2(percent_of(row.total, this_total)),
            "budget_status": _category_budget_status(row.monthly_budget, row.total),
        }
        for row in rows
    ]

    daily_average = this_total / now.day
    projected = daily_average * days_in_month(now)

    return {
        "this_month": {
            "total": this_total,
            "count": this_count,
            "average": round2(daily_average),
            "projected": round2(projected),
        },
        "last_month": {"total": last_total, "count": last_count},
        "all_time": {"total": all_total, "count": all_count},
        "category_breakdown": category_breakdown,
        "daily_average": round2(daily_average),
        "projected_monthly_total": round2(projected),
        "comparison": {
            "percentage_change": round2(percent_of(this_total - last_total, last_total)),
        },
    }


def daily_expenses(db: Session, user_id: int, days: int = 30, now: datetime = None) -> list:
    """Per-day totals for the trailing ``days`` days; days without expenses are omitted."""
    now = now or datetime.now()
    day = day_bucket(Expense.date).label("day")
    rows = (
        db.query(day, func.sum(Expense.amount), func.count(Expense.id))
        .filter(Expense.user_id == user_id, Expense.date >= now - timedelta(days=days))
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [{"date": str(key), "total": total, "count": count} for key, total, count in rows]


def paginated_expenses(db: Session, user_id: int, filters: ExpenseFilters) -> dict:
    query = db.query(Expense).filter(Expense.user_id == user_id)

    if filters.category_id is not None:
        query = query.filter(Expense.category_id == filters.category_id)
    if filters.start_date is not None:
        start = start_of_day(datetime.combine(filters.start_date, datetime.min.time()))
        query = query.filter(Expense.date >= start)
    if filters.end_date is not None:
        end = end_of_day(datetime.combine(filters.end_date, datetime.min.time()))
        query = query.filter(Expense.date <= end)
    if filters.min_amount is not None:
        query = query.filter(Expense.amount >= filters.min_amount)
    if filters.max_amount is not None:
        query = query.filter(Expense.amount <= filters.max_amount)
    if filters.payment_method is not None:
        query = query.filter(Expense.payment_method == filters.payment_method)
    if filters.tags:
        query = query.filter(Expense.tag_rows.any(ExpenseTag.tag.in_(filters.tags)))

    total = query.count()

    column = SORT_COLUMNS[filters.sort_by]
    ordering = column.asc() if filters.sort_order == "asc" else column.desc()
    items = (
        query.options(joinedload(Expense.category))
        .order_by(ordering, Expense.id.desc())
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
        .all()
    )

    total_pages = math.ceil(total / filters.limit)
    return {
        "data": items,
        "pagination": {
            "page": filters.page,
            "limit": filters.limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": filters.page < total_pages,
            "has_prev": filters.page > 1,
        },
    }
