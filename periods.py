# periods.py
"""Calendar windows used by the budget, analytics and dashboard queries.

All windows are in server-local, naive time and inclusive on both ends.
"""
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def day_range(now: datetime) -> tuple[datetime, datetime]:
    return start_of_day(now), end_of_day(now)


def month_range(now: datetime) -> tuple[datetime, datetime]:
    """First instant to last instant of the month containing ``now``."""
    start = start_of_day(now.replace(day=1))
    # day=31 clamps to the last day of the month
    end = end_of_day(now + relativedelta(day=31))
    return start, end


def previous_month_range(now: datetime) -> tuple[datetime, datetime]:
    start = start_of_day(now.replace(day=1)) - relativedelta(months=1)
    end = end_of_day(start + relativedelta(day=31))
    return start, end


def days_in_month(now: datetime) -> int:
    return (now + relativedelta(day=31)).day


def trailing_day_keys(now: datetime, days: int) -> list[str]:
    """``YYYY-MM-DD`` keys for the last ``days`` days, oldest first, today last."""
    return [
        (now - timedelta(days=offset)).strftime("%Y-%m-%d")
        for offset in range(days - 1, -1, -1)
    ]


def advance(moment: datetime, interval: str) -> datetime:
    if interval == "daily":
        delta = relativedelta(days=+1)
    elif interval == "weekly":
        delta = relativedelta(weeks=+1)
    elif interval == "monthly":
        delta = relativedelta(months=+1)
    elif interval == "yearly":
        delta = relativedelta(years=+1)
    else:
        raise ValueError(f"Unknown interval: {interval}")
    return moment + delta
