# calculations.py
from decimal import ROUND_HALF_UP, Decimal

WARNING_THRESHOLD = 80
EXCEEDED_THRESHOLD = 100

STATUS_COLORS = {
    "exceeded": "#E74C3C",
    "warning": "#F39C12",
    "safe": "#27AE60",
}

SAVINGS_MILESTONES = (25, 50, 75, 100)


def round2(value: float) -> float:
    """Round half-up to two decimals (``round`` rounds half to even)."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def percent_of(part: float, whole: float) -> float:
    """Unrounded ``part / whole * 100``; 0 when ``whole`` is 0."""
    if not whole:
        return 0.0
    return part / whole * 100


def classify_budget(percentage: float) -> str:
    if percentage >= EXCEEDED_THRESHOLD:
        return "exceeded"
    if percentage >= WARNING_THRESHOLD:
        return "warning"
    return "safe"


def crossed_milestone(old_progress: float, new_progress: float):
    """Lowest milestone ``m`` with ``old_progress < m <= new_progress``, else None."""
    for milestone in SAVINGS_MILESTONES:
        if old_progress < milestone <= new_progress:
            return milestone
    return None


def change_type(change: float) -> str:
    if change > 0:
        return "increase"
    if change < 0:
        return "decrease"
    return "same"
