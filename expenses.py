# expenses.py
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from categories import get_category
from database import Expense, ExpenseTag
from errors import BadRequestError, NotFoundError
from periods import advance
from schemas import ExpenseCreate, ExpenseUpdate, RecurringConfig

logger = logging.getLogger(__name__)


def _set_tags(expense: Expense, tags):
    unique = list(dict.fromkeys(tags))
    expense.tag_rows = [ExpenseTag(tag=tag) for tag in unique]


def _apply_recurrence(expense: Expense, is_recurring: bool, config):
    if is_recurring and config is not None:
        expense.is_recurring = True
        expense.recurring_interval = config.interval
        expense.recurring_end_date = config.end_date
        expense.next_due_date = advance(expense.date, config.interval)
    else:
        expense.is_recurring = False
        expense.recurring_interval = None
        expense.recurring_end_date = None
        expense.next_due_date = None


def create_expense(db: Session, user_id: int, data: ExpenseCreate) -> Expense:
    if data.amount <= 0:
        raise BadRequestError("Amount must be greater than 0")
    # cross-user category references are rejected as missing
    get_category(db, user_id, data.category_id)

    expense = Expense(
        user_id=user_id,
        category_id=data.category_id,
        amount=data.amount,
        description=data.description,
        date=data.date or datetime.now(),
        payment_method=data.payment_method,
    )
    _set_tags(expense, data.tags)
    _apply_recurrence(expense, data.is_recurring, data.recurring_config)

    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def get_expense(db: Session, user_id: int, expense_id: int) -> Expense:
    expense = (
        db.query(Expense)
        .filter(Expense.id == expense_id, Expense.user_id == user_id)
        .first()
    )
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def update_expense(db: Session, user_id: int, expense_id: int, data: ExpenseUpdate) -> Expense:
    expense = get_expense(db, user_id, expense_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("category_id") and changes["category_id"] != expense.category_id:
        get_category(db, user_id, changes["category_id"])

    for field in ("category_id", "amount", "description", "date", "payment_method"):
        if field in changes and (changes[field] is not None or field == "description"):
            setattr(expense, field, changes[field])

    if data.tags is not None:
        _set_tags(expense, data.tags)

    if "is_recurring" in changes or "recurring_config" in changes:
        is_recurring = data.is_recurring if data.is_recurring is not None else expense.is_recurring
        config = data.recurring_config
        if is_recurring and config is None and expense.recurring_interval:
            # keep the stored schedule when only the flag is re-sent
            config = RecurringConfig(
                interval=expense.recurring_interval, end_date=expense.recurring_end_date
            )
        if is_recurring and config is None:
            raise BadRequestError("recurring_config is required for recurring expenses")
        _apply_recurrence(expense, is_recurring, config)

    db.commit()
    db.refresh(expense)
    return expense


def delete_expense(db: Session, user_id: int, expense_id: int):
    expense = get_expense(db, user_id, expense_id)
    db.delete(expense)
    db.commit()


def generate_recurring_expenses(db: Session, now: datetime = None) -> int:
    """Materialize every recurring expense whose next due date has passed.

    Each occurrence becomes a plain expense; the template's next due date moves
    forward until it passes the end date, where the schedule stops.
    """
    now = now or datetime.now()
    created = 0
    templates = (
        db.query(Expense)
        .filter(Expense.is_recurring.is_(True), Expense.next_due_date <= now)
        .all()
    )

    for template in templates:
        due = template.next_due_date
        while due is not None and due <= now:
            if template.recurring_end_date and due > template.recurring_end_date:
                due = None
                break
            occurrence = Expense(
                user_id=template.user_id,
                category_id=template.category_id,
                amount=template.amount,
                description=template.description,
                date=due,
                payment_method=template.payment_method,
            )
            _set_tags(occurrence, template.tags)
            db.add(occurrence)
            created += 1
            due = advance(due, template.recurring_interval)

        if due is not None and template.recurring_end_date and due > template.recurring_end_date:
            due = None
        template.next_due_date = due
        if due is None:
            template.is_recurring = False

    db.commit()
    if created:
        logger.info("Generated %d recurring expense(s)", created)
    return created
