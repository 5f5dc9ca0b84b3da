# categories.py
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import Category, Expense
from errors import BadRequestError, ConflictError, NotFoundError
from schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Food & Dining", "icon": "restaurant", "color": "#FF6B6B", "order": 1},
    {"name": "Transport", "icon": "directions-car", "color": "#4ECDC4", "order": 2},
    {"name": "Shopping", "icon": "shopping-bag", "color": "#95E1D3", "order": 3},
    {"name": "Entertainment", "icon": "movie", "color": "#F38181", "order": 4},
    {"name": "Healthcare", "icon": "local-hospital", "color": "#AA96DA", "order": 5},
    {"name": "Education", "icon": "school", "color": "#FCBAD3", "order": 6},
    {"name": "Utilities", "icon": "lightbulb", "color": "#FDDB3A", "order": 7},
    {"name": "Others", "icon": "category", "color": "#6C5CE7", "order": 8},
]


def create_default_categories(db: Session, user_id: int):
    db.add_all(Category(user_id=user_id, is_default=True, **cat) for cat in DEFAULT_CATEGORIES)
    db.commit()


def _name_taken(db: Session, user_id: int, name: str, exclude_id: int = None) -> bool:
    query = db.query(Category.id).filter(
        Category.user_id == user_id, func.lower(Category.name) == name.lower()
    )
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return query.first() is not None


def get_category(db: Session, user_id: int, category_id: int) -> Category:
    category = (
        db.query(Category)
        .filter(Category.id == category_id, Category.user_id == user_id)
        .first()
    )
    if not category:
        raise NotFoundError("Category not found")
    return category


def list_categories(db: Session, user_id: int):
    return (
        db.query(Category)
        .filter(Category.user_id == user_id)
        .order_by(Category.order, Category.id)
        .all()
    )


def create_category(db: Session, user_id: int, data: CategoryCreate) -> Category:
    if _name_taken(db, user_id, data.name):
        raise ConflictError("Category name already exists")

    max_order = db.query(func.max(Category.order)).filter(Category.user_id == user_id).scalar()
    category = Category(
        user_id=user_id,
        order=(max_order or 0) + 1,
        is_default=False,
        **data.model_dump(),
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, user_id: int, category_id: int, data: CategoryUpdate) -> Category:
    category = get_category(db, user_id, category_id)
    changes = data.model_dump(exclude_unset=True)

    new_name = changes.get("name")
    if new_name and new_name != category.name:
        if _name_taken(db, user_id, new_name, exclude_id=category.id):
            raise ConflictError("Category name already exists")

    for field, value in changes.items():
        if value is None and field != "monthly_budget":
            continue
        setattr(category, field, value)

    db.commit()
    db.refresh(category)
    return category


def _expense_count(db: Session, user_id: int, category_id: int) -> int:
    return (
        db.query(func.count(Expense.id))
        .filter(Expense.user_id == user_id, Expense.category_id == category_id)
        .scalar()
    )


def check_category_deletion(db: Session, user_id: int, category_id: int) -> dict:
    get_category(db, user_id, category_id)
    expense_count = _expense_count(db, user_id, category_id)

    if expense_count > 0:
        return {
            "can_delete": False,
            "expense_count": expense_count,
            "message": f"This category has {expense_count} expense(s). "
            "Deleting it will also delete all these expenses.",
            "requires_confirmation": True,
        }
    return {
        "can_delete": True,
        "expense_count": 0,
        "message": "Category can be deleted safely.",
        "requires_confirmation": False,
    }


def delete_category(db: Session, user_id: int, category_id: int, confirmed: bool = False) -> dict:
    category = get_category(db, user_id, category_id)
    expense_count = _expense_count(db, user_id, category_id)

    if expense_count > 0 and not confirmed:
        raise BadRequestError(
            f"Category has {expense_count} expense(s). Please confirm deletion to proceed."
        )

    # expenses go with the category through the relationship cascade
    db.delete(category)
    db.commit()
    logger.info("Deleted category %s of user %s with %d expense(s)", category_id, user_id, expense_count)
    return {"deleted_expenses": expense_count}


def reorder_categories(db: Session, user_id: int, orders: list) -> int:
    """Apply ``[{id, order}, ...]``; ids the user does not own are ignored."""
    wanted = {item.id: item.order for item in orders}
    if not wanted:
        return 0

    owned = (
        db.query(Category)
        .filter(Category.user_id == user_id, Category.id.in_(wanted))
        .all()
    )
    for category in owned:
        category.order = wanted[category.id]
    db.commit()
    return len(owned)
