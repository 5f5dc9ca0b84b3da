# shopping.py
"""Shopping lists. A list completes itself once every item is purchased."""
from datetime import datetime

from sqlalchemy.orm import Session

from database import ShoppingItem, ShoppingList
from errors import NotFoundError
from schemas import ShoppingItemCreate, ShoppingItemUpdate, ShoppingListCreate, ShoppingListUpdate


def sync_item_purchase(item: ShoppingItem, now: datetime = None):
    if item.is_purchased:
        if item.purchased_at is None:
            item.purchased_at = now or datetime.now()
    else:
        item.purchased_at = None


def sync_list_completion(shopping_list: ShoppingList, now: datetime = None):
    # an empty list keeps whatever state it had
    if not shopping_list.items:
        return
    all_purchased = all(item.is_purchased for item in shopping_list.items)
    if all_purchased and not shopping_list.is_completed:
        shopping_list.is_completed = True
        shopping_list.completed_at = now or datetime.now()
    elif not all_purchased and shopping_list.is_completed:
        shopping_list.is_completed = False
        shopping_list.completed_at = None


def total_estimated_cost(shopping_list: ShoppingList) -> float:
    return sum((item.estimated_price or 0) * item.quantity for item in shopping_list.items)


def total_actual_cost(shopping_list: ShoppingList) -> float:
    return sum(
        (item.actual_price or 0) * item.quantity
        for item in shopping_list.items
        if item.is_purchased
    )


def list_view(shopping_list: ShoppingList) -> dict:
    items = shopping_list.items
    completed = sum(1 for item in items if item.is_purchased)
    actual = total_actual_cost(shopping_list)
    return {
        "id": shopping_list.id,
        "title": shopping_list.title,
        "total_budget": shopping_list.total_budget,
        "is_completed": shopping_list.is_completed,
        "completed_at": shopping_list.completed_at,
        "items": items,
        "total_items": len(items),
        "completed_items": completed,
        "completion_percentage": round(completed / len(items) * 100) if items else 0,
        "total_estimated_cost": total_estimated_cost(shopping_list),
        "total_actual_cost": actual,
        "budget_remaining": shopping_list.total_budget - actual if shopping_list.total_budget else 0,
        "created_at": shopping_list.created_at,
    }


def _commit(db: Session, shopping_list: ShoppingList) -> ShoppingList:
    for item in shopping_list.items:
        sync_item_purchase(item)
    sync_list_completion(shopping_list)
    db.commit()
    db.refresh(shopping_list)
    return shopping_list


def create_list(db: Session, user_id: int, data: ShoppingListCreate) -> ShoppingList:
    shopping_list = ShoppingList(
        user_id=user_id,
        title=data.title,
        total_budget=data.total_budget,
        items=[ShoppingItem(**item.model_dump()) for item in data.items],
    )
    db.add(shopping_list)
    return _commit(db, shopping_list)


def list_lists(db: Session, user_id: int, completed: bool = None, search: str = None):
    query = db.query(ShoppingList).filter(ShoppingList.user_id == user_id)
    if completed is not None:
        query = query.filter(ShoppingList.is_completed.is_(completed))
    if search:
        query = query.filter(ShoppingList.title.ilike(f"%{search}%"))
    # active lists first
    return query.order_by(
        ShoppingList.is_completed, ShoppingList.created_at.desc(), ShoppingList.id.desc()
    ).all()


def get_list(db: Session, user_id: int, list_id: int) -> ShoppingList:
    shopping_list = (
        db.query(ShoppingList)
        .filter(ShoppingList.id == list_id, ShoppingList.user_id == user_id)
        .first()
    )
    if not shopping_list:
        raise NotFoundError("Shopping list not found")
    return shopping_list


def update_list(db: Session, user_id: int, list_id: int, data: ShoppingListUpdate) -> ShoppingList:
    shopping_list = get_list(db, user_id, list_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("title"):
        shopping_list.title = changes["title"]
    if "total_budget" in changes:
        shopping_list.total_budget = changes["total_budget"]
    return _commit(db, shopping_list)


def delete_list(db: Session, user_id: int, list_id: int):
    shopping_list = get_list(db, user_id, list_id)
    db.delete(shopping_list)
    db.commit()


def _get_item(shopping_list: ShoppingList, item_id: int) -> ShoppingItem:
    for item in shopping_list.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Item not found")


def add_item(db: Session, user_id: int, list_id: int, data: ShoppingItemCreate) -> ShoppingList:
    shopping_list = get_list(db, user_id, list_id)
    shopping_list.items.append(ShoppingItem(**data.model_dump()))
    return _commit(db, shopping_list)


def update_item(
    db: Session, user_id: int, list_id: int, item_id: int, data: ShoppingItemUpdate
) -> ShoppingList:
    shopping_list = get_list(db, user_id, list_id)
    item = _get_item(shopping_list, item_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in ("estimated_price", "actual_price"):
            continue
        setattr(item, field, value)
    return _commit(db, shopping_list)


def delete_item(db: Session, user_id: int, list_id: int, item_id: int) -> ShoppingList:
    shopping_list = get_list(db, user_id, list_id)
    shopping_list.items.remove(_get_item(shopping_list, item_id))
    return _commit(db, shopping_list)


def toggle_purchase(db: Session, user_id: int, list_id: int, item_id: int) -> ShoppingList:
    shopping_list = get_list(db, user_id, list_id)
    item = _get_item(shopping_list, item_id)
    item.is_purchased = not item.is_purchased
    return _commit(db, shopping_list)


def shopping_stats(db: Session, user_id: int) -> dict:
    lists = db.query(ShoppingList).filter(ShoppingList.user_id == user_id).all()
    return {
        "total_lists": len(lists),
        "active_lists": sum(1 for s in lists if not s.is_completed),
        "completed_lists": sum(1 for s in lists if s.is_completed),
        "total_items": sum(len(s.items) for s in lists),
        "purchased_items": sum(1 for s in lists for i in s.items if i.is_purchased),
        "total_budget": sum(s.total_budget or 0 for s in lists),
        "total_spent": sum(total_actual_cost(s) for s in lists),
    }
