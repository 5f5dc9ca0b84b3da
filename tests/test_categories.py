import pytest

from categories import (
    DEFAULT_CATEGORIES,
    check_category_deletion,
    create_category,
    create_default_categories,
    delete_category,
    list_categories,
    reorder_categories,
    update_category,
)
from database import Expense
from errors import BadRequestError, ConflictError, NotFoundError
from schemas import CategoryCreate, CategoryOrder, CategoryUpdate


def test_default_categories_in_order(db, user):
    create_default_categories(db, user.id)

    categories = list_categories(db, user.id)

    assert [c.name for c in categories] == [c["name"] for c in DEFAULT_CATEGORIES]
    assert all(c.is_default for c in categories)


def test_new_category_goes_last(db, user):
    create_default_categories(db, user.id)

    category = create_category(db, user.id, CategoryCreate(name="Pets", monthly_budget=50))

    assert category.order == len(DEFAULT_CATEGORIES) + 1
    assert not category.is_default


def test_duplicate_name_conflicts_case_insensitively(db, user, other_user):
    create_category(db, user.id, CategoryCreate(name="Pets"))

    with pytest.raises(ConflictError):
        create_category(db, user.id, CategoryCreate(name="pets"))
    # names are unique per user only
    create_category(db, other_user.id, CategoryCreate(name="Pets"))


def test_rename_to_existing_name_conflicts(db, user):
    create_category(db, user.id, CategoryCreate(name="Pets"))
    garden = create_category(db, user.id, CategoryCreate(name="Garden"))

    with pytest.raises(ConflictError):
        update_category(db, user.id, garden.id, CategoryUpdate(name="Pets"))


def test_partial_update_can_clear_budget(db, user):
    garden = create_category(db, user.id, CategoryCreate(name="Garden", monthly_budget=80))

    garden = update_category(db, user.id, garden.id, CategoryUpdate(color="#00FF00"))
    assert garden.monthly_budget == 80

    garden = update_category(db, user.id, garden.id, CategoryUpdate(monthly_budget=None))
    assert garden.monthly_budget is None
    assert garden.color == "#00FF00"


def test_deletion_requires_confirmation_when_expenses_exist(db, user, make_category, make_expense):
    food = make_category(user, "Food")
    make_expense(user, food, 10)
    make_expense(user, food, 20)

    check = check_category_deletion(db, user.id, food.id)
    assert check["expense_count"] == 2
    assert check["requires_confirmation"] is True
    assert check["can_delete"] is False

    with pytest.raises(BadRequestError):
        delete_category(db, user.id, food.id)

    assert delete_category(db, user.id, food.id, confirmed=True) == {"deleted_expenses": 2}
    assert db.query(Expense).count() == 0


def test_empty_category_deletes_without_confirmation(db, user, make_category):
    empty = make_category(user, "Empty")

    assert check_category_deletion(db, user.id, empty.id)["can_delete"] is True
    delete_category(db, user.id, empty.id)

    with pytest.raises(NotFoundError):
        check_category_deletion(db, user.id, empty.id)


def test_reorder_ignores_foreign_categories(db, user, other_user, make_category):
    a = make_category(user, "A", order=1)
    b = make_category(user, "B", order=2)
    theirs = make_category(other_user, "C", order=1)

    updated = reorder_categories(
        db,
        user.id,
        [CategoryOrder(id=a.id, order=2), CategoryOrder(id=b.id, order=1), CategoryOrder(id=theirs.id, order=9)],
    )

    assert updated == 2
    assert [c.name for c in list_categories(db, user.id)] == ["B", "A"]
    db.refresh(theirs)
    assert theirs.order == 1
