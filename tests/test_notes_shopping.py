from notes import all_tags, create_note, list_notes, note_stats, toggle_archive, toggle_pin
from schemas import NoteCreate, NoteFilters, ShoppingItemCreate, ShoppingItemUpdate, ShoppingListCreate
from shopping import create_list, delete_item, list_view, shopping_stats, toggle_purchase, update_item


def test_pinned_notes_come_first(db, user):
    create_note(db, user.id, NoteCreate(title="Recipes"))
    pinned = create_note(db, user.id, NoteCreate(title="Wifi password", is_pinned=True))
    create_note(db, user.id, NoteCreate(title="Ideas"))

    notes = list_notes(db, user.id, NoteFilters())

    assert notes[0].id == pinned.id
    assert [n.title for n in notes[1:]] == ["Ideas", "Recipes"]


def test_archiving_unpins_and_hides(db, user):
    note = create_note(db, user.id, NoteCreate(title="Old", is_pinned=True))

    note = toggle_archive(db, user.id, note.id)

    assert note.is_archived and not note.is_pinned
    assert list_notes(db, user.id, NoteFilters()) == []
    assert [n.id for n in list_notes(db, user.id, NoteFilters(archived=True))] == [note.id]


def test_note_filters_and_tags(db, user):
    create_note(db, user.id, NoteCreate(title="Trip", content="Pack sunscreen", tags=["travel", "todo"]))
    create_note(db, user.id, NoteCreate(title="Work", tags=["todo"]))
    note = create_note(db, user.id, NoteCreate(title="Misc"))
    toggle_pin(db, user.id, note.id)

    assert [n.title for n in list_notes(db, user.id, NoteFilters(tag="travel"))] == ["Trip"]
    assert [n.title for n in list_notes(db, user.id, NoteFilters(search="sunscreen"))] == ["Trip"]
    assert [n.title for n in list_notes(db, user.id, NoteFilters(pinned=True))] == ["Misc"]
    assert all_tags(db, user.id) == ["todo", "travel"]

    stats = note_stats(db, user.id)
    assert stats["total"] == 3
    assert stats["pinned"] == 1
    assert stats["popular_tags"][0] == {"tag": "todo", "count": 2}


def _groceries(db, user):
    return create_list(
        db,
        user.id,
        ShoppingListCreate(
            title="Groceries",
            total_budget=20,
            items=[
                ShoppingItemCreate(name="Milk", quantity=2, estimated_price=1.5, actual_price=1.25),
                ShoppingItemCreate(name="Bread", estimated_price=3),
            ],
        ),
    )


def test_list_completes_when_everything_is_purchased(db, user):
    shopping_list = _groceries(db, user)
    milk, bread = shopping_list.items

    shopping_list = toggle_purchase(db, user.id, shopping_list.id, milk.id)
    assert not shopping_list.is_completed
    assert milk.purchased_at is not None

    shopping_list = toggle_purchase(db, user.id, shopping_list.id, bread.id)
    assert shopping_list.is_completed
    assert shopping_list.completed_at is not None

    shopping_list = update_item(db, user.id, shopping_list.id, bread.id, ShoppingItemUpdate(is_purchased=False))
    assert not shopping_list.is_completed
    assert shopping_list.completed_at is None
    assert bread.purchased_at is None


def test_removing_last_unpurchased_item_completes_list(db, user):
    shopping_list = _groceries(db, user)
    milk, bread = shopping_list.items
    toggle_purchase(db, user.id, shopping_list.id, milk.id)

    shopping_list = delete_item(db, user.id, shopping_list.id, bread.id)

    assert shopping_list.is_completed


def test_list_view_costs(db, user):
    shopping_list = _groceries(db, user)
    toggle_purchase(db, user.id, shopping_list.id, shopping_list.items[0].id)

    view = list_view(shopping_list)

    assert view["total_items"] == 2
    assert view["completed_items"] == 1
    assert view["completion_percentage"] == 50
    assert view["total_estimated_cost"] == 6.0
    assert view["total_actual_cost"] == 2.5
    assert view["budget_remaining"] == 17.5


def test_empty_list_is_not_completed(db, user):
    shopping_list = create_list(db, user.id, ShoppingListCreate(title="Empty"))

    view = list_view(shopping_list)

    assert not shopping_list.is_completed
    assert view["completion_percentage"] == 0
    assert view["budget_remaining"] == 0


def test_shopping_stats(db, user):
    shopping_list = _groceries(db, user)
    toggle_purchase(db, user.id, shopping_list.id, shopping_list.items[0].id)
    create_list(db, user.id, ShoppingListCreate(title="Party", total_budget=50))

    stats = shopping_stats(db, user.id)

    assert stats == {
        "total_lists": 2,
        "active_lists": 2,
        "completed_lists": 0,
        "total_items": 2,
        "purchased_items": 1,
        "total_budget": 70,
        "total_spent": 2.5,
    }
