from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import chat
import notes
import notifications
import shopping
import tasks
from auth import get_current_user
from database import get_db, User
from schemas import (
    MessageCreate,
    MessageOut,
    NoteCreate,
    NoteFilters,
    NoteOut,
    NoteUpdate,
    NotificationOut,
    PaginatedMessages,
    ShoppingItemCreate,
    ShoppingItemUpdate,
    ShoppingListCreate,
    ShoppingListOut,
    ShoppingListUpdate,
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TaskFilters,
    TaskOut,
    TaskStatusUpdate,
    TaskUpdate,
)

organizer_router = APIRouter()


# tasks


@organizer_router.get("/tasks", response_model=list[TaskOut])
def list_tasks(
    filters: Annotated[TaskFilters, Query()],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [tasks.task_view(t) for t in tasks.list_tasks(db, current_user.id, filters)]


@organizer_router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    data: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.create_task(db, current_user.id, data))


@organizer_router.get("/tasks/stats")
def get_task_stats(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return tasks.task_stats(db, current_user.id)


@organizer_router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.get_task(db, current_user.id, task_id))


@organizer_router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    data: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.update_task(db, current_user.id, task_id, data))


@organizer_router.patch("/tasks/{task_id}/status", response_model=TaskOut)
def update_task_status(
    task_id: int,
    data: TaskStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.update_task_status(db, current_user.id, task_id, data.status))


@organizer_router.delete("/tasks/{task_id}")
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tasks.delete_task(db, current_user.id, task_id)
    return {"message": "Task deleted successfully"}


@organizer_router.post("/tasks/{task_id}/subtasks", response_model=TaskOut)
def add_subtask(
    task_id: int,
    data: SubtaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.add_subtask(db, current_user.id, task_id, data))


@organizer_router.patch("/tasks/{task_id}/subtasks/{subtask_id}", response_model=TaskOut)
def update_subtask(
    task_id: int,
    subtask_id: int,
    data: SubtaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.update_subtask(db, current_user.id, task_id, subtask_id, data))


@organizer_router.delete("/tasks/{task_id}/subtasks/{subtask_id}", response_model=TaskOut)
def delete_subtask(
    task_id: int,
    subtask_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return tasks.task_view(tasks.delete_subtask(db, current_user.id, task_id, subtask_id))


# notes


@organizer_router.get("/notes", response_model=list[NoteOut])
def list_notes(
    filters: Annotated[NoteFilters, Query()],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes.list_notes(db, current_user.id, filters)


@organizer_router.post("/notes", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def create_note(
    data: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes.create_note(db, current_user.id, data)


@organizer_router.get("/notes/stats")
def get_note_stats(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return notes.note_stats(db, current_user.id)


@organizer_router.get("/notes/tags", response_model=list[str])
def get_note_tags(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return notes.all_tags(db, current_user.id)


@organizer_router.get("/notes/{note_id}", response_model=NoteOut)
def get_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes.get_note(db, current_user.id, note_id)


@organizer_router.patch("/notes/{note_id}", response_model=NoteOut)
def update_note(
    note_id: int,
    data: NoteUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes.update_note(db, current_user.id, note_id, data)


@organizer_router.patch("/notes/{note_id}/pin", response_model=NoteOut)
def toggle_note_pin(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes.toggle_pin(db, current_user.id, note_id)


@organizer_router.patch("/notes/{note_id}/archive", response_model=NoteOut)
def toggle_note_archive(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes.toggle_archive(db, current_user.id, note_id)


@organizer_router.delete("/notes/{note_id}")
def delete_note(
    note_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notes.delete_note(db, current_user.id, note_id)
    return {"message": "Note deleted successfully"}


# shopping lists


@organizer_router.get("/shopping-lists", response_model=list[ShoppingListOut])
def list_shopping_lists(
    completed: Optional[bool] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lists = shopping.list_lists(db, current_user.id, completed, search)
    return [shopping.list_view(s) for s in lists]


@organizer_router.post(
    "/shopping-lists", response_model=ShoppingListOut, status_code=status.HTTP_201_CREATED
)
def create_shopping_list(
    data: ShoppingListCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.create_list(db, current_user.id, data))


@organizer_router.get("/shopping-lists/stats")
def get_shopping_stats(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return shopping.shopping_stats(db, current_user.id)


@organizer_router.get("/shopping-lists/{list_id}", response_model=ShoppingListOut)
def get_shopping_list(
    list_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.get_list(db, current_user.id, list_id))


@organizer_router.patch("/shopping-lists/{list_id}", response_model=ShoppingListOut)
def update_shopping_list(
    list_id: int,
    data: ShoppingListUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.update_list(db, current_user.id, list_id, data))


@organizer_router.delete("/shopping-lists/{list_id}")
def delete_shopping_list(
    list_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    shopping.delete_list(db, current_user.id, list_id)
    return {"message": "Shopping list deleted successfully"}


@organizer_router.post("/shopping-lists/{list_id}/items", response_model=ShoppingListOut)
def add_shopping_item(
    list_id: int,
    data: ShoppingItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.add_item(db, current_user.id, list_id, data))


@organizer_router.patch("/shopping-lists/{list_id}/items/{item_id}", response_model=ShoppingListOut)
def update_shopping_item(
    list_id: int,
    item_id: int,
    data: ShoppingItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.update_item(db, current_user.id, list_id, item_id, data))


@organizer_router.patch(
    "/shopping-lists/{list_id}/items/{item_id}/toggle", response_model=ShoppingListOut
)
def toggle_shopping_item(
    list_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.toggle_purchase(db, current_user.id, list_id, item_id))


@organizer_router.delete(
    "/shopping-lists/{list_id}/items/{item_id}", response_model=ShoppingListOut
)
def delete_shopping_item(
    list_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return shopping.list_view(shopping.delete_item(db, current_user.id, list_id, item_id))


# chat


@organizer_router.post("/chat/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(
    data: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat.send_message(db, current_user, data.receiver_id, data.content)


@organizer_router.get("/chat/conversations")
def list_conversations(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return chat.conversations(db, current_user.id)


@organizer_router.get("/chat/unread-count")
def get_unread_count(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return {"count": chat.unread_count(db, current_user.id)}


@organizer_router.get("/chat/conversations/{other_id}", response_model=PaginatedMessages)
def get_conversation(
    other_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat.conversation(db, current_user.id, other_id, page, limit)


@organizer_router.get("/chat/conversations/{other_id}/search", response_model=list[MessageOut])
def search_messages(
    other_id: int,
    q: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return chat.search_messages(db, current_user.id, other_id, q)


@organizer_router.put("/chat/conversations/{other_id}/read")
def mark_conversation_read(
    other_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"updated": chat.mark_read(db, current_user.id, other_id)}


@organizer_router.delete("/chat/messages/{message_id}")
def delete_message(
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    chat.delete_message(db, current_user.id, message_id)
    return {"message": "Message deleted successfully"}


# notifications


@organizer_router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notifications.list_notifications(db, current_user.id, limit)
