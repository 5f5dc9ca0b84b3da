# notes.py
from collections import Counter

from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import Note
from errors import NotFoundError
from schemas import NoteCreate, NoteFilters, NoteUpdate

POPULAR_TAG_LIMIT = 10


def create_note(db: Session, user_id: int, data: NoteCreate) -> Note:
    note = Note(user_id=user_id, **data.model_dump())
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def list_notes(db: Session, user_id: int, filters: NoteFilters):
    query = db.query(Note).filter(Note.user_id == user_id, Note.is_archived.is_(filters.archived))
    if filters.pinned is not None:
        query = query.filter(Note.is_pinned.is_(filters.pinned))
    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(or_(Note.title.ilike(pattern), Note.content.ilike(pattern)))

    notes = query.order_by(Note.is_pinned.desc(), Note.created_at.desc(), Note.id.desc()).all()

    if filters.tag:
        wanted = {t.strip() for t in filters.tag.split(",") if t.strip()}
        notes = [n for n in notes if wanted.intersection(n.tags or [])]
    return notes


def get_note(db: Session, user_id: int, note_id: int) -> Note:
    note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
    if not note:
        raise NotFoundError("Note not found")
    return note


def update_note(db: Session, user_id: int, note_id: int, data: NoteUpdate) -> Note:
    note = get_note(db, user_id, note_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(note, field, value)
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, user_id: int, note_id: int):
    note = get_note(db, user_id, note_id)
    db.delete(note)
    db.commit()


def toggle_pin(db: Session, user_id: int, note_id: int) -> Note:
    note = get_note(db, user_id, note_id)
    note.is_pinned = not note.is_pinned
    db.commit()
    db.refresh(note)
    return note


def toggle_archive(db: Session, user_id: int, note_id: int) -> Note:
    note = get_note(db, user_id, note_id)
    note.is_archived = not note.is_archived
    # archived notes are never pinned
    if note.is_archived:
        note.is_pinned = False
    db.commit()
    db.refresh(note)
    return note


def note_stats(db: Session, user_id: int) -> dict:
    notes = db.query(Note).filter(Note.user_id == user_id).all()
    frequency = Counter(tag for note in notes for tag in (note.tags or []))
    return {
        "total": len(notes),
        "active": sum(1 for n in notes if not n.is_archived),
        "archived": sum(1 for n in notes if n.is_archived),
        "pinned": sum(1 for n in notes if n.is_pinned),
        "total_tags": len(frequency),
        "popular_tags": [
            {"tag": tag, "count": count} for tag, count in frequency.most_common(POPULAR_TAG_LIMIT)
        ],
    }


def all_tags(db: Session, user_id: int) -> list:
    rows = db.query(Note.tags).filter(Note.user_id == user_id).all()
    return sorted({tag for (tags,) in rows for tag in (tags or [])})
