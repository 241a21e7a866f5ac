"""Per-user note storage: filtered/sorted/paginated listing, CRUD, pinning
and tag statistics.

Every single-note lookup filters on id and owner together, so a note owned
by someone else is indistinguishable from a missing one.
"""

import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from structlog import get_logger

from notes_api.exceptions import NoteNotFoundError
from notes_database.models import MAX_ID, Note, NoteTag, User, id_in_range, utcnow


logger = get_logger(__name__)

SORT_COLUMNS = {
    "createdAt": Note.created_at,
    "updatedAt": Note.updated_at,
    "title": Note.title,
}
TOP_TAGS_LIMIT = 10


@dataclass
class NotePage:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# PUBLIC_INTERFACE
def list_notes(
    db: Session,
    owner: User,
    *,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    sort_by: str = "updatedAt",
    sort_order: str = "desc",
    pinned_first: bool = True,
) -> NotePage:
    """Return one page of the owner's notes plus the total match count."""
    filters = [Note.user_id == owner.id]
    if search:
        pattern = f"%{_escape_like(search)}%"
        filters.append(
            or_(
                Note.title.ilike(pattern, escape="\\"),
                Note.content.ilike(pattern, escape="\\"),
                Note.tag_rows.any(NoteTag.name.ilike(pattern, escape="\\")),
            )
        )
    if tag:
        filters.append(Note.tag_rows.any(NoteTag.name == tag))

    total = db.scalar(select(func.count(Note.id)).where(*filters)) or 0

    column = SORT_COLUMNS.get(sort_by, Note.updated_at)
    descending = sort_order != "asc"
    order_by = []
    if pinned_first:
        order_by.append(Note.is_pinned.desc())
    order_by.append(column.desc() if descending else column.asc())
    # Stable pagination across equal sort keys.
    order_by.append(Note.id.desc() if descending else Note.id.asc())

    offset = (page - 1) * limit
    if offset > MAX_ID:
        return NotePage(items=[], total=total, page=page, limit=limit)
    items = db.scalars(
        select(Note)
        .where(*filters)
        .order_by(*order_by)
        .offset(offset)
        .limit(limit)
    ).all()
    return NotePage(items=list(items), total=total, page=page, limit=limit)


# PUBLIC_INTERFACE
def get_note(db: Session, owner: User, note_id: int) -> Note:
    if not id_in_range(note_id):
        raise NoteNotFoundError()
    note = db.scalars(select(Note).where(Note.id == note_id, Note.user_id == owner.id)).first()
    if note is None:
        raise NoteNotFoundError()
    return note


# PUBLIC_INTERFACE
def create_note(
    db: Session,
    owner: User,
    title: str,
    content: str,
    tags: Optional[list[str]] = None,
    background_color: str = "#ffffff",
) -> Note:
    note = Note(
        title=title,
        content=content,
        background_color=background_color,
        user_id=owner.id,
    )
    note.tags = tags or []
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("note_created", note_id=note.id, user_id=owner.id)
    return note


# PUBLIC_INTERFACE
def update_note(db: Session, owner: User, note_id: int, **changes) -> Note:
    """Overwrite only the supplied (non-None) fields."""
    note = get_note(db, owner, note_id)
    for field in ("title", "content", "background_color", "is_pinned"):
        value = changes.get(field)
        if value is not None:
            setattr(note, field, value)
    if changes.get("tags") is not None:
        note.tags = changes["tags"]
    note.updated_at = utcnow()
    db.commit()
    db.refresh(note)
    logger.info(
        "note_updated",
        note_id=note.id,
        user_id=owner.id,
        fields=sorted(k for k, v in changes.items() if v is not None),
    )
    return note


# PUBLIC_INTERFACE
def delete_note(db: Session, owner: User, note_id: int) -> None:
    note = get_note(db, owner, note_id)
    db.delete(note)
    db.commit()
    logger.info("note_deleted", note_id=note_id, user_id=owner.id)


# PUBLIC_INTERFACE
def toggle_pin(db: Session, owner: User, note_id: int) -> Note:
    note = get_note(db, owner, note_id)
    note.is_pinned = not note.is_pinned
    db.commit()
    db.refresh(note)
    return note


# PUBLIC_INTERFACE
def tag_counts(db: Session, owner: User, limit: int = TOP_TAGS_LIMIT) -> list[tuple[str, int]]:
    """Most used tags of the owner's notes, count descending then name."""
    count = func.count(NoteTag.id).label("count")
    rows = db.execute(
        select(NoteTag.name, count)
        .join(Note, Note.id == NoteTag.note_id)
        .where(Note.user_id == owner.id)
        .group_by(NoteTag.name)
        .order_by(count.desc(), NoteTag.name.asc())
        .limit(limit)
    ).all()
    return [(name, n) for name, n in rows]


# PUBLIC_INTERFACE
def note_stats(db: Session, owner: User) -> dict:
    total = db.scalar(select(func.count(Note.id)).where(Note.user_id == owner.id)) or 0
    pinned = db.scalar(
        select(func.count(Note.id)).where(Note.user_id == owner.id, Note.is_pinned.is_(True))
    ) or 0
    return {
        "total_notes": total,
        "pinned_notes": pinned,
        "tags": [{"name": name, "count": n} for name, n in tag_counts(db, owner)],
    }
