from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from notes_api import notes as note_store
from notes_api.deps import get_current_user, get_db
from notes_api.schemas import (
    MessageOut,
    NoteCreate,
    NoteEnvelope,
    NoteListOut,
    NoteMessageOut,
    NoteOut,
    NoteStatsOut,
    NoteUpdate,
    Pagination,
    SortField,
    SortOrder,
)
from notes_database.models import User

router = APIRouter(prefix="/notes", tags=["Notes"])


# PUBLIC_INTERFACE
@router.get("/", response_model=NoteListOut, summary="List all user notes")
def list_notes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search term for note title, content or tags"),
    tag: Optional[str] = Query(None, description="Only notes carrying this exact tag"),
    sort_by: SortField = Query("updatedAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    pinned_first: bool = Query(True, alias="pinnedFirst"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get the authenticated user's notes, one page at a time.
    Supports search, tag filter and sorting; pinned notes come first unless
    pinnedFirst=false.
    """
    result = note_store.list_notes(
        db,
        current_user,
        page=page,
        limit=limit,
        search=search,
        tag=tag,
        sort_by=sort_by,
        sort_order=sort_order,
        pinned_first=pinned_first,
    )
    return NoteListOut(
        notes=[NoteOut.model_validate(n) for n in result.items],
        pagination=Pagination(current=result.page, pages=result.pages, total=result.total, limit=result.limit),
    )


# PUBLIC_INTERFACE
@router.get("/stats/overview", response_model=NoteStatsOut, summary="Notes statistics")
def notes_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Total and pinned note counts plus the ten most used tags.
    """
    return NoteStatsOut(stats=note_store.note_stats(db, current_user))


# PUBLIC_INTERFACE
@router.get("/{note_id}", response_model=NoteEnvelope, summary="Get a single note")
def get_note(note_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Retrieve a single note belonging to the authenticated user.
    """
    return NoteEnvelope(note=NoteOut.model_validate(note_store.get_note(db, current_user, note_id)))


# PUBLIC_INTERFACE
@router.post("/", response_model=NoteMessageOut, status_code=status.HTTP_201_CREATED, summary="Create a new note")
def create_note(note: NoteCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Create a new note for the authenticated user.
    """
    note_obj = note_store.create_note(
        db,
        current_user,
        title=note.title,
        content=note.content,
        tags=note.tags,
        background_color=note.background_color,
    )
    return NoteMessageOut(message="Note created successfully", note=NoteOut.model_validate(note_obj))


# PUBLIC_INTERFACE
@router.put("/{note_id}", response_model=NoteMessageOut, summary="Update a note")
def update_note(
    note_id: int,
    note_update: NoteUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update a note belonging to the authenticated user; omitted fields are kept.
    """
    note = note_store.update_note(db, current_user, note_id, **note_update.model_dump(exclude_unset=True))
    return NoteMessageOut(message="Note updated successfully", note=NoteOut.model_validate(note))


# PUBLIC_INTERFACE
@router.delete("/{note_id}", response_model=MessageOut, summary="Delete a note")
def delete_note(note_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    Delete a note belonging to the authenticated user.
    """
    note_store.delete_note(db, current_user, note_id)
    return MessageOut(message="Note deleted successfully")


# PUBLIC_INTERFACE
@router.patch("/{note_id}/pin", response_model=NoteMessageOut, summary="Toggle pin status")
def toggle_pin(note_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    note = note_store.toggle_pin(db, current_user, note_id)
    state = "pinned" if note.is_pinned else "unpinned"
    return NoteMessageOut(message=f"Note {state} successfully", note=NoteOut.model_validate(note))
