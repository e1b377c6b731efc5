"""
Text and voice notes attached to highlights.
"""
from __future__ import annotations

from datetime import datetime, timezone
from logging import getLogger
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..adapters.base import StorageAdapter
from ..core.errors import NoteNotDeletable
from ..core.validation import coerce_role, ensure_same_school
from ..models import HighlightNote, build_thread, check_deletable, seen_updates, visible_to
from ..models.services import NoteService
from ..schemas import NoteCreate, NoteOut
from ..settings import Settings, get_settings

logger = getLogger(__name__)
router = APIRouter(prefix="/highlights", tags=["notes"])


def get_storage() -> StorageAdapter:
    """Dependency to get storage adapter from app state."""
    from ..main import get_storage_adapter
    return get_storage_adapter()


@router.post("/{highlight_id}/notes", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
async def add_note(
    highlight_id: str,
    body: NoteCreate,
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    highlight = storage.get_highlight(highlight_id)
    if not highlight:
        raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")
    ensure_same_school(highlight, body.school_id)

    if body.parent_note_id:
        parent = storage.get_note(body.parent_note_id)
        if not parent or parent.get("highlight_id") != highlight_id:
            raise HTTPException(
                status_code=400,
                detail=f"Parent note {body.parent_note_id} does not belong to highlight {highlight_id}",
            )

    note = HighlightNote.create(
        highlight_id=highlight_id,
        author_id=body.author_id,
        author_role=coerce_role(body.author_role),
        kind=body.type,
        text=body.text,
        audio_url=body.audio_url,
        parent_note_id=body.parent_note_id,
        visible_to_parent=body.visible_to_parent,
        now=datetime.now(timezone.utc),
        delete_window_minutes=settings.voice_note_delete_window_minutes,
    )
    storage.create_note(note.to_storage())
    logger.info(f"Note {note.note_id} ({note.kind}) added to highlight {highlight_id}")
    return note.to_storage()


@router.get("/{highlight_id}/notes")
async def list_notes(
    highlight_id: str,
    thread: bool = Query(False, description="Nest replies under their parent note"),
    viewer_role: Optional[str] = Query(None, description="Role of the reader; parents only see shared notes"),
    storage: StorageAdapter = Depends(get_storage),
):
    if not storage.get_highlight(highlight_id):
        raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")

    role = coerce_role(viewer_role) if viewer_role else None
    notes = visible_to(NoteService.from_storage_rows(storage.list_notes(highlight_id)), role)
    if thread:
        return build_thread(notes)
    return [n.to_storage() for n in notes]


@router.put("/{highlight_id}/notes/{note_id}/mark-seen")
async def mark_note_seen(
    highlight_id: str,
    note_id: str,
    viewer_id: str = Query(..., min_length=1, description="User who opened the note"),
    school_id: Optional[str] = Query(None),
    storage: StorageAdapter = Depends(get_storage),
):
    """
    Read receipt. Idempotent: the author opening their own note, or a note
    that was already seen, leaves the row unchanged.
    """
    row = storage.get_note(note_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Note {note_id} not found")
    if row.get("highlight_id") != highlight_id:
        raise HTTPException(
            status_code=400,
            detail=f"Note {note_id} does not belong to highlight {highlight_id}",
        )

    note = HighlightNote.from_storage(row)
    if note.author_id == viewer_id:
        return {"success": True, "message": "Cannot mark own message as seen", "note": note.to_storage()}
    if note.seen_at and note.seen_by:
        return {"success": True, "message": "Note already marked as seen", "note": note.to_storage()}

    highlight = storage.get_highlight(highlight_id)
    if not highlight:
        raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")
    ensure_same_school(highlight, school_id)

    updated = storage.update_note(note_id, seen_updates(note, viewer_id, datetime.now(timezone.utc)))
    logger.info(f"Note {note_id} seen by {viewer_id}")
    return {
        "success": True,
        "message": "Note marked as seen",
        "note": HighlightNote.from_storage(updated).to_storage(),
    }


@router.delete("/notes/{note_id}")
async def delete_note(
    note_id: str,
    actor_id: Optional[str] = Query(None, description="User asking for the deletion"),
    storage: StorageAdapter = Depends(get_storage),
):
    """Authors may take back their own voice notes within the deletion window."""
    row = storage.get_note(note_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Note {note_id} not found")

    note = HighlightNote.from_storage(row)
    try:
        check_deletable(note, actor_id, datetime.now(timezone.utc))
    except NoteNotDeletable as e:
        raise HTTPException(status_code=403, detail=str(e))

    storage.delete_note(note_id)
    logger.info(f"Note {note_id} deleted by {actor_id}")
    return {"status": "deleted", "note_id": note_id}
