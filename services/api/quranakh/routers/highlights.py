"""
Highlight (mistake overlay) endpoints.
"""
from __future__ import annotations

from datetime import datetime, timezone
from logging import getLogger
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ..adapters.base import StorageAdapter
from ..core.errors import AlreadyResolved, InvalidCategory, NotResolved
from ..core.validation import ensure_same_school, validate_page_number
from ..models import (
    Highlight,
    assignment_draft_for_highlight,
    mistake_counts,
    page_progress,
    resolve,
    unresolve,
)
from ..models.assignment import STATUS_ASSIGNED, STATUS_COMPLETED
from ..models.highlight import parse_category
from ..models.services import HighlightService
from ..schemas import (
    HighlightComplete,
    HighlightCreate,
    HighlightOut,
    MistakeCountsOut,
    PageProgressOut,
)
from ..settings import Settings, get_settings

logger = getLogger(__name__)
router = APIRouter(prefix="/highlights", tags=["highlights"])


def get_storage() -> StorageAdapter:
    """Dependency to get storage adapter from app state."""
    from ..main import get_storage_adapter
    return get_storage_adapter()


# ---------- Helpers ----------

def _load(storage: StorageAdapter, highlight_id: str, settings: Settings) -> Highlight:
    row = storage.get_highlight(highlight_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")
    return Highlight.from_storage(row, settings.resolved_highlight_color)


def _color_filter(color: Optional[str], resolved_color: str) -> Optional[str]:
    if not color:
        return None
    c = color.strip().lower()
    if c == resolved_color:
        return c
    try:
        return parse_category(c).value
    except InvalidCategory as e:
        raise HTTPException(status_code=400, detail=str(e))


def _set_assignment_status(storage: StorageAdapter, highlight_id: str, new_status: str) -> int:
    changed = 0
    for a in storage.list_assignments(highlight_id=highlight_id):
        if a.get("status") == new_status:
            continue
        storage.update_assignment(a["assignment_id"], {"status": new_status})
        changed += 1
    return changed


# ---------- Endpoints ----------

@router.post("", response_model=HighlightOut, status_code=status.HTTP_201_CREATED)
async def create_highlight(
    body: HighlightCreate,
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Mark a mistake. An assignment for the student is opened alongside
    unless AUTO_CREATE_ASSIGNMENTS is off.
    """
    now = datetime.now(timezone.utc)
    data = body.model_dump(mode="json")
    data["created_at"] = now.isoformat()

    try:
        h = Highlight.from_api(data, settings.resolved_highlight_color)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.create_highlight(h.to_storage())
    logger.info(
        f"Highlight {h.highlight_id} created: student={h.student_id} "
        f"surah={h.surah} ayah={h.ayah_start}-{h.ayah_end} category={h.color}"
    )

    if settings.auto_create_assignments:
        draft = assignment_draft_for_highlight(h, now)
        try:
            storage.create_assignment(draft)
            logger.info(f"Assignment {draft['assignment_id']} opened for highlight {h.highlight_id}")
        except Exception as e:
            # the highlight is already stored; a missing assignment is recoverable
            logger.error(f"Failed to create assignment for highlight {h.highlight_id}: {e}")

    return h.to_api(settings.resolved_highlight_color)


@router.get("", response_model=List[HighlightOut])
async def list_highlights(
    student_id: str = Query(..., min_length=1),
    surah: Optional[int] = Query(None, ge=1, le=114),
    page_number: Optional[int] = Query(None),
    color: Optional[str] = Query(None, description="Mistake category or the resolved color"),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    validate_page_number(page_number)
    resolved_color = settings.resolved_highlight_color
    wanted = _color_filter(color, resolved_color)
    # matched on the normalized color; legacy color names count as their category
    rows = storage.list_highlights(student_id, surah=surah, page_number=page_number)
    highlights = [
        h for h in HighlightService.from_storage_rows(rows, resolved_color)
        if wanted is None or h.color == wanted
    ]
    return HighlightService.to_api_payload(highlights, resolved_color)


@router.get("/progress", response_model=PageProgressOut)
async def get_page_progress(
    student_id: str = Query(..., min_length=1),
    page_number: int = Query(...),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """A page is complete once every highlight on it is resolved (and there is at least one)."""
    validate_page_number(page_number)
    resolved_color = settings.resolved_highlight_color
    rows = storage.list_highlights(student_id, page_number=page_number)
    highlights = HighlightService.from_storage_rows(rows, resolved_color)
    return page_progress(highlights, page_number, resolved_color).to_api()


@router.get("/mistakes", response_model=MistakeCountsOut)
async def get_mistake_counts(
    student_id: str = Query(..., min_length=1),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    resolved_color = settings.resolved_highlight_color
    highlights = HighlightService.from_storage_rows(
        storage.list_highlights(student_id), resolved_color
    )
    counts = mistake_counts(highlights, resolved_color)
    return {"student_id": student_id, "counts": counts, "total_open": sum(counts.values())}


@router.get("/{highlight_id}", response_model=HighlightOut)
async def get_highlight(
    highlight_id: str,
    school_id: Optional[str] = Query(None),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    h = _load(storage, highlight_id, settings)
    ensure_same_school(h.to_storage(), school_id)
    return h.to_api(settings.resolved_highlight_color)


@router.delete("/{highlight_id}")
async def delete_highlight(
    highlight_id: str,
    school_id: Optional[str] = Query(None),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    h = _load(storage, highlight_id, settings)
    ensure_same_school(h.to_storage(), school_id)
    storage.delete_highlight(highlight_id)
    logger.info(f"Highlight {highlight_id} deleted")
    return {"status": "deleted", "highlight_id": highlight_id}


@router.put("/{highlight_id}/complete", response_model=HighlightOut)
async def complete_highlight(
    highlight_id: str,
    body: Optional[HighlightComplete] = Body(None),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Student fixed the mistake: the highlight turns into the resolved color
    and every assignment opened for it is marked completed.
    """
    body = body or HighlightComplete()
    resolved_color = settings.resolved_highlight_color
    h = _load(storage, highlight_id, settings)
    ensure_same_school(h.to_storage(), body.school_id)

    try:
        done = resolve(h, resolved_color, body.resolved_by, datetime.now(timezone.utc))
    except AlreadyResolved as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidCategory as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.update_highlight(
        highlight_id,
        {
            "color": done.color,
            "previous_color": done.previous_color,
            "resolved_at": done.resolved_at,
            "resolved_by": done.resolved_by,
        },
    )
    completed = _set_assignment_status(storage, highlight_id, STATUS_COMPLETED)
    logger.info(
        f"Highlight {highlight_id} resolved ({done.previous_color} -> {done.color}), "
        f"{completed} assignment(s) completed"
    )
    return done.to_api(resolved_color)


@router.put("/{highlight_id}/restore", response_model=HighlightOut)
async def restore_highlight(
    highlight_id: str,
    school_id: Optional[str] = Query(None),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Undo a completion: back to the original category, assignments reopened."""
    resolved_color = settings.resolved_highlight_color
    h = _load(storage, highlight_id, settings)
    ensure_same_school(h.to_storage(), school_id)

    try:
        reopened = unresolve(h, resolved_color)
    except NotResolved as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidCategory as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.update_highlight(
        highlight_id,
        {
            "color": reopened.color,
            "previous_color": None,
            "resolved_at": None,
            "resolved_by": None,
        },
    )
    _set_assignment_status(storage, highlight_id, STATUS_ASSIGNED)
    logger.info(f"Highlight {highlight_id} restored to {reopened.color}")
    return reopened.to_api(resolved_color)
