"""
Pen annotation endpoints.

Drawings arrive in screen pixels for the teacher's current surface, are
stored in relative page coordinates, and are scaled back to pixels for
whoever loads them at whatever size their surface is.
"""
from __future__ import annotations

from datetime import datetime, timezone
from logging import getLogger
from typing import Any, Dict, Optional, Tuple

from cachetools import TTLCache
from fastapi import APIRouter, Depends, Query

from ..adapters.base import StorageAdapter
from ..core.validation import validate_page_number, validate_surface_dims
from ..models import combine_sketches, pixel_payload
from ..models.services import AnnotationService
from ..schemas import PenAnnotationLoadOut, PenAnnotationSave
from ..settings import get_settings

logger = getLogger(__name__)
router = APIRouter(prefix="/pen-annotations", tags=["pen-annotations"])

# (student_id, page_number, script_id, width, height) -> load response
_load_cache: Optional[TTLCache] = None


def get_storage() -> StorageAdapter:
    """Dependency to get storage adapter from app state."""
    from ..main import get_storage_adapter
    return get_storage_adapter()


def _cache() -> TTLCache:
    global _load_cache
    if _load_cache is None:
        settings = get_settings()
        _load_cache = TTLCache(
            maxsize=settings.annotation_cache_size,
            ttl=settings.annotation_cache_ttl_seconds,
        )
    return _load_cache


def _invalidate_page(student_id: str, page_number: int, script_id: str) -> None:
    cache = _cache()
    page = (student_id, page_number, script_id)
    for key in [k for k in list(cache.keys()) if k[:3] == page]:
        cache.pop(key, None)


def clear_annotation_cache() -> None:
    _cache().clear()


@router.post("/save")
async def save_pen_annotation(
    body: PenAnnotationSave,
    storage: StorageAdapter = Depends(get_storage),
) -> Dict[str, Any]:
    dims = validate_surface_dims(body.container_dimensions.width, body.container_dimensions.height)

    row, valid = AnnotationService.build_row(
        student_id=body.student_id,
        teacher_id=body.teacher_id,
        page_number=body.page_number,
        script_id=body.script_id,
        drawing=body.drawing_dict(),
        dims=dims,
        saved_at=datetime.now(timezone.utc).isoformat(),
    )
    if not valid:
        logger.warning(
            f"Saving pen annotation with out-of-range points: student={body.student_id} "
            f"page={body.page_number} surface={dims.width}x{dims.height}"
        )

    stored = storage.upsert_pen_annotation(row)
    _invalidate_page(body.student_id, body.page_number, body.script_id)

    logger.info(
        f"Pen annotation {stored.get('annotation_id')} saved: student={body.student_id} "
        f"teacher={body.teacher_id} page={body.page_number} strokes={len(row['drawing_data'].get('paths') or [])}"
    )
    return {"success": True, "valid": valid, "annotation": stored}


@router.get("/load", response_model=PenAnnotationLoadOut)
async def load_pen_annotations(
    student_id: str = Query(..., min_length=1),
    page_number: int = Query(...),
    script_id: str = Query(..., min_length=1),
    width: float = Query(..., description="Current surface width in pixels"),
    height: float = Query(..., description="Current surface height in pixels"),
    storage: StorageAdapter = Depends(get_storage),
):
    """
    Every teacher's drawing for one page, scaled to the caller's surface.
    `combined_paths` is the concatenation of all strokes, newest annotation first.
    """
    validate_page_number(page_number)
    dims = validate_surface_dims(width, height)

    key: Tuple[Any, ...] = (student_id, page_number, script_id, dims.width, dims.height)
    cache = _cache()
    if key in cache:
        return cache[key]

    rows = storage.list_pen_annotations(student_id, page_number, script_id)
    drawings = [AnnotationService.drawing_from_row(r) for r in rows]

    annotations = []
    for row, drawing in zip(rows, drawings):
        item = dict(row)
        item["drawing_data"] = pixel_payload(drawing, dims)
        annotations.append(item)

    result = {
        "annotations": annotations,
        "combined_paths": combine_sketches(drawings, dims),
        "count": len(annotations),
    }
    cache[key] = result
    return result
