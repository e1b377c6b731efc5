"""
Pydantic schemas for API request/response validation.
"""
from typing import Optional

from pydantic import BaseModel

from .annotation import ContainerDims, PenAnnotationLoadOut, PenAnnotationSave, SketchIn, StrokeIn
from .highlight import (
    HighlightComplete,
    HighlightCreate,
    HighlightOut,
    MistakeCountsOut,
    PageProgressOut,
)
from .note import NoteCreate, NoteOut


# ============ Health Check ============


class HealthCheck(BaseModel):
    """Health check response."""
    ok: bool = True
    backend: Optional[str] = None


# Re-export all
__all__ = [
    "ContainerDims",
    "PenAnnotationLoadOut",
    "PenAnnotationSave",
    "SketchIn",
    "StrokeIn",
    "HighlightComplete",
    "HighlightCreate",
    "HighlightOut",
    "MistakeCountsOut",
    "PageProgressOut",
    "NoteCreate",
    "NoteOut",
    "HealthCheck",
]
