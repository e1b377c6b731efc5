# services/api/quranakh/schemas/annotation.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PointIn(BaseModel):
    """A pixel point. Extra per-point fields are kept as sent."""
    model_config = ConfigDict(extra="allow", allow_inf_nan=False)

    x: float
    y: float


class StrokeIn(BaseModel):
    """
    One stroke as exported by the drawing surface. Presentation fields
    (strokeColor, strokeWidth, drawMode, ...) are passed through as-is.
    """
    model_config = ConfigDict(extra="allow")

    paths: List[PointIn] = Field(default_factory=list, description="Points in drawing order")


class SketchIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    paths: List[StrokeIn] = Field(default_factory=list)
    version: Optional[str] = None


class ContainerDims(BaseModel):
    """Size of the drawing surface at save time, in pixels."""
    model_config = ConfigDict(allow_inf_nan=False)

    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


class PenAnnotationSave(BaseModel):
    """
    Body for POST /pen-annotations/save.

    `drawing` is in screen pixels for `container_dimensions`; the server
    stores it in relative coordinates.
    """
    student_id: str = Field(..., min_length=1)
    teacher_id: str = Field(..., min_length=1)
    page_number: int = Field(..., ge=1)
    script_id: str = Field(..., min_length=1)
    drawing: SketchIn
    container_dimensions: ContainerDims

    @field_validator("drawing")
    @classmethod
    def validate_not_relative(cls, v: SketchIn) -> SketchIn:
        if v.version == "2.0":
            raise ValueError("drawing must be in pixel coordinates (omit version)")
        return v

    def drawing_dict(self) -> Dict[str, Any]:
        data = self.drawing.model_dump()
        if data.get("version") is None:
            data.pop("version", None)
        return data


class PenAnnotationLoadOut(BaseModel):
    annotations: List[Dict[str, Any]]
    combined_paths: List[Dict[str, Any]]
    count: int
