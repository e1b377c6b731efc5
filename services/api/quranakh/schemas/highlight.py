"""
Pydantic schemas for highlights.
Catch malformed ranges at the edge before they reach the domain model.
"""
from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.highlight import MistakeCategory


class HighlightCreate(BaseModel):
    """
    A teacher marking a mistake in a student's recitation.

    Word positions are optional; without them the highlight covers whole ayahs.
    """
    student_id: str = Field(..., min_length=1, description="Student the highlight belongs to")
    teacher_id: Optional[str] = Field(None, description="Teacher who marked it")
    school_id: Optional[str] = Field(None, description="Owning school")

    surah: int = Field(..., ge=1, le=114, description="Surah number")
    ayah_start: int = Field(..., ge=1, description="First ayah")
    ayah_end: int = Field(..., ge=1, description="Last ayah (inclusive)")
    word_start: Optional[int] = Field(None, ge=0, description="First word within ayah_start")
    word_end: Optional[int] = Field(None, ge=0, description="Last word within ayah_end")
    page_number: Optional[int] = Field(None, ge=1, description="Mushaf page (1-based)")

    color: MistakeCategory = Field(..., description="Mistake category")
    note: Optional[str] = Field(None, max_length=2000)
    audio_url: Optional[str] = Field(None, max_length=1000)
    created_by: Optional[str] = Field(None, description="User id of creator")

    @model_validator(mode="after")
    def validate_range(self) -> "HighlightCreate":
        if self.ayah_end < self.ayah_start:
            raise ValueError(
                f"ayah_end ({self.ayah_end}) must not be before ayah_start ({self.ayah_start})"
            )
        if (self.word_start is None) != (self.word_end is None):
            raise ValueError("word_start and word_end must be given together")
        if (
            self.word_start is not None
            and self.ayah_start == self.ayah_end
            and self.word_end < self.word_start
        ):
            raise ValueError("word_end must not be before word_start")
        return self


class HighlightComplete(BaseModel):
    """Body for PUT /highlights/{id}/complete."""
    resolved_by: Optional[str] = Field(None, description="User id marking it fixed")
    school_id: Optional[str] = None


class HighlightOut(BaseModel):
    highlight_id: str
    student_id: str
    teacher_id: Optional[str] = None
    school_id: Optional[str] = None
    surah: int
    ayah_start: int
    ayah_end: int
    word_start: Optional[int] = None
    word_end: Optional[int] = None
    page_number: Optional[int] = None
    color: str
    previous_color: Optional[str] = None
    display_color: str
    is_resolved: bool
    note: Optional[str] = None
    audio_url: Optional[str] = None
    resolved_at: Optional[str] = None
    resolved_by: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None


class PageProgressOut(BaseModel):
    page_number: int
    is_complete: bool
    completed: int
    total: int
    percent: float


class MistakeCountsOut(BaseModel):
    student_id: str
    counts: Dict[str, int]
    total_open: int
