# services/api/quranakh/schemas/note.py
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class NoteCreate(BaseModel):
    """Text or voice comment on a highlight, optionally replying to another note."""
    author_id: str = Field(..., min_length=1)
    author_role: Optional[str] = None
    type: Literal["text", "audio"] = "text"
    text: Optional[str] = Field(None, max_length=5000)
    audio_url: Optional[str] = Field(None, max_length=1000)
    parent_note_id: Optional[str] = None
    visible_to_parent: bool = True
    school_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_content(self) -> "NoteCreate":
        if self.type == "text" and not (self.text or "").strip():
            raise ValueError("Text content required for text notes")
        if self.type == "audio" and not self.audio_url:
            raise ValueError("Audio URL required for audio notes")
        return self


class NoteOut(BaseModel):
    note_id: str
    highlight_id: str
    author_id: str
    author_role: Optional[str] = None
    kind: str
    text: Optional[str] = None
    audio_url: Optional[str] = None
    parent_note_id: Optional[str] = None
    visible_to_parent: bool = True
    can_delete_until: Optional[str] = None
    created_at: Optional[str] = None
    seen_at: Optional[str] = None
    seen_by: Optional[str] = None
