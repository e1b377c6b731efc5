# services/api/quranakh/models/services.py

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.coordinates import SurfaceDims, validate_coordinates
from .highlight import Highlight
from .note import HighlightNote
from .sketch import parse_sketch, relative_payload


class HighlightService:
    """
    Rules that apply to a student's whole set of highlights:
      - rows from storage -> validated domain objects
      - domain objects -> API payload
    """

    @staticmethod
    def from_storage_rows(rows: Iterable[Dict[str, Any]], resolved_color: str) -> List[Highlight]:
        return [Highlight.from_storage(r, resolved_color) for r in rows]

    @staticmethod
    def to_api_payload(highlights: Iterable[Highlight], resolved_color: str) -> List[dict]:
        return [h.to_api(resolved_color) for h in highlights]


class NoteService:

    @staticmethod
    def from_storage_rows(rows: Iterable[Dict[str, Any]]) -> List[HighlightNote]:
        return [HighlightNote.from_storage(r) for r in rows]


class AnnotationService:
    """
    Pen annotation rows: one stored drawing per
    (student, teacher, page, script), kept in relative coordinates.
    """

    @staticmethod
    def drawing_from_row(row: Dict[str, Any]) -> Any:
        """drawing_data may come back as a JSON string (Sheets) or a dict."""
        data = row.get("drawing_data")
        if isinstance(data, str):
            if not data.strip():
                return None
            return json.loads(data)
        return data

    @staticmethod
    def build_row(
        *,
        student_id: str,
        teacher_id: str,
        page_number: int,
        script_id: str,
        drawing: Dict[str, Any],
        dims: SurfaceDims,
        saved_at: str,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Convert the drawing to relative space and build the row to upsert.
        Returns (row, valid); `valid` is False when some point fell outside
        the page. The row is meant to be stored either way.
        """
        stored = dict(relative_payload(drawing, dims))
        stored["timestamp"] = saved_at
        valid = validate_coordinates(parse_sketch(stored), expect_relative=True)

        strokes = stored.get("paths") or []
        last: Optional[Dict[str, Any]] = strokes[-1] if strokes else None
        row = {
            "student_id": student_id,
            "teacher_id": teacher_id,
            "page_number": page_number,
            "script_id": script_id,
            "drawing_data": stored,
            "stroke_color": (last or {}).get("strokeColor") or "#FF0000",
            "stroke_width": (last or {}).get("strokeWidth") or 2,
        }
        return row, valid
