"""
JSON file storage adapter for QuranAkh.
Simple file-based storage for quick demos and testing.
Not production-ready (no proper locking, not suitable for concurrent access).
"""
import json
import uuid
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from pathlib import Path
from fastapi import HTTPException


TABLES = ("highlights", "highlight_notes", "assignments", "pen_annotations")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonAdapter:
    """
    JSON file-based storage adapter.
    Stores each table in its own JSON file under the data directory.
    Uses atomic file operations for basic consistency.
    """

    def __init__(self, data_dir: str = "data/json"):
        """
        Initialize the JSON adapter.

        Args:
            data_dir: Directory to store JSON files
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.files = {t: self.data_dir / f"{t}.json" for t in TABLES}

        # Initialize files if they don't exist
        for file in self.files.values():
            if not file.exists():
                self._write_file(file, [])

    def _read_file(self, filepath: Path) -> List[Dict[str, Any]]:
        """Read and parse a JSON file."""
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return []

    def _write_file(self, filepath: Path, data: List[Dict[str, Any]]) -> None:
        """Write data to a JSON file atomically."""
        # Write to temporary file first
        tmp_file = filepath.with_suffix(".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        # Atomic rename
        tmp_file.replace(filepath)

    # ---------- generic table helpers ----------

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        return self._read_file(self.files[table])

    def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._rows(table)
        rows.append(dict(row))
        self._write_file(self.files[table], rows)
        return dict(row)

    def _find(self, table: str, key: str, value: str) -> Optional[Dict[str, Any]]:
        return next((r for r in self._rows(table) if r.get(key) == value), None)

    def _update(self, table: str, key: str, value: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._rows(table)
        row = next((r for r in rows if r.get(key) == value), None)
        if row is None:
            raise HTTPException(status_code=404, detail=f"{table} row {value} not found")
        row.update({k: v for k, v in updates.items() if k != key})
        self._write_file(self.files[table], rows)
        return dict(row)

    def _delete_where(self, table: str, key: str, value: str) -> int:
        rows = self._rows(table)
        kept = [r for r in rows if r.get(key) != value]
        if len(kept) != len(rows):
            self._write_file(self.files[table], kept)
        return len(rows) - len(kept)

    # ========== Highlights ==========

    def create_highlight(self, row: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(row)
        data.setdefault("created_at", _now_iso())
        return self._insert("highlights", data)

    def get_highlight(self, highlight_id: str) -> Optional[Dict[str, Any]]:
        return self._find("highlights", "highlight_id", highlight_id)

    def list_highlights(
        self,
        student_id: str,
        surah: Optional[int] = None,
        page_number: Optional[int] = None,
        color: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        result = [
            h for h in self._rows("highlights")
            if h.get("student_id") == student_id
            and (surah is None or h.get("surah") == surah)
            and (page_number is None or h.get("page_number") == page_number)
            and (color is None or h.get("color") == color)
        ]
        result.sort(key=lambda h: h.get("created_at") or "", reverse=True)
        return result

    def update_highlight(self, highlight_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update("highlights", "highlight_id", highlight_id, updates)

    def delete_highlight(self, highlight_id: str) -> None:
        if not self._delete_where("highlights", "highlight_id", highlight_id):
            raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")
        self._delete_where("highlight_notes", "highlight_id", highlight_id)

    # ========== Highlight notes ==========

    def create_note(self, row: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(row)
        data.setdefault("created_at", _now_iso())
        return self._insert("highlight_notes", data)

    def get_note(self, note_id: str) -> Optional[Dict[str, Any]]:
        return self._find("highlight_notes", "note_id", note_id)

    def list_notes(self, highlight_id: str) -> List[Dict[str, Any]]:
        notes = [n for n in self._rows("highlight_notes") if n.get("highlight_id") == highlight_id]
        notes.sort(key=lambda n: n.get("created_at") or "")
        return notes

    def update_note(self, note_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update("highlight_notes", "note_id", note_id, updates)

    def delete_note(self, note_id: str) -> None:
        if not self._delete_where("highlight_notes", "note_id", note_id):
            raise HTTPException(status_code=404, detail=f"Note {note_id} not found")

    # ========== Assignments ==========

    def create_assignment(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("assignments", row)

    def list_assignments(
        self,
        student_id: Optional[str] = None,
        highlight_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        result = [
            a for a in self._rows("assignments")
            if (student_id is None or a.get("student_id") == student_id)
            and (highlight_id is None or a.get("highlight_id") == highlight_id)
        ]
        result.sort(key=lambda a: a.get("created_at") or "", reverse=True)
        return result

    def update_assignment(self, assignment_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(updates)
        data.setdefault("updated_at", _now_iso())
        return self._update("assignments", "assignment_id", assignment_id, data)

    # ========== Pen annotations ==========

    def upsert_pen_annotation(self, row: Dict[str, Any]) -> Dict[str, Any]:
        now = _now_iso()
        rows = self._rows("pen_annotations")
        existing = next(
            (
                r for r in rows
                if r.get("student_id") == row["student_id"]
                and r.get("teacher_id") == row["teacher_id"]
                and r.get("page_number") == row["page_number"]
                and r.get("script_id") == row["script_id"]
            ),
            None,
        )
        if existing is not None:
            existing.update(
                drawing_data=row["drawing_data"],
                stroke_color=row.get("stroke_color"),
                stroke_width=row.get("stroke_width"),
                updated_at=now,
            )
            stored = existing
        else:
            stored = dict(row)
            stored["annotation_id"] = str(uuid.uuid4())
            stored["created_at"] = now
            stored["updated_at"] = now
            rows.append(stored)

        self._write_file(self.files["pen_annotations"], rows)
        return dict(stored)

    def list_pen_annotations(
        self,
        student_id: str,
        page_number: int,
        script_id: str,
    ) -> List[Dict[str, Any]]:
        result = [
            r for r in self._rows("pen_annotations")
            if r.get("student_id") == student_id
            and r.get("page_number") == page_number
            and r.get("script_id") == script_id
        ]
        result.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return result
