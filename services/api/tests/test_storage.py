"""
Storage adapter behaviour, run against every backend
(JSON files, SQLite, Google Sheets over an in-memory spreadsheet).

Run with: pytest tests/test_storage.py -v
"""
import pytest
from fastapi import HTTPException

from quranakh.models.highlight import Highlight


def _highlight_row(highlight_id, created_at, **kw):
    h = Highlight(
        highlight_id=highlight_id,
        student_id=kw.pop("student_id", "s-1"),
        teacher_id="t-1",
        surah=kw.pop("surah", 2),
        ayah_start=5,
        ayah_end=7,
        page_number=kw.pop("page_number", 3),
        color=kw.pop("color", "tajweed"),
        created_at=created_at,
        **kw,
    )
    return h.to_storage()


def _note_row(note_id, highlight_id, created_at, parent=None):
    return {
        "note_id": note_id,
        "highlight_id": highlight_id,
        "author_id": "t-1",
        "author_role": "teacher",
        "kind": "text",
        "text": f"note {note_id}",
        "audio_url": None,
        "parent_note_id": parent,
        "visible_to_parent": True,
        "can_delete_until": None,
        "created_at": created_at,
    }


def _pen_row(teacher_id="t-1", x=0.25, page_number=3):
    return {
        "student_id": "s-1",
        "teacher_id": teacher_id,
        "page_number": page_number,
        "script_id": "uthmani-15",
        "drawing_data": {
            "version": "2.0",
            "containerDimensions": {"width": 1000, "height": 800},
            "paths": [{"strokeColor": "#dc2626", "strokeWidth": 4, "paths": [{"x": x, "y": 0.5}]}],
        },
        "stroke_color": "#dc2626",
        "stroke_width": 4,
    }


class TestHighlights:

    def test_create_and_get(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:00+00:00", word_start=1, word_end=2))
        row = storage.get_highlight("h-1")
        assert row["student_id"] == "s-1"
        assert row["surah"] == 2
        assert row["word_start"] == 1
        assert row["color"] == "tajweed"
        assert not row.get("previous_color")
        assert Highlight.from_storage(row).highlight_id == "h-1"

    def test_get_missing(self, storage):
        assert storage.get_highlight("nope") is None

    def test_list_newest_first_and_filters(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:01+00:00"))
        storage.create_highlight(_highlight_row("h-2", "2025-01-01T00:00:03+00:00", color="recap", page_number=4))
        storage.create_highlight(_highlight_row("h-3", "2025-01-01T00:00:02+00:00", surah=3))
        storage.create_highlight(_highlight_row("h-4", "2025-01-01T00:00:04+00:00", student_id="s-2"))

        assert [h["highlight_id"] for h in storage.list_highlights("s-1")] == ["h-2", "h-3", "h-1"]
        assert [h["highlight_id"] for h in storage.list_highlights("s-1", surah=3)] == ["h-3"]
        assert [h["highlight_id"] for h in storage.list_highlights("s-1", page_number=4)] == ["h-2"]
        assert [h["highlight_id"] for h in storage.list_highlights("s-1", color="tajweed")] == ["h-3", "h-1"]
        assert storage.list_highlights("s-9") == []

    def test_update_returns_full_row(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:00+00:00"))
        row = storage.update_highlight(
            "h-1",
            {"color": "gold", "previous_color": "tajweed", "resolved_by": "t-1", "resolved_at": "2025-01-02T00:00:00Z"},
        )
        assert row["color"] == "gold"
        assert row["previous_color"] == "tajweed"
        assert row["surah"] == 2
        assert storage.get_highlight("h-1")["resolved_by"] == "t-1"

        row = storage.update_highlight("h-1", {"color": "tajweed", "previous_color": None, "resolved_by": None})
        assert row["color"] == "tajweed"
        assert not row.get("previous_color")
        assert not row.get("resolved_by")

    def test_update_missing(self, storage):
        with pytest.raises(HTTPException) as exc:
            storage.update_highlight("nope", {"color": "gold"})
        assert exc.value.status_code == 404

    def test_delete_removes_notes(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:00+00:00"))
        storage.create_highlight(_highlight_row("h-2", "2025-01-01T00:00:01+00:00"))
        storage.create_note(_note_row("n-1", "h-1", "2025-01-01T00:01:00+00:00"))
        storage.create_note(_note_row("n-2", "h-2", "2025-01-01T00:01:00+00:00"))

        storage.delete_highlight("h-1")
        assert storage.get_highlight("h-1") is None
        assert storage.list_notes("h-1") == []
        assert [n["note_id"] for n in storage.list_notes("h-2")] == ["n-2"]

        with pytest.raises(HTTPException) as exc:
            storage.delete_highlight("h-1")
        assert exc.value.status_code == 404


class TestNotes:

    def test_oldest_first(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:00+00:00"))
        storage.create_note(_note_row("n-2", "h-1", "2025-01-01T00:02:00+00:00", parent="n-1"))
        storage.create_note(_note_row("n-1", "h-1", "2025-01-01T00:01:00+00:00"))

        notes = storage.list_notes("h-1")
        assert [n["note_id"] for n in notes] == ["n-1", "n-2"]
        assert notes[1]["parent_note_id"] == "n-1"
        assert notes[0]["visible_to_parent"] is True

    def test_get_and_delete(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:00+00:00"))
        storage.create_note(_note_row("n-1", "h-1", "2025-01-01T00:01:00+00:00"))
        assert storage.get_note("n-1")["text"] == "note n-1"

        storage.delete_note("n-1")
        assert storage.get_note("n-1") is None
        with pytest.raises(HTTPException):
            storage.delete_note("n-1")

    def test_update_sets_receipt(self, storage):
        storage.create_highlight(_highlight_row("h-1", "2025-01-01T00:00:00+00:00"))
        storage.create_note(_note_row("n-1", "h-1", "2025-01-01T00:01:00+00:00"))

        row = storage.update_note("n-1", {"seen_at": "2025-01-01T00:05:00+00:00", "seen_by": "s-1"})
        assert row["seen_by"] == "s-1"
        assert row["text"] == "note n-1"
        stored = storage.get_note("n-1")
        assert stored["seen_at"] == "2025-01-01T00:05:00+00:00"
        assert stored["seen_by"] == "s-1"

        with pytest.raises(HTTPException) as exc:
            storage.update_note("nope", {"seen_by": "s-1"})
        assert exc.value.status_code == 404


class TestFreeText:
    """Values are stored as given, even when they look like numbers or formulas."""

    def test_formula_like_text_and_numeric_ids(self, storage):
        storage.create_highlight(_highlight_row(
            "h-1", "2025-01-01T00:00:00+00:00", student_id="007", note="=SUM(A1:A3)",
        ))
        storage.create_note({
            **_note_row("n-1", "h-1", "2025-01-01T00:01:00+00:00"),
            "text": "-2 on the madd, +1 for ghunna",
        })

        rows = storage.list_highlights("007")
        assert [h["highlight_id"] for h in rows] == ["h-1"]
        assert rows[0]["student_id"] == "007"
        assert rows[0]["note"] == "=SUM(A1:A3)"
        assert storage.get_note("n-1")["text"] == "-2 on the madd, +1 for ghunna"


class TestAssignments:

    def _row(self, assignment_id, highlight_id, student_id="s-1", created_at="2025-01-01T00:00:00+00:00"):
        return {
            "assignment_id": assignment_id,
            "highlight_id": highlight_id,
            "student_id": student_id,
            "teacher_id": "t-1",
            "title": "Recap - Surah 1, Ayah 1",
            "description": "Practice recap for full ayah in Surah 1, Ayah 1",
            "status": "assigned",
            "due_at": "2025-01-08T00:00:00+00:00",
            "created_at": created_at,
            "updated_at": created_at,
        }

    def test_list_and_update(self, storage):
        storage.create_assignment(self._row("a-1", "h-1"))
        storage.create_assignment(self._row("a-2", "h-2", created_at="2025-01-02T00:00:00+00:00"))
        storage.create_assignment(self._row("a-3", "h-3", student_id="s-2"))

        assert [a["assignment_id"] for a in storage.list_assignments(student_id="s-1")] == ["a-2", "a-1"]
        assert [a["assignment_id"] for a in storage.list_assignments(highlight_id="h-3")] == ["a-3"]

        row = storage.update_assignment("a-1", {"status": "completed"})
        assert row["status"] == "completed"
        assert row["updated_at"] != "2025-01-01T00:00:00+00:00"
        assert storage.list_assignments(highlight_id="h-1")[0]["status"] == "completed"

    def test_update_missing(self, storage):
        with pytest.raises(HTTPException) as exc:
            storage.update_assignment("nope", {"status": "completed"})
        assert exc.value.status_code == 404


class TestPenAnnotations:

    def test_upsert_replaces_same_key(self, storage):
        first = storage.upsert_pen_annotation(_pen_row(x=0.25))
        second = storage.upsert_pen_annotation(_pen_row(x=0.75))
        assert second["annotation_id"] == first["annotation_id"]

        rows = storage.list_pen_annotations("s-1", 3, "uthmani-15")
        assert len(rows) == 1
        assert rows[0]["drawing_data"]["version"] == "2.0"
        assert rows[0]["drawing_data"]["paths"][0]["paths"][0]["x"] == 0.75
        assert rows[0]["stroke_width"] == 4

    def test_one_row_per_teacher(self, storage):
        storage.upsert_pen_annotation(_pen_row(teacher_id="t-1"))
        storage.upsert_pen_annotation(_pen_row(teacher_id="t-2"))
        storage.upsert_pen_annotation(_pen_row(teacher_id="t-1", page_number=4))

        rows = storage.list_pen_annotations("s-1", 3, "uthmani-15")
        assert sorted(r["teacher_id"] for r in rows) == ["t-1", "t-2"]
        assert all(r["annotation_id"] and r["created_at"] and r["updated_at"] for r in rows)
        assert storage.list_pen_annotations("s-1", 3, "indopak-13") == []
