# services/api/quranakh/adapters/sqlite/__init__.py
from __future__ import annotations

import json
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException
from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    and_,
    create_engine,
    delete,
    event,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def make_engine(db_url: str) -> Engine:
    # Create data dir if sqlite file
    if db_url.startswith("sqlite:///"):
        file_path = db_url.replace("sqlite:///", "", 1)
        _ensure_dir(file_path)

    engine = create_engine(db_url, future=True, pool_pre_ping=True)

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------
# Timestamps are stored as ISO-8601 text so every backend returns the same shape.

metadata = MetaData()

highlights = Table(
    "highlights",
    metadata,
    Column("highlight_id", String, primary_key=True),
    Column("student_id", String, nullable=False),
    Column("teacher_id", String),
    Column("school_id", String),
    Column("surah", Integer, nullable=False),
    Column("ayah_start", Integer, nullable=False),
    Column("ayah_end", Integer, nullable=False),
    Column("word_start", Integer),
    Column("word_end", Integer),
    Column("page_number", Integer),
    Column("color", String, nullable=False),
    Column("previous_color", String),
    Column("note", Text),
    Column("audio_url", Text),
    Column("resolved_at", String),
    Column("resolved_by", String),
    Column("created_by", String),
    Column("created_at", String, nullable=False),
)

highlight_notes = Table(
    "highlight_notes",
    metadata,
    Column("note_id", String, primary_key=True),
    Column(
        "highlight_id",
        String,
        ForeignKey("highlights.highlight_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("author_id", String, nullable=False),
    Column("author_role", String),
    Column("kind", String, nullable=False, default="text"),
    Column("text", Text),
    Column("audio_url", Text),
    Column("parent_note_id", String),
    Column("visible_to_parent", Boolean, nullable=False, default=True),
    Column("can_delete_until", String),
    Column("created_at", String, nullable=False),
    Column("seen_at", String),
    Column("seen_by", String),
)

# highlight_id is not a foreign key; assignments survive highlight deletion.
assignments = Table(
    "assignments",
    metadata,
    Column("assignment_id", String, primary_key=True),
    Column("highlight_id", String),
    Column("student_id", String, nullable=False),
    Column("teacher_id", String),
    Column("title", String, nullable=False),
    Column("description", Text),
    Column("status", String, nullable=False, default="assigned"),
    Column("due_at", String),
    Column("created_at", String, nullable=False),
    Column("updated_at", String, nullable=False),
)

pen_annotations = Table(
    "pen_annotations",
    metadata,
    Column("annotation_id", String, primary_key=True),
    Column("student_id", String, nullable=False),
    Column("teacher_id", String, nullable=False),
    Column("page_number", Integer, nullable=False),
    Column("script_id", String, nullable=False),
    Column("drawing_data", Text, nullable=False),  # JSON, relative coordinates
    Column("stroke_color", String),
    Column("stroke_width", Float),
    Column("created_at", String, nullable=False),
    Column("updated_at", String, nullable=False),
    UniqueConstraint(
        "student_id", "teacher_id", "page_number", "script_id", name="uq_pen_annotation_page"
    ),
)

Index("idx_highlights_student", highlights.c.student_id)
Index("idx_highlights_student_page", highlights.c.student_id, highlights.c.page_number)
Index("idx_notes_highlight", highlight_notes.c.highlight_id)
Index("idx_assignments_student", assignments.c.student_id)
Index("idx_assignments_highlight", assignments.c.highlight_id)
Index("idx_pen_page", pen_annotations.c.student_id, pen_annotations.c.page_number, pen_annotations.c.script_id)

# ---- Adapter implementation --------------------------------------------------

def _only_columns(table: Table, data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in table.c}


def _annotation_out(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    raw = out.get("drawing_data")
    out["drawing_data"] = json.loads(raw) if raw else None
    return out


@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/quranakh.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        return cls(engine=eng)

    # ---------- shared ----------

    def _get(self, table: Table, key_col, key: str) -> Optional[Dict[str, Any]]:
        with self.engine.begin() as conn:
            row = conn.execute(select(table).where(key_col == key)).mappings().first()
        return dict(row) if row else None

    def _update(self, table: Table, key_col, key: str, updates: Dict[str, Any], what: str) -> Dict[str, Any]:
        values = _only_columns(table, updates)
        values.pop(key_col.name, None)
        with self.engine.begin() as conn:
            if values:
                res = conn.execute(update(table).where(key_col == key).values(**values))
                if res.rowcount == 0:
                    raise HTTPException(status_code=404, detail=f"{what} {key} not found")
            row = conn.execute(select(table).where(key_col == key)).mappings().first()
        if not row:
            raise HTTPException(status_code=404, detail=f"{what} {key} not found")
        return dict(row)

    # ---------- Highlights ----------

    def create_highlight(self, row: Dict[str, Any]) -> Dict[str, Any]:
        values = _only_columns(highlights, row)
        values["created_at"] = values.get("created_at") or _now_iso()
        with self.engine.begin() as conn:
            conn.execute(insert(highlights).values(**values))
        return values

    def get_highlight(self, highlight_id: str) -> Optional[Dict[str, Any]]:
        return self._get(highlights, highlights.c.highlight_id, highlight_id)

    def list_highlights(
        self,
        student_id: str,
        surah: Optional[int] = None,
        page_number: Optional[int] = None,
        color: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        conds = [highlights.c.student_id == student_id]
        if surah is not None:
            conds.append(highlights.c.surah == surah)
        if page_number is not None:
            conds.append(highlights.c.page_number == page_number)
        if color is not None:
            conds.append(highlights.c.color == color)

        q = select(highlights).where(and_(*conds)).order_by(highlights.c.created_at.desc())
        with self.engine.begin() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def update_highlight(self, highlight_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update(highlights, highlights.c.highlight_id, highlight_id, updates, "Highlight")

    def delete_highlight(self, highlight_id: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(highlight_notes).where(highlight_notes.c.highlight_id == highlight_id))
            res = conn.execute(delete(highlights).where(highlights.c.highlight_id == highlight_id))
            if res.rowcount == 0:
                raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")

    # ---------- Highlight notes ----------

    def create_note(self, row: Dict[str, Any]) -> Dict[str, Any]:
        values = _only_columns(highlight_notes, row)
        values["created_at"] = values.get("created_at") or _now_iso()
        with self.engine.begin() as conn:
            conn.execute(insert(highlight_notes).values(**values))
        return values

    def get_note(self, note_id: str) -> Optional[Dict[str, Any]]:
        return self._get(highlight_notes, highlight_notes.c.note_id, note_id)

    def list_notes(self, highlight_id: str) -> List[Dict[str, Any]]:
        q = (
            select(highlight_notes)
            .where(highlight_notes.c.highlight_id == highlight_id)
            .order_by(highlight_notes.c.created_at.asc())
        )
        with self.engine.begin() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def update_note(self, note_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._update(highlight_notes, highlight_notes.c.note_id, note_id, updates, "Note")

    def delete_note(self, note_id: str) -> None:
        with self.engine.begin() as conn:
            res = conn.execute(delete(highlight_notes).where(highlight_notes.c.note_id == note_id))
            if res.rowcount == 0:
                raise HTTPException(status_code=404, detail=f"Note {note_id} not found")

    # ---------- Assignments ----------

    def create_assignment(self, row: Dict[str, Any]) -> Dict[str, Any]:
        values = _only_columns(assignments, row)
        now = _now_iso()
        values["created_at"] = values.get("created_at") or now
        values["updated_at"] = values.get("updated_at") or now
        with self.engine.begin() as conn:
            conn.execute(insert(assignments).values(**values))
        return values

    def list_assignments(
        self,
        student_id: Optional[str] = None,
        highlight_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        q = select(assignments)
        if student_id is not None:
            q = q.where(assignments.c.student_id == student_id)
        if highlight_id is not None:
            q = q.where(assignments.c.highlight_id == highlight_id)
        q = q.order_by(assignments.c.created_at.desc())
        with self.engine.begin() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def update_assignment(self, assignment_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(updates)
        data.setdefault("updated_at", _now_iso())
        return self._update(assignments, assignments.c.assignment_id, assignment_id, data, "Assignment")

    # ---------- Pen annotations ----------

    def upsert_pen_annotation(self, row: Dict[str, Any]) -> Dict[str, Any]:
        now = _now_iso()
        key = and_(
            pen_annotations.c.student_id == row["student_id"],
            pen_annotations.c.teacher_id == row["teacher_id"],
            pen_annotations.c.page_number == row["page_number"],
            pen_annotations.c.script_id == row["script_id"],
        )
        drawing_json = json.dumps(row["drawing_data"], ensure_ascii=False)

        with self.engine.begin() as conn:
            existing = conn.execute(select(pen_annotations.c.annotation_id).where(key)).first()
            if existing:
                conn.execute(
                    update(pen_annotations)
                    .where(pen_annotations.c.annotation_id == existing.annotation_id)
                    .values(
                        drawing_data=drawing_json,
                        stroke_color=row.get("stroke_color"),
                        stroke_width=row.get("stroke_width"),
                        updated_at=now,
                    )
                )
                annotation_id = existing.annotation_id
            else:
                annotation_id = str(uuid4())
                conn.execute(
                    insert(pen_annotations).values(
                        annotation_id=annotation_id,
                        student_id=row["student_id"],
                        teacher_id=row["teacher_id"],
                        page_number=row["page_number"],
                        script_id=row["script_id"],
                        drawing_data=drawing_json,
                        stroke_color=row.get("stroke_color"),
                        stroke_width=row.get("stroke_width"),
                        created_at=now,
                        updated_at=now,
                    )
                )
            stored = conn.execute(
                select(pen_annotations).where(pen_annotations.c.annotation_id == annotation_id)
            ).mappings().first()

        return _annotation_out(dict(stored))

    def list_pen_annotations(
        self,
        student_id: str,
        page_number: int,
        script_id: str,
    ) -> List[Dict[str, Any]]:
        q = (
            select(pen_annotations)
            .where(
                and_(
                    pen_annotations.c.student_id == student_id,
                    pen_annotations.c.page_number == page_number,
                    pen_annotations.c.script_id == script_id,
                )
            )
            .order_by(pen_annotations.c.created_at.desc())
        )
        with self.engine.begin() as conn:
            return [_annotation_out(dict(r)) for r in conn.execute(q).mappings().all()]
