# services/api/quranakh/models/note.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..core.errors import NoteNotDeletable

NOTE_KINDS = ("text", "audio")


def _gen_note_id() -> str:
  return f"n-{uuid4().hex[:10]}"


def _bool(v: Any, default: bool = True) -> bool:
  if v is None or v == "":
    return default
  if isinstance(v, bool):
    return v
  return str(v).strip().upper() in ("TRUE", "1", "YES", "Y")


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
  """ISO timestamp -> aware datetime; None when missing or unreadable."""
  if not value:
    return None
  try:
    ts = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
  except ValueError:
    return None
  if ts.tzinfo is None:
    ts = ts.replace(tzinfo=timezone.utc)
  return ts


@dataclass
class HighlightNote:
  """
  A comment on a highlight: typed text or a recorded voice clip.
  Replies point at their parent through parent_note_id.
  """

  note_id: str = field(default_factory=_gen_note_id)
  highlight_id: str = ""
  author_id: str = ""
  author_role: Optional[str] = None

  kind: str = "text"
  text: Optional[str] = None
  audio_url: Optional[str] = None

  parent_note_id: Optional[str] = None
  visible_to_parent: bool = True

  can_delete_until: Optional[str] = None
  created_at: Optional[str] = None

  # read receipt: first time someone other than the author opened the note
  seen_at: Optional[str] = None
  seen_by: Optional[str] = None

  def validate(self) -> None:
    if not self.highlight_id:
      raise ValueError("highlight_id is required")
    if not self.author_id:
      raise ValueError("author_id is required")
    if self.kind not in NOTE_KINDS:
      raise ValueError(f"kind must be one of {NOTE_KINDS}, got {self.kind!r}")
    if self.kind == "text" and not (self.text or "").strip():
      raise ValueError("Text content required for text notes")
    if self.kind == "audio" and not self.audio_url:
      raise ValueError("Audio URL required for audio notes")

  @classmethod
  def create(
    cls,
    *,
    highlight_id: str,
    author_id: str,
    kind: str,
    now: datetime,
    delete_window_minutes: int,
    text: Optional[str] = None,
    audio_url: Optional[str] = None,
    author_role: Optional[str] = None,
    parent_note_id: Optional[str] = None,
    visible_to_parent: bool = True,
  ) -> "HighlightNote":
    note = cls(
      highlight_id=highlight_id,
      author_id=author_id,
      author_role=author_role,
      kind=kind,
      text=text.strip() if kind == "text" and text else None,
      audio_url=audio_url if kind == "audio" else None,
      parent_note_id=parent_note_id or None,
      visible_to_parent=visible_to_parent,
      # voice notes can be taken back for a short while after recording
      can_delete_until=(
        (now + timedelta(minutes=delete_window_minutes)).isoformat()
        if kind == "audio" else None
      ),
      created_at=now.isoformat(),
    )
    note.validate()
    return note

  @classmethod
  def from_storage(cls, row: Dict[str, Any]) -> "HighlightNote":
    return cls(
      note_id=row.get("note_id") or _gen_note_id(),
      highlight_id=row.get("highlight_id") or "",
      author_id=row.get("author_id") or "",
      author_role=row.get("author_role") or None,
      kind=row.get("kind") or "text",
      text=row.get("text") or None,
      audio_url=row.get("audio_url") or None,
      parent_note_id=row.get("parent_note_id") or None,
      visible_to_parent=_bool(row.get("visible_to_parent")),
      can_delete_until=row.get("can_delete_until") or None,
      created_at=row.get("created_at") or None,
      seen_at=row.get("seen_at") or None,
      seen_by=row.get("seen_by") or None,
    )

  def to_storage(self) -> Dict[str, Any]:
    return {
      "note_id": self.note_id,
      "highlight_id": self.highlight_id,
      "author_id": self.author_id,
      "author_role": self.author_role,
      "kind": self.kind,
      "text": self.text,
      "audio_url": self.audio_url,
      "parent_note_id": self.parent_note_id,
      "visible_to_parent": self.visible_to_parent,
      "can_delete_until": self.can_delete_until,
      "created_at": self.created_at,
      "seen_at": self.seen_at,
      "seen_by": self.seen_by,
    }


def check_deletable(note: HighlightNote, actor_id: Optional[str], now: datetime) -> None:
  """
  Only the author may delete, only voice notes, and only inside the
  deletion window.
  """
  if not actor_id or note.author_id != actor_id:
    raise NoteNotDeletable("You can only delete your own notes")
  if note.kind != "audio":
    raise NoteNotDeletable("This is not a voice note")
  # a voice note without a readable deadline is past it
  deadline = _parse_ts(note.can_delete_until)
  if now.tzinfo is None:
    now = now.replace(tzinfo=timezone.utc)
  if deadline is None or now > deadline:
    raise NoteNotDeletable("Deletion time expired")


def visible_to(notes: List[HighlightNote], viewer_role: Optional[str]) -> List[HighlightNote]:
  """Parents only see notes flagged visible_to_parent; every other role sees all."""
  if viewer_role != "parent":
    return list(notes)
  return [n for n in notes if n.visible_to_parent]


def seen_updates(note: HighlightNote, viewer_id: str, now: datetime) -> Dict[str, Any]:
  """
  Fields to store when `viewer_id` opens the note. Empty when nothing
  changes: authors never mark their own notes, and the first receipt wins.
  """
  if note.author_id == viewer_id:
    return {}
  if note.seen_at and note.seen_by:
    return {}
  return {"seen_at": now.isoformat(), "seen_by": viewer_id}


def build_thread(notes: List[HighlightNote]) -> List[Dict[str, Any]]:
  """
  Nest replies under their parents. Top-level notes and each reply list
  are ordered by created_at. Replies whose parent is missing are shown at
  the top level.
  """
  ordered = sorted(notes, key=lambda n: n.created_at or "")
  nodes = {n.note_id: dict(n.to_storage(), replies=[]) for n in ordered}

  roots: List[Dict[str, Any]] = []
  for n in ordered:
    node = nodes[n.note_id]
    parent = nodes.get(n.parent_note_id) if n.parent_note_id else None
    if parent is not None:
      parent["replies"].append(node)
    else:
      roots.append(node)
  return roots
