# services/api/quranakh/models/highlight.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union
from uuid import uuid4

from ..core.errors import AlreadyResolved, InvalidCategory, NotResolved


def _gen_id() -> str:
  return f"h-{uuid4().hex[:10]}"


def _safe_int(val: Any) -> Optional[int]:
  try:
    if val is None:
      return None
    s = str(val).strip()
    if not s:
      return None
    return int(float(s))
  except Exception:
    return None


def _iso(ts: Union[datetime, str, None]) -> Optional[str]:
  if ts is None:
    return None
  if isinstance(ts, datetime):
    return ts.isoformat()
  return str(ts)


class MistakeCategory(str, Enum):
  RECAP = "recap"
  TAJWEED = "tajweed"
  HARAKA = "haraka"
  LETTER = "letter"


MISTAKE_COLORS: Dict[MistakeCategory, str] = {
  MistakeCategory.RECAP: "#9333ea",    # purple
  MistakeCategory.TAJWEED: "#ea580c",  # orange
  MistakeCategory.HARAKA: "#dc2626",   # red
  MistakeCategory.LETTER: "#92400e",   # brown
}

RESOLVED_COLOR = "gold"

# Older rows stored the display color name instead of the category.
_LEGACY_COLOR_NAMES = {
  "purple": MistakeCategory.RECAP,
  "orange": MistakeCategory.TAJWEED,
  "red": MistakeCategory.HARAKA,
  "brown": MistakeCategory.LETTER,
}


def parse_category(value: Any) -> MistakeCategory:
  """
  Strict lookup of a mistake category.
  Raises InvalidCategory for anything outside the four known values.
  """
  if isinstance(value, MistakeCategory):
    return value
  try:
    return MistakeCategory(value)
  except ValueError:
    raise InvalidCategory(value) from None


def color_for_category(category: Any) -> str:
  return MISTAKE_COLORS[parse_category(category)]


def coerce_color(value: Any, resolved_color: str = RESOLVED_COLOR) -> str:
  """
  Normalize a stored color cell: category values and the resolved color are
  kept, legacy color names are mapped to their category.
  """
  resolved_color = resolved_color.strip().lower()
  s = (str(value) if value is not None else "").strip().lower()
  if s == resolved_color:
    return s
  if s in _LEGACY_COLOR_NAMES:
    return _LEGACY_COLOR_NAMES[s].value
  return parse_category(s).value


@dataclass
class Highlight:
  """
  A teacher's mark over an ayah range (optionally narrowed to words) in a
  student's mushaf.

  `color` is a mistake category value until the student fixes it; then it
  becomes the resolved color and the category moves to `previous_color`.
  """

  highlight_id: str = field(default_factory=_gen_id)
  student_id: str = ""
  teacher_id: Optional[str] = None
  school_id: Optional[str] = None

  surah: int = 1
  ayah_start: int = 1
  ayah_end: int = 1
  word_start: Optional[int] = None
  word_end: Optional[int] = None
  page_number: Optional[int] = None

  color: str = MistakeCategory.RECAP.value
  previous_color: Optional[str] = None

  note: Optional[str] = None
  audio_url: Optional[str] = None

  resolved_at: Optional[str] = None
  resolved_by: Optional[str] = None

  created_by: Optional[str] = None
  created_at: Optional[str] = None

  # --------------------
  # Validation
  # --------------------
  def validate(self, resolved_color: str = RESOLVED_COLOR) -> None:
    """
    Raises ValueError (InvalidCategory for bad colors) if any invariant is broken.
    """
    if not self.student_id:
      raise ValueError("student_id is required")

    if not (1 <= self.surah <= 114):
      raise ValueError(f"surah must be in [1, 114], got {self.surah}")

    if self.ayah_start < 1:
      raise ValueError(f"ayah_start must be >= 1, got {self.ayah_start}")
    if self.ayah_end < self.ayah_start:
      raise ValueError(
        f"ayah_end ({self.ayah_end}) must not be before ayah_start ({self.ayah_start})"
      )

    if (self.word_start is None) != (self.word_end is None):
      raise ValueError("word_start and word_end must be given together")
    if self.word_start is not None:
      if self.word_start < 0 or self.word_end < 0:
        raise ValueError("word positions must be >= 0")
      if self.ayah_start == self.ayah_end and self.word_end < self.word_start:
        raise ValueError(
          f"word_end ({self.word_end}) must not be before word_start ({self.word_start})"
        )

    if self.page_number is not None and self.page_number < 1:
      raise ValueError(f"page_number must be >= 1, got {self.page_number}")

    if self.color != resolved_color:
      parse_category(self.color)

  # --------------------
  # State helpers
  # --------------------
  def is_resolved(self, resolved_color: str = RESOLVED_COLOR) -> bool:
    return self.color == resolved_color

  @property
  def category(self) -> Optional[MistakeCategory]:
    """The mistake category, whether or not the highlight is resolved."""
    for value in (self.color, self.previous_color):
      if value in MistakeCategory._value2member_map_:
        return MistakeCategory(value)
    return None

  def display_color(self, resolved_color: str = RESOLVED_COLOR) -> str:
    if self.color == resolved_color:
      return resolved_color
    return color_for_category(self.color)

  # --------------------
  # Conversions – storage layer
  # --------------------
  @classmethod
  def from_storage(cls, row: Dict[str, Any], resolved_color: str = RESOLVED_COLOR) -> "Highlight":
    prev = row.get("previous_color") or None
    h = cls(
      highlight_id=row.get("highlight_id") or _gen_id(),
      student_id=str(row.get("student_id") or ""),
      teacher_id=row.get("teacher_id") or None,
      school_id=row.get("school_id") or None,
      surah=_safe_int(row.get("surah")) or 0,
      ayah_start=_safe_int(row.get("ayah_start")) or 0,
      ayah_end=_safe_int(row.get("ayah_end")) or 0,
      word_start=_safe_int(row.get("word_start")),
      word_end=_safe_int(row.get("word_end")),
      page_number=_safe_int(row.get("page_number")),
      color=coerce_color(row.get("color"), resolved_color),
      previous_color=coerce_color(prev, resolved_color) if prev else None,
      note=row.get("note") or None,
      audio_url=row.get("audio_url") or None,
      resolved_at=row.get("resolved_at") or None,
      resolved_by=row.get("resolved_by") or None,
      created_by=row.get("created_by") or None,
      created_at=row.get("created_at") or None,
    )
    h.validate(resolved_color)
    return h

  def to_storage(self) -> Dict[str, Any]:
    return {
      "highlight_id": self.highlight_id,
      "student_id": self.student_id,
      "teacher_id": self.teacher_id,
      "school_id": self.school_id,
      "surah": self.surah,
      "ayah_start": self.ayah_start,
      "ayah_end": self.ayah_end,
      "word_start": self.word_start,
      "word_end": self.word_end,
      "page_number": self.page_number,
      "color": self.color,
      "previous_color": self.previous_color,
      "note": self.note,
      "audio_url": self.audio_url,
      "resolved_at": self.resolved_at,
      "resolved_by": self.resolved_by,
      "created_by": self.created_by,
      "created_at": self.created_at,
    }

  # --------------------
  # Conversions – API
  # --------------------
  @classmethod
  def from_api(cls, data: Dict[str, Any], resolved_color: str = RESOLVED_COLOR) -> "Highlight":
    """
    Build from a create request. New highlights always start in a mistake
    category, never in the resolved color.
    """
    h = cls(
      student_id=str(data.get("student_id") or ""),
      teacher_id=data.get("teacher_id"),
      school_id=data.get("school_id"),
      surah=int(data.get("surah", 0)),
      ayah_start=int(data.get("ayah_start", 0)),
      ayah_end=int(data.get("ayah_end", 0)),
      word_start=_safe_int(data.get("word_start")),
      word_end=_safe_int(data.get("word_end")),
      page_number=_safe_int(data.get("page_number")),
      color=parse_category(data.get("color")).value,
      note=(data.get("note") or "").strip() or None,
      audio_url=data.get("audio_url"),
      created_by=data.get("created_by"),
      created_at=data.get("created_at"),
    )
    h.validate(resolved_color)
    return h

  def to_api(self, resolved_color: str = RESOLVED_COLOR) -> Dict[str, Any]:
    out = self.to_storage()
    out["display_color"] = self.display_color(resolved_color)
    out["is_resolved"] = self.is_resolved(resolved_color)
    return out


# ------------ state transitions ------------

def resolve(
  highlight: Highlight,
  resolved_color: str,
  resolved_by: Optional[str],
  now: Union[datetime, str],
) -> Highlight:
  """
  Move a highlight into the resolved color, remembering the category it
  came from. Returns a new Highlight; the argument is not modified.
  """
  if highlight.color == resolved_color:
    raise AlreadyResolved(highlight.highlight_id, highlight.color)
  category = parse_category(highlight.color)

  return replace(
    highlight,
    previous_color=category.value,
    color=resolved_color,
    resolved_at=_iso(now),
    resolved_by=resolved_by,
  )


def unresolve(highlight: Highlight, resolved_color: str = RESOLVED_COLOR) -> Highlight:
  """
  Put a resolved highlight back into the category it had before.
  """
  if highlight.color != resolved_color:
    raise NotResolved(highlight.highlight_id, highlight.color)
  category = parse_category(highlight.previous_color)

  return replace(
    highlight,
    color=category.value,
    previous_color=None,
    resolved_at=None,
    resolved_by=None,
  )


# ------------ page / student aggregates ------------

@dataclass(frozen=True)
class PageProgress:
  page_number: int
  is_complete: bool
  completed: int
  total: int

  def to_api(self) -> Dict[str, Any]:
    return {
      "page_number": self.page_number,
      "is_complete": self.is_complete,
      "completed": self.completed,
      "total": self.total,
      "percent": round(self.completed / self.total * 100, 2) if self.total else 0.0,
    }


def page_progress(
  highlights: Iterable[Highlight],
  page_number: int,
  resolved_color: str = RESOLVED_COLOR,
) -> PageProgress:
  """
  Completion state of one page. A page with no highlights is not complete:
  "nothing marked yet" is different from "everything fixed".
  """
  on_page = [h for h in highlights if h.page_number == page_number]
  total = len(on_page)
  completed = sum(1 for h in on_page if h.color == resolved_color)
  return PageProgress(
    page_number=page_number,
    is_complete=total > 0 and completed == total,
    completed=completed,
    total=total,
  )


def mistake_counts(
  highlights: Iterable[Highlight],
  resolved_color: str = RESOLVED_COLOR,
) -> Dict[str, int]:
  """Open (unresolved) highlights per category; every category is present."""
  counts = {c.value: 0 for c in MistakeCategory}
  for h in highlights:
    if h.color == resolved_color:
      continue
    counts[parse_category(h.color).value] += 1
  return counts
