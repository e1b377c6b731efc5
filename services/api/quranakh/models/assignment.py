# services/api/quranakh/models/assignment.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict
from uuid import uuid4

from .highlight import Highlight, MistakeCategory

ASSIGNMENT_TITLES: Dict[MistakeCategory, str] = {
  MistakeCategory.RECAP: "Recap",
  MistakeCategory.TAJWEED: "Tajweed Practice",
  MistakeCategory.HARAKA: "Haraka Correction",
  MistakeCategory.LETTER: "Letter Correction",
}

# Days until due, by category. Recap gets a week, corrections get three days.
DUE_DAYS: Dict[MistakeCategory, int] = {
  MistakeCategory.RECAP: 7,
  MistakeCategory.TAJWEED: 3,
  MistakeCategory.HARAKA: 3,
  MistakeCategory.LETTER: 3,
}

STATUS_ASSIGNED = "assigned"
STATUS_COMPLETED = "completed"


def _gen_assignment_id() -> str:
  return f"a-{uuid4().hex[:10]}"


def assignment_draft_for_highlight(highlight: Highlight, now: datetime) -> Dict[str, Any]:
  """
  Row for the assignment that is opened automatically when a teacher marks
  a mistake.
  """
  category = highlight.category
  if category is None:
    raise ValueError(f"Highlight {highlight.highlight_id} has no mistake category")

  ayahs = str(highlight.ayah_start)
  if highlight.ayah_end != highlight.ayah_start:
    ayahs = f"{highlight.ayah_start}-{highlight.ayah_end}"
  title = f"{ASSIGNMENT_TITLES[category]} - Surah {highlight.surah}, Ayah {ayahs}"

  if highlight.word_start is not None and highlight.word_end is not None:
    description = (
      f"Practice {category.value} for specific words in Surah {highlight.surah}, "
      f"Ayah {highlight.ayah_start}"
    )
  else:
    description = (
      f"Practice {category.value} for full ayah in Surah {highlight.surah}, "
      f"Ayah {highlight.ayah_start}"
    )

  return {
    "assignment_id": _gen_assignment_id(),
    "highlight_id": highlight.highlight_id,
    "student_id": highlight.student_id,
    "teacher_id": highlight.teacher_id,
    "title": title,
    "description": description,
    "status": STATUS_ASSIGNED,
    "due_at": (now + timedelta(days=DUE_DAYS[category])).isoformat(),
    "created_at": now.isoformat(),
    "updated_at": now.isoformat(),
  }
