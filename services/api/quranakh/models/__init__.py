from __future__ import annotations

from .assignment import assignment_draft_for_highlight
from .highlight import (
    MISTAKE_COLORS,
    RESOLVED_COLOR,
    Highlight,
    MistakeCategory,
    PageProgress,
    color_for_category,
    mistake_counts,
    page_progress,
    resolve,
    unresolve,
)
from .note import HighlightNote, build_thread, check_deletable, seen_updates, visible_to
from .sketch import (
    PixelSketch,
    RelativeSketch,
    SketchDocument,
    Stroke,
    combine_sketches,
    parse_sketch,
    pixel_payload,
    relative_payload,
    sketch_to_storage,
    to_pixel_document,
    to_relative_document,
)

__all__ = [
    "MISTAKE_COLORS",
    "RESOLVED_COLOR",
    "Highlight",
    "HighlightNote",
    "MistakeCategory",
    "PageProgress",
    "PixelSketch",
    "RelativeSketch",
    "SketchDocument",
    "Stroke",
    "assignment_draft_for_highlight",
    "build_thread",
    "check_deletable",
    "color_for_category",
    "combine_sketches",
    "mistake_counts",
    "page_progress",
    "parse_sketch",
    "pixel_payload",
    "relative_payload",
    "resolve",
    "seen_updates",
    "sketch_to_storage",
    "to_pixel_document",
    "to_relative_document",
    "unresolve",
    "visible_to",
]
