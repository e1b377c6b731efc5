"""
Tests for the highlight model: categories, resolution and progress.

Run with: pytest tests/test_highlight.py -v
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from quranakh.core.errors import AlreadyResolved, InvalidCategory, NotResolved
from quranakh.models.highlight import (
    MISTAKE_COLORS,
    RESOLVED_COLOR,
    Highlight,
    MistakeCategory,
    coerce_color,
    color_for_category,
    mistake_counts,
    page_progress,
    parse_category,
    resolve,
    unresolve,
)
from quranakh.settings import Settings

T0 = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def _h(**kw):
    base = dict(student_id="s-1", teacher_id="t-1", surah=2, ayah_start=5, ayah_end=7, page_number=3)
    base.update(kw)
    return Highlight(**base)


class TestCategories:
    """Fixed category set and its display colors."""

    def test_every_category_has_a_color(self):
        for c in MistakeCategory:
            assert color_for_category(c)
            assert color_for_category(c.value) == MISTAKE_COLORS[c]

    def test_colors_are_distinct(self):
        colors = [color_for_category(c) for c in MistakeCategory]
        assert len(set(colors)) == len(colors)

    def test_known_mapping(self):
        assert color_for_category("recap") == "#9333ea"
        assert color_for_category("tajweed") == "#ea580c"
        assert color_for_category("haraka") == "#dc2626"
        assert color_for_category("letter") == "#92400e"

    def test_unknown_category(self):
        with pytest.raises(InvalidCategory) as exc:
            parse_category("blue")
        assert exc.value.value == "blue"
        # also a ValueError for callers that only know builtins
        with pytest.raises(ValueError):
            color_for_category("gold")

    def test_coerce_legacy_names(self):
        assert coerce_color("purple") == "recap"
        assert coerce_color(" Orange ") == "tajweed"
        assert coerce_color("RED") == "haraka"
        assert coerce_color("brown") == "letter"
        assert coerce_color("gold") == "gold"
        assert coerce_color("teal", resolved_color="teal") == "teal"

    def test_resolved_color_compared_case_insensitively(self):
        assert coerce_color("gold", resolved_color="Gold") == "gold"
        assert coerce_color(" GOLD ", resolved_color=" gold") == "gold"


class TestResolvedColorSetting:
    """RESOLVED_HIGHLIGHT_COLOR is stored lowercase so stored cells match it."""

    def test_normalized(self):
        assert Settings(resolved_highlight_color=" Gold ").resolved_highlight_color == "gold"

    def test_resolved_row_reads_with_configured_case(self):
        settings = Settings(resolved_highlight_color="Gold")
        row = _h(color="gold", previous_color="tajweed").to_storage()
        h = Highlight.from_storage(row, settings.resolved_highlight_color)
        assert h.is_resolved(settings.resolved_highlight_color)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            Settings(resolved_highlight_color="  ")


class TestHighlightValidation:
    """Invariants checked by Highlight.validate()."""

    def test_valid(self):
        _h().validate()
        _h(word_start=0, word_end=3, ayah_start=5, ayah_end=5).validate()
        _h(word_start=4, word_end=1, ayah_start=5, ayah_end=6).validate()

    @pytest.mark.parametrize("kw", [
        {"student_id": ""},
        {"surah": 0},
        {"surah": 115},
        {"ayah_start": 0},
        {"ayah_start": 8, "ayah_end": 7},
        {"word_start": 1},
        {"word_start": -1, "word_end": 2},
        {"ayah_start": 5, "ayah_end": 5, "word_start": 3, "word_end": 1},
        {"page_number": 0},
        {"color": "blue"},
    ])
    def test_invalid(self, kw):
        with pytest.raises(ValueError):
            _h(**kw).validate()

    def test_resolved_color_is_valid_state(self):
        _h(color=RESOLVED_COLOR, previous_color="letter").validate()

    def test_from_api_rejects_resolved_color(self):
        with pytest.raises(InvalidCategory):
            Highlight.from_api({"student_id": "s", "surah": 1, "ayah_start": 1, "ayah_end": 1, "color": "gold"})

    def test_storage_round_trip(self):
        h = _h(color="haraka", note="watch the kasra", word_start=2, word_end=4, ayah_end=5)
        assert Highlight.from_storage(h.to_storage()) == h

    def test_from_storage_coerces_sheet_strings(self):
        row = {
            "highlight_id": "h-1", "student_id": "s-1", "surah": "2", "ayah_start": "5",
            "ayah_end": "7.0", "word_start": "", "word_end": "", "page_number": "3",
            "color": "Purple", "previous_color": "",
        }
        h = Highlight.from_storage(row)
        assert (h.surah, h.ayah_start, h.ayah_end, h.page_number) == (2, 5, 7, 3)
        assert h.word_start is None
        assert h.color == "recap"
        assert h.previous_color is None

    def test_to_api(self):
        out = _h(color="tajweed").to_api()
        assert out["display_color"] == "#ea580c"
        assert out["is_resolved"] is False
        resolved = _h(color="gold", previous_color="tajweed").to_api()
        assert resolved["display_color"] == "gold"
        assert resolved["is_resolved"] is True


class TestResolve:
    """Category -> resolved color transition and its inverse."""

    def test_resolve_tajweed(self):
        h = _h(color="tajweed")
        done = resolve(h, "gold", "teacher-42", T0)
        assert done.color == "gold"
        assert done.previous_color == "tajweed"
        assert done.resolved_by == "teacher-42"
        assert done.resolved_at == T0.isoformat()
        # input untouched
        assert h.color == "tajweed" and h.previous_color is None

    def test_resolve_twice(self):
        first = resolve(_h(color="letter"), "gold", None, T0)
        assert first.previous_color == "letter"
        with pytest.raises(AlreadyResolved):
            resolve(first, "gold", None, T0)

    def test_resolve_keeps_category(self):
        done = resolve(_h(color="haraka"), "gold", None, T0)
        assert done.category == MistakeCategory.HARAKA

    def test_configured_resolved_color(self):
        done = resolve(_h(color="recap"), "green", "t", "2025-03-01T00:00:00Z")
        assert done.color == "green"
        assert done.resolved_at == "2025-03-01T00:00:00Z"
        assert done.is_resolved("green")

    def test_unresolve(self):
        done = resolve(_h(color="recap"), "gold", "t", T0)
        back = unresolve(done)
        assert back.color == "recap"
        assert back.previous_color is None
        assert back.resolved_at is None and back.resolved_by is None

    def test_unresolve_open_highlight(self):
        with pytest.raises(NotResolved):
            unresolve(_h(color="recap"))


class TestPageProgress:
    """Per-page completion."""

    def test_empty_page_is_not_complete(self):
        p = page_progress([], 7)
        assert (p.is_complete, p.completed, p.total) == (False, 0, 0)
        assert p.to_api()["percent"] == 0.0

    def test_partially_resolved(self):
        hs = [
            _h(page_number=7, color="gold", previous_color="recap"),
            _h(page_number=7, color="gold", previous_color="letter"),
            _h(page_number=7, color="haraka"),
        ]
        p = page_progress(hs, 7)
        assert (p.is_complete, p.completed, p.total) == (False, 2, 3)

    def test_fully_resolved(self):
        hs = [_h(page_number=7, color="gold", previous_color="recap"), _h(page_number=8, color="haraka")]
        p = page_progress(hs, 7)
        assert p.is_complete is True
        assert p.to_api()["percent"] == 100.0

    def test_other_pages_ignored(self):
        p = page_progress([_h(page_number=1), _h(page_number=None)], 2)
        assert p.total == 0


class TestMistakeCounts:

    def test_counts_open_only(self):
        hs = [
            _h(color="recap"),
            _h(color="recap"),
            _h(color="letter"),
            _h(color="gold", previous_color="haraka"),
        ]
        assert mistake_counts(hs) == {"recap": 2, "tajweed": 0, "haraka": 0, "letter": 1}

    def test_empty(self):
        assert mistake_counts([]) == {"recap": 0, "tajweed": 0, "haraka": 0, "letter": 0}
