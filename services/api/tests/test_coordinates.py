"""
Tests for pixel <-> relative coordinate conversion.

Run with: pytest tests/test_coordinates.py -v
"""
import logging
import math

import pytest

from quranakh.core.coordinates import (
    Point,
    SurfaceDims,
    to_pixel,
    to_pixel_point,
    to_relative,
    to_relative_point,
    validate_coordinates,
)
from quranakh.models.sketch import PixelSketch, RelativeSketch, Stroke


def _doc(points, relative=False):
    stroke = Stroke(points=tuple(Point(x, y) for x, y in points))
    if relative:
        return RelativeSketch(strokes=(stroke,))
    return PixelSketch(strokes=(stroke,))


class TestScalarConversion:
    """to_relative / to_pixel on single values."""

    def test_to_relative_divides_by_size(self):
        assert to_relative(500, 1000) == 0.5
        assert to_relative(0, 800) == 0.0
        assert to_relative(800, 800) == 1.0

    def test_zero_surface_returns_zero(self):
        """A zero-sized surface never raises and never yields NaN/inf."""
        for value in (0, 1, -5, 12345.6, 1e300):
            result = to_relative(value, 0)
            assert result == 0
            assert math.isfinite(result)

    def test_to_pixel_multiplies(self):
        assert to_pixel(0.5, 1500) == 750
        assert to_pixel(0.0, 1500) == 0
        assert to_pixel(1.0, 1200) == 1200

    @pytest.mark.parametrize("k", [0.5, 1.0, 1.5, 2.0, 3.25])
    def test_proportional_rescale(self, k):
        """Re-rendering at k times the size scales pixel coordinates by k."""
        width = 1000.0
        for x in (0.0, 1.0, 333.3, 999.0):
            assert to_pixel(to_relative(x, width), width * k) == pytest.approx(k * x, abs=1e-9)

    def test_in_range_pixels_stay_in_unit_interval(self):
        size = 731.0
        for px in (0.0, 0.1, 365.5, 730.99, 731.0):
            assert 0.0 <= to_relative(px, size) <= 1.0

    def test_out_of_range_is_not_clamped(self):
        assert to_relative(1200, 1000) == pytest.approx(1.2)
        assert to_relative(-100, 1000) == pytest.approx(-0.1)


class TestPointConversion:
    """Point-level helpers use width for x and height for y."""

    def test_center_point_to_relative(self):
        assert to_relative_point(Point(500, 400), SurfaceDims(1000, 800)) == Point(0.5, 0.5)

    def test_relative_center_at_150_percent_zoom(self):
        assert to_pixel_point(Point(0.5, 0.5), SurfaceDims(1500, 1200)) == Point(750, 600)

    def test_zero_height_only_zeroes_y(self):
        p = to_relative_point(Point(250, 400), SurfaceDims(1000, 0))
        assert p == Point(0.25, 0.0)

    def test_point_dict_round_trip(self):
        p = Point.from_dict({"x": "12.5", "y": 3})
        assert p == Point(12.5, 3.0)
        assert p.to_dict() == {"x": 12.5, "y": 3.0}

    def test_point_extras_survive_conversion(self):
        p = Point.from_dict({"x": 500, "y": 400, "pressure": 0.7, "t": None})
        rel = to_relative_point(p, SurfaceDims(1000, 800))
        assert rel.to_dict() == {"x": 0.5, "y": 0.5, "pressure": 0.7, "t": None}
        back = to_pixel_point(rel, SurfaceDims(2000, 1600))
        assert back.to_dict() == {"x": 1000.0, "y": 800.0, "pressure": 0.7, "t": None}

    def test_extras_do_not_affect_equality(self):
        assert Point.from_dict({"x": 1, "y": 2, "pressure": 0.3}) == Point(1.0, 2.0)


class TestValidateCoordinates:
    """Advisory range check over every point of every stroke."""

    def test_relative_in_range(self):
        assert validate_coordinates(_doc([(0, 0), (0.5, 1.0), (1, 1)], relative=True), True)

    def test_relative_out_of_range(self, caplog):
        doc = _doc([(0.2, 0.2), (1.01, 0.5)], relative=True)
        with caplog.at_level(logging.ERROR):
            assert validate_coordinates(doc, True) is False
        assert "Invalid relative coordinates" in caplog.text

    def test_relative_negative(self):
        assert validate_coordinates(_doc([(-0.01, 0.5)], relative=True), True) is False

    def test_pixel_allows_large_values(self):
        assert validate_coordinates(_doc([(5000, 9000)]), False)

    def test_pixel_rejects_negative(self):
        assert validate_coordinates(_doc([(10, -1)]), False) is False

    def test_non_finite_is_invalid(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert validate_coordinates(_doc([(math.inf, 0.5)], relative=True), True) is False
        assert "Non-finite coordinates" in caplog.text
        assert validate_coordinates(_doc([(math.nan, 10)]), False) is False
        assert validate_coordinates(_doc([(10, -math.inf)]), False) is False

    def test_empty_document_is_valid(self):
        assert validate_coordinates(PixelSketch(), False)
        assert validate_coordinates(RelativeSketch(), True)

    def test_does_not_modify_document(self):
        doc = _doc([(2.0, 2.0)], relative=True)
        before = doc.strokes[0].points
        validate_coordinates(doc, True)
        assert doc.strokes[0].points == before
