"""
Coordinate helpers for ink annotations.

Drawing surfaces report stroke points in screen pixels, which only make sense
for the size the surface had when the stroke was captured. Stored annotations
use relative coordinates (0..1 on each axis) so they can be redrawn at any
zoom level. The surface size is always passed in by the caller.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    """
    A 2D point. Whether it is pixel or relative depends on the document it belongs to.
    Any other per-point fields (pressure, timestamps, ...) ride along in `extras`.
    """
    x: float
    y: float
    extras: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        extras = {k: v for k, v in data.items() if k not in ("x", "y")}
        return cls(x=float(data["x"]), y=float(data["y"]), extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extras)
        out["x"] = self.x
        out["y"] = self.y
        return out

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class SurfaceDims:
    """Width/height snapshot of a drawing surface, in pixels."""
    width: float
    height: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SurfaceDims":
        return cls(width=float(data["width"]), height=float(data["height"]))

    def to_dict(self) -> Dict[str, float]:
        return {"width": self.width, "height": self.height}


def to_relative(pixel: float, surface_size: float) -> float:
    """
    Convert one pixel coordinate to relative space.

    A zero-sized surface (closed or not yet mounted) maps everything to 0.
    Out-of-range input is not rejected here; see validate_coordinates().
    """
    if surface_size == 0:
        return 0.0
    return pixel / surface_size


def to_pixel(relative: float, surface_size: float) -> float:
    """Convert one relative coordinate back to pixels for the given surface size."""
    return relative * surface_size


def to_relative_point(point: Point, dims: SurfaceDims) -> Point:
    return Point(
        x=to_relative(point.x, dims.width),
        y=to_relative(point.y, dims.height),
        extras=point.extras,
    )


def to_pixel_point(point: Point, dims: SurfaceDims) -> Point:
    return Point(
        x=to_pixel(point.x, dims.width),
        y=to_pixel(point.y, dims.height),
        extras=point.extras,
    )


def _iter_points(document: Any) -> Iterable[Point]:
    for stroke in getattr(document, "strokes", ()) or ():
        for point in stroke.points:
            yield point


def validate_coordinates(document: Any, expect_relative: bool) -> bool:
    """
    Check that every point of every stroke is in the range its space allows.

    Relative space: both axes within [0, 1].
    Pixel space: no negative coordinate.
    NaN and infinity are invalid in either space.

    Diagnostic only: logs the first offending point and returns False,
    never raises and never modifies the document.
    """
    for point in _iter_points(document):
        if not point.is_finite():
            logger.error(f"Non-finite coordinates: ({point.x}, {point.y})")
            return False
        if expect_relative:
            if not (0.0 <= point.x <= 1.0 and 0.0 <= point.y <= 1.0):
                logger.error(f"Invalid relative coordinates: ({point.x}, {point.y})")
                return False
        else:
            if point.x < 0 or point.y < 0:
                logger.error(f"Invalid pixel coordinates: ({point.x}, {point.y})")
                return False
    return True
