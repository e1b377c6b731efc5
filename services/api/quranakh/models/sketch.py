# services/api/quranakh/models/sketch.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..core.coordinates import (
    Point,
    SurfaceDims,
    to_pixel_point,
    to_relative_point,
)

logger = logging.getLogger(__name__)

RELATIVE_VERSION = "2.0"


@dataclass(frozen=True)
class Stroke:
    """
    One pen stroke: ordered points plus whatever presentation fields the
    drawing surface attached (strokeColor, strokeWidth, drawMode, ...).
    The payload is carried through every transform without being read.
    """
    points: Tuple[Point, ...] = ()
    payload: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stroke":
        raw_points = data.get("paths") or []
        payload = {k: v for k, v in data.items() if k != "paths"}
        return cls(
            points=tuple(Point.from_dict(p) for p in raw_points),
            payload=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.payload)
        out["paths"] = [p.to_dict() for p in self.points]
        return out

    def with_points(self, points: Iterable[Point]) -> "Stroke":
        return Stroke(points=tuple(points), payload=self.payload)


@dataclass(frozen=True)
class PixelSketch:
    """
    Sketch in screen pixels. Either fresh from the drawing surface, or a
    legacy stored document (no version tag, or a tag other than "2.0").
    """
    strokes: Tuple[Stroke, ...] = ()
    version: Optional[str] = None
    extras: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RelativeSketch:
    """
    Sketch in relative (0..1) coordinates, stored as version "2.0".

    reference_dims is the surface size at save time. It is kept for
    debugging only; rendering never needs it.
    """
    strokes: Tuple[Stroke, ...] = ()
    reference_dims: Optional[SurfaceDims] = None
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def version(self) -> str:
        return RELATIVE_VERSION


SketchDocument = Union[PixelSketch, RelativeSketch]


# ---------- storage / wire shape ----------

def is_relative_payload(raw: Any) -> bool:
    return isinstance(raw, dict) and raw.get("version") == RELATIVE_VERSION


def parse_sketch(raw: Optional[Dict[str, Any]]) -> SketchDocument:
    """
    Build the typed document from a stored / posted dict:

      {"version": "2.0", "paths": [{"paths": [{x, y}, ...], ...}], "containerDimensions": {...}}

    Raises ValueError if a stroke or point is malformed.
    """
    if raw is None:
        return PixelSketch()
    if not isinstance(raw, dict):
        raise ValueError(f"Sketch must be an object, got {type(raw).__name__}")

    try:
        strokes = tuple(Stroke.from_dict(s) for s in (raw.get("paths") or []))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"Malformed sketch stroke: {e}") from e

    if is_relative_payload(raw):
        dims_raw = raw.get("containerDimensions")
        extras = {
            k: v for k, v in raw.items()
            if k not in ("paths", "version", "containerDimensions")
        }
        return RelativeSketch(
            strokes=strokes,
            reference_dims=SurfaceDims.from_dict(dims_raw) if dims_raw else None,
            extras=extras,
        )

    extras = {k: v for k, v in raw.items() if k not in ("paths", "version")}
    return PixelSketch(strokes=strokes, version=raw.get("version"), extras=extras)


def sketch_to_storage(doc: SketchDocument) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(doc.extras)
    if isinstance(doc, RelativeSketch):
        out["version"] = RELATIVE_VERSION
        if doc.reference_dims is not None:
            out["containerDimensions"] = doc.reference_dims.to_dict()
    elif doc.version is not None:
        out["version"] = doc.version
    out["paths"] = [s.to_dict() for s in doc.strokes]
    return out


# ---------- transforms ----------

def to_relative_document(doc: PixelSketch, dims: SurfaceDims) -> RelativeSketch:
    """
    Convert a pixel sketch to relative space before it is persisted.
    The input is left untouched.
    """
    if isinstance(doc, RelativeSketch):
        raise ValueError("Sketch is already in relative coordinates")

    logger.debug(f"Sketch to relative: surface {dims.width}x{dims.height}, {len(doc.strokes)} strokes")
    strokes = tuple(
        s.with_points(to_relative_point(p, dims) for p in s.points)
        for s in doc.strokes
    )
    return RelativeSketch(strokes=strokes, reference_dims=dims, extras=dict(doc.extras))


def to_pixel_document(doc: SketchDocument, dims: SurfaceDims) -> PixelSketch:
    """
    Convert a stored sketch to pixels for the surface size it will be drawn at.

    Legacy pixel documents come back as the same object: they were saved
    at one fixed size and cannot follow zoom changes.
    """
    if isinstance(doc, PixelSketch):
        logger.warning("Loading legacy annotation stored in pixel coordinates")
        return doc

    logger.debug(f"Sketch to pixels: surface {dims.width}x{dims.height}, {len(doc.strokes)} strokes")
    strokes = tuple(
        s.with_points(to_pixel_point(p, dims) for p in s.points)
        for s in doc.strokes
    )
    return PixelSketch(strokes=strokes, extras=dict(doc.extras))


# ---------- dict-level helpers (used by routers) ----------

def relative_payload(raw: Dict[str, Any], dims: SurfaceDims) -> Dict[str, Any]:
    """Pixel payload from the drawing surface -> version "2.0" payload for storage."""
    if is_relative_payload(raw):
        return raw
    return sketch_to_storage(to_relative_document(parse_sketch(raw), dims))


def pixel_payload(raw: Any, dims: SurfaceDims) -> Any:
    """
    Stored payload -> pixel payload for the current surface size.
    Anything that is not version "2.0" is returned as-is, unparsed.
    """
    if not is_relative_payload(raw):
        logger.warning("Loading legacy annotation stored in pixel coordinates")
        return raw
    return sketch_to_storage(to_pixel_document(parse_sketch(raw), dims))


def combine_sketches(raws: Iterable[Any], dims: SurfaceDims) -> List[Dict[str, Any]]:
    """
    Merge every stored annotation of one page into a single list of
    pixel-space strokes for the current surface size.
    """
    combined: List[Dict[str, Any]] = []
    for raw in raws:
        pixel = pixel_payload(raw, dims)
        if isinstance(pixel, dict):
            combined.extend(pixel.get("paths") or [])
    return combined
