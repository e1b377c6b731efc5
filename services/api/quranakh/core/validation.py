"""
Validation utilities for QuranAkh annotations.
Request-level checks that turn bad input into clear 400 responses.
"""
import math
from typing import Any, Dict, Optional

from fastapi import HTTPException

from .coordinates import SurfaceDims


def validate_surface_dims(width: Any, height: Any) -> SurfaceDims:
    """
    Validate the drawing surface size sent by the client.

    Rules:
    - width and height must be numbers
    - both must be finite (no NaN or infinity)
    - both must be >= 0 (0 means the surface is not mounted; every point maps to 0)

    Raises:
        HTTPException: 400 if validation fails
    """
    try:
        w = float(width)
        h = float(height)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=400,
            detail=f"Surface dimensions must be numbers, got width={width!r}, height={height!r}"
        )

    if not (math.isfinite(w) and math.isfinite(h)):
        raise HTTPException(
            status_code=400,
            detail=f"Surface dimensions must be finite, got {w} x {h}"
        )

    if w < 0 or h < 0:
        raise HTTPException(
            status_code=400,
            detail=f"Surface dimensions must be non-negative, got {w} x {h}"
        )
    return SurfaceDims(width=w, height=h)


def validate_page_number(page_number: Optional[int]) -> None:
    """
    Mushaf pages are 1-based.

    Raises:
        HTTPException: 400 if page_number < 1
    """
    if page_number is not None and page_number < 1:
        raise HTTPException(
            status_code=400,
            detail=f"page_number must be >= 1, got {page_number}"
        )


def ensure_same_school(highlight_row: Dict[str, Any], school_id: Optional[str]) -> None:
    """
    A caller that states its school may only touch that school's highlights.
    Rows without a school_id (single-school installs) are open.

    Raises:
        HTTPException: 403 if the schools differ
    """
    row_school = highlight_row.get("school_id")
    if school_id and row_school and row_school != school_id:
        raise HTTPException(
            status_code=403,
            detail="Access denied - different school"
        )


def coerce_role(role: Optional[str]) -> str:
    """
    Coerce an author role to one of the known values.

    Returns:
        "owner", "admin", "teacher", "student" or "parent"; "teacher" when unknown
    """
    if not role:
        return "teacher"

    role_lower = role.lower().strip()

    if role_lower in ("owner", "admin", "teacher", "student", "parent"):
        return role_lower

    return "teacher"
