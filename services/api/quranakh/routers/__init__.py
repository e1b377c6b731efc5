"""
API routers for QuranAkh.
"""
from . import annotations, assignments, highlights, notes

__all__ = ["annotations", "assignments", "highlights", "notes"]
