"""
Read-only view of the assignments opened for highlights.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..adapters.base import StorageAdapter

router = APIRouter(prefix="/assignments", tags=["assignments"])


def get_storage() -> StorageAdapter:
    """Dependency to get storage adapter from app state."""
    from ..main import get_storage_adapter
    return get_storage_adapter()


@router.get("")
async def list_assignments(
    student_id: Optional[str] = Query(None),
    highlight_id: Optional[str] = Query(None),
    storage: StorageAdapter = Depends(get_storage),
) -> List[Dict[str, Any]]:
    if not student_id and not highlight_id:
        raise HTTPException(status_code=400, detail="student_id or highlight_id is required")
    return storage.list_assignments(student_id=student_id, highlight_id=highlight_id)
