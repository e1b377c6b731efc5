"""
Storage adapter interface for QuranAkh.
Defines the contract that all storage backends must implement.
"""

from typing import Protocol, List, Dict, Any, Optional


class StorageAdapter(Protocol):
    """
    Protocol defining the interface for all storage adapters.

    This allows swapping between SQLite, JSON files and Google Sheets
    without changing the router or domain code.

    NOTE:
    - Rows are plain dicts shaped like the domain models' to_storage().
    - Getters return None when the row does not exist.
    - Updates/deletes of missing rows raise HTTPException(404).
    """

    # ========== Highlights ==========

    def create_highlight(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a highlight row (highlight_id already assigned).

        Returns:
            The stored row.
        """
        ...

    def get_highlight(self, highlight_id: str) -> Optional[Dict[str, Any]]:
        ...

    def list_highlights(
        self,
        student_id: str,
        surah: Optional[int] = None,
        page_number: Optional[int] = None,
        color: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Highlights of one student, newest first, optionally filtered.
        """
        ...

    def update_highlight(self, highlight_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Overwrite only the provided keys.

        Returns:
            The full row after the update.
        """
        ...

    def delete_highlight(self, highlight_id: str) -> None:
        """
        Delete a highlight together with its notes.
        Assignments keep their highlight_id for history.
        """
        ...

    # ========== Highlight notes ==========

    def create_note(self, row: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def get_note(self, note_id: str) -> Optional[Dict[str, Any]]:
        ...

    def list_notes(self, highlight_id: str) -> List[Dict[str, Any]]:
        """Notes of a highlight, oldest first."""
        ...

    def update_note(self, note_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply partial updates (read receipts) and return the full row.

        Raises:
            HTTPException: 404 if the note does not exist
        """
        ...

    def delete_note(self, note_id: str) -> None:
        ...

    # ========== Assignments ==========

    def create_assignment(self, row: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def list_assignments(
        self,
        student_id: Optional[str] = None,
        highlight_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        ...

    def update_assignment(self, assignment_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        ...

    # ========== Pen annotations ==========

    def upsert_pen_annotation(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert or replace the drawing for
        (student_id, teacher_id, page_number, script_id).

        `drawing_data` is a dict in relative coordinates (version "2.0").

        Returns:
            The stored row, with annotation_id / created_at / updated_at.
        """
        ...

    def list_pen_annotations(
        self,
        student_id: str,
        page_number: int,
        script_id: str,
    ) -> List[Dict[str, Any]]:
        """
        Every teacher's drawing for one student page, newest first.
        `drawing_data` is returned as a dict.
        """
        ...
