# services/api/quranakh/adapters/sheets/__init__.py
from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, Optional

import gspread
from fastapi import HTTPException
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

# ========== Sheet schema (HEADERS) ==========

HEADERS = {
    "highlights": [
        "highlight_id",
        "student_id",
        "teacher_id",
        "school_id",
        "surah",
        "ayah_start",
        "ayah_end",
        "word_start",
        "word_end",
        "page_number",
        "color",           # mistake category, or the resolved color
        "previous_color",  # category before resolution
        "note",
        "audio_url",
        "resolved_at",
        "resolved_by",
        "created_by",
        "created_at",
    ],
    "highlight_notes": [
        "note_id",
        "highlight_id",
        "author_id",
        "author_role",
        "kind",
        "text",
        "audio_url",
        "parent_note_id",
        "visible_to_parent",
        "can_delete_until",
        "created_at",
        "seen_at",
        "seen_by",
    ],
    "assignments": [
        "assignment_id",
        "highlight_id",
        "student_id",
        "teacher_id",
        "title",
        "description",
        "status",
        "due_at",
        "created_at",
        "updated_at",
    ],
    "pen_annotations": [
        "annotation_id",
        "student_id",
        "teacher_id",
        "page_number",
        "script_id",
        "drawing_data",    # JSON, relative coordinates
        "stroke_color",
        "stroke_width",
        "created_at",
        "updated_at",
    ],
}

SHEET_TAB_ORDER = [
    "highlights",
    "highlight_notes",
    "assignments",
    "pen_annotations",
]

# Cells come back as strings; these columns are converted on read.
INT_COLUMNS = {"surah", "ayah_start", "ayah_end", "word_start", "word_end", "page_number"}
FLOAT_COLUMNS = {"stroke_width"}
BOOL_COLUMNS = {"visible_to_parent"}
JSON_COLUMNS = {"drawing_data"}


def _safe_float(v, default=None):
    try:
        if v is None:
            return default
        s = str(v).strip().lower()
        if s in ("", "nan", "null", "none"):
            return default
        return float(s)
    except Exception:
        return default


def _safe_int(v, default=None):
    try:
        if v is None:
            return default
        s = str(v).strip()
        if s == "":
            return default
        # allow "3.0" etc
        return int(float(s))
    except Exception:
        return default


def _safe_bool(v, default=True):
    if isinstance(v, bool):
        return v
    s = str(v if v is not None else "").strip().lower()
    if s == "":
        return default
    return s in ("true", "1", "yes", "y")


def _utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _uuid() -> str:
    return str(uuid.uuid4())


def _to_cell(key: str, value: Any) -> Any:
    """Python value -> sheet cell."""
    if value is None:
        return ""
    if key in JSON_COLUMNS:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return value


def _from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Sheet row (all strings) -> typed dict with None for blank cells."""
    out: Dict[str, Any] = {}
    for k, v in row.items():
        if k in INT_COLUMNS:
            out[k] = _safe_int(v)
        elif k in FLOAT_COLUMNS:
            out[k] = _safe_float(v)
        elif k in BOOL_COLUMNS:
            out[k] = _safe_bool(v)
        elif k in JSON_COLUMNS:
            s = str(v or "").strip()
            out[k] = json.loads(s) if s else None
        else:
            out[k] = v if v != "" else None
    return out


def _sa_client_from_json_or_path(google_sa_json: str) -> gspread.Client:
    """
    Accepts either:
      - absolute/relative path to a service-account JSON file, OR
      - a literal JSON string.
    Returns an authorized gspread Client.
    """
    if not google_sa_json:
        raise ValueError("GOOGLE_SA_JSON is required (path to file or inline JSON).")

    scopes = ["https://www.googleapis.com/auth/spreadsheets"]
    try:
        parsed = json.loads(google_sa_json)
        creds = Credentials.from_service_account_info(parsed, scopes=scopes)
    except json.JSONDecodeError:
        # Not JSON; treat as file path
        creds = Credentials.from_service_account_file(google_sa_json, scopes=scopes)
    return gspread.authorize(creds)


# ========== Retry decorator for Google Sheets API calls ==========
def retry_sheets_api(func):
    """Decorator to retry Sheets API calls with exponential backoff on quota errors."""
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((gspread.exceptions.APIError,)),
        reraise=True,
    )
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


class SheetsAdapter:
    """
    Google Sheets storage, one tab per table.
    - Every read goes to the sheet (no caching here; routers cache what they need)
    - Writes keep the sheet's current header order, extra columns are preserved
    - Deletes rewrite the tab instead of deleting rows
    """

    def __init__(
        self,
        google_sa_json: Optional[str] = None,
        spreadsheet_id: Optional[str] = None,
        spreadsheet: Optional[gspread.Spreadsheet] = None,
    ) -> None:
        if spreadsheet is not None:
            self.ss = spreadsheet
        else:
            if not google_sa_json or not spreadsheet_id:
                raise ValueError("SheetsAdapter requires GOOGLE_SA_JSON and SHEETS_SPREADSHEET_ID")
            self.gc = _sa_client_from_json_or_path(google_sa_json)
            self.ss = self.gc.open_by_key(spreadsheet_id)

        self.ws: dict[str, gspread.Worksheet] = {}
        self.colmap: dict[str, dict[str, int]] = {}
        for tab in SHEET_TAB_ORDER:
            self.ws[tab] = self._ensure_worksheet(tab)
            self.colmap[tab] = self._ensure_headers(tab)

    # ========== Worksheet helpers ==========

    def _ensure_worksheet(self, name: str) -> gspread.Worksheet:
        try:
            return self.ss.worksheet(name)
        except gspread.WorksheetNotFound:
            return self.ss.add_worksheet(
                title=name,
                rows=200,
                cols=len(HEADERS[name]) + 2,
            )

    def _ensure_headers(self, name: str) -> dict[str, int]:
        ws = self.ws[name]
        values = ws.get_values("1:1")
        existing = values[0] if values else []

        base = HEADERS[name][:]
        if not existing:
            ws.update(range_name="A1", values=[base])
            header = base
        else:
            # Missing base columns go at the end; extra columns stay.
            missing = [c for c in base if c not in existing]
            header = existing + missing if missing else existing
            if header != existing:
                ws.update(range_name="1:1", values=[header])

        return {col: idx + 1 for idx, col in enumerate(header)}

    @retry_sheets_api
    def _get_all_dicts(self, tab: str) -> list[dict[str, Any]]:
        """Get all rows from a tab as dictionaries. WITH RETRY."""
        ws = self.ws[tab]
        rows = ws.get_all_values()
        if not rows:
            return []
        header = rows[0]
        out = []
        for r in rows[1:]:
            out.append({header[i]: (r[i] if i < len(r) else "") for i in range(len(header))})
        return out

    def _typed_rows(self, tab: str) -> list[dict[str, Any]]:
        return [_from_row(r) for r in self._get_all_dicts(tab)]

    @retry_sheets_api
    def _append_rows(self, tab: str, rows: list[list[Any]]) -> None:
        """Append rows to tab. WITH RETRY. Cells are stored as sent (RAW), never parsed as formulas."""
        if rows:
            self.ws[tab].append_rows(rows, value_input_option="RAW")

    @retry_sheets_api
    def _update_cells(self, tab: str, row_idx: int, updates: dict[str, Any]) -> None:
        """Update specific cells in a row. WITH RETRY."""
        colmap = self.colmap[tab]
        data = []
        for k, v in updates.items():
            if k not in colmap:
                continue
            a1 = gspread.utils.rowcol_to_a1(row_idx, colmap[k])
            data.append({"range": a1, "values": [[_to_cell(k, v)]]})
        if data:
            self.ws[tab].batch_update(data)

    @retry_sheets_api
    def _find_row_by_value(self, tab: str, col_name: str, value: str) -> Optional[int]:
        """Find row index by column value."""
        ws = self.ws[tab]
        col_idx = self.colmap[tab][col_name]
        col_vals = ws.col_values(col_idx)
        for i, v in enumerate(col_vals[1:], start=2):  # skip header
            if v == value:
                return i
        return None

    def _append_dict_row(self, tab: str, data: dict[str, Any]) -> None:
        """Append one row using the SHEET'S CURRENT HEADER order."""
        header = self.ws[tab].row_values(1)
        if not header:
            header = HEADERS[tab][:]
            self.ws[tab].update(range_name="A1", values=[header])
        row = [_to_cell(col, data.get(col)) for col in header]
        self._append_rows(tab, [row])

    def _get_by_id(self, tab: str, key: str, value: str) -> Optional[dict[str, Any]]:
        for r in self._typed_rows(tab):
            if r.get(key) == value:
                return r
        return None

    def _update_by_id(self, tab: str, key: str, value: str, updates: dict[str, Any], what: str) -> dict[str, Any]:
        row_idx = self._find_row_by_value(tab, key, value)
        if not row_idx:
            raise HTTPException(status_code=404, detail=f"{what} {value} not found")
        allowed = {k: v for k, v in updates.items() if k != key and k in self.colmap[tab]}
        self._update_cells(tab, row_idx, allowed)

        header = self.ws[tab].row_values(1)
        vals = self.ws[tab].row_values(row_idx)
        return _from_row({header[i]: (vals[i] if i < len(vals) else "") for i in range(len(header))})

    def _delete_where(self, tab: str, key: str, value: str) -> int:
        """
        Remove every row with row[key] == value (rewrite the tab to avoid
        gspread row-delete quirks). Returns the number of rows removed.
        """
        all_rows = self._get_all_dicts(tab)
        kept = [r for r in all_rows if r.get(key) != value]
        removed = len(all_rows) - len(kept)
        if not removed:
            return 0

        header = self.ws[tab].row_values(1)
        filtered = [header] + [[r.get(k, "") for k in header] for r in kept]
        self.ws[tab].clear()
        self.ws[tab].update(range_name="A1", values=filtered)
        return removed

    # ========== Highlights ==========

    def create_highlight(self, row: dict[str, Any]) -> dict[str, Any]:
        data = dict(row)
        data["created_at"] = data.get("created_at") or _utc_iso()
        self._append_dict_row("highlights", data)
        return data

    def get_highlight(self, highlight_id: str) -> dict[str, Any] | None:
        return self._get_by_id("highlights", "highlight_id", highlight_id)

    def list_highlights(
        self,
        student_id: str,
        surah: int | None = None,
        page_number: int | None = None,
        color: str | None = None,
    ) -> list[dict[str, Any]]:
        result = [
            h for h in self._typed_rows("highlights")
            if h.get("student_id") == student_id
            and (surah is None or h.get("surah") == surah)
            and (page_number is None or h.get("page_number") == page_number)
            and (color is None or (h.get("color") or "").lower() == color)
        ]
        result.sort(key=lambda h: h.get("created_at") or "", reverse=True)
        return result

    def update_highlight(self, highlight_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return self._update_by_id("highlights", "highlight_id", highlight_id, updates, "Highlight")

    def delete_highlight(self, highlight_id: str) -> None:
        if not self._delete_where("highlights", "highlight_id", highlight_id):
            raise HTTPException(status_code=404, detail=f"Highlight {highlight_id} not found")
        self._delete_where("highlight_notes", "highlight_id", highlight_id)

    # ========== Highlight notes ==========

    def create_note(self, row: dict[str, Any]) -> dict[str, Any]:
        data = dict(row)
        data["created_at"] = data.get("created_at") or _utc_iso()
        self._append_dict_row("highlight_notes", data)
        return data

    def get_note(self, note_id: str) -> dict[str, Any] | None:
        return self._get_by_id("highlight_notes", "note_id", note_id)

    def list_notes(self, highlight_id: str) -> list[dict[str, Any]]:
        notes = [n for n in self._typed_rows("highlight_notes") if n.get("highlight_id") == highlight_id]
        notes.sort(key=lambda n: n.get("created_at") or "")
        return notes

    def update_note(self, note_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return self._update_by_id("highlight_notes", "note_id", note_id, updates, "Note")

    def delete_note(self, note_id: str) -> None:
        if not self._delete_where("highlight_notes", "note_id", note_id):
            raise HTTPException(status_code=404, detail=f"Note {note_id} not found")

    # ========== Assignments ==========

    def create_assignment(self, row: dict[str, Any]) -> dict[str, Any]:
        data = dict(row)
        now = _utc_iso()
        data["created_at"] = data.get("created_at") or now
        data["updated_at"] = data.get("updated_at") or now
        self._append_dict_row("assignments", data)
        return data

    def list_assignments(
        self,
        student_id: str | None = None,
        highlight_id: str | None = None,
    ) -> list[dict[str, Any]]:
        result = [
            a for a in self._typed_rows("assignments")
            if (student_id is None or a.get("student_id") == student_id)
            and (highlight_id is None or a.get("highlight_id") == highlight_id)
        ]
        result.sort(key=lambda a: a.get("created_at") or "", reverse=True)
        return result

    def update_assignment(self, assignment_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        data = dict(updates)
        data.setdefault("updated_at", _utc_iso())
        return self._update_by_id("assignments", "assignment_id", assignment_id, data, "Assignment")

    # ========== Pen annotations ==========

    def upsert_pen_annotation(self, row: dict[str, Any]) -> dict[str, Any]:
        now = _utc_iso()
        existing = next(
            (
                r for r in self._typed_rows("pen_annotations")
                if r.get("student_id") == row["student_id"]
                and r.get("teacher_id") == row["teacher_id"]
                and r.get("page_number") == row["page_number"]
                and r.get("script_id") == row["script_id"]
            ),
            None,
        )
        if existing is not None:
            return self._update_by_id(
                "pen_annotations",
                "annotation_id",
                existing["annotation_id"],
                {
                    "drawing_data": row["drawing_data"],
                    "stroke_color": row.get("stroke_color"),
                    "stroke_width": row.get("stroke_width"),
                    "updated_at": now,
                },
                "Pen annotation",
            )

        data = {
            "annotation_id": _uuid(),
            "student_id": row["student_id"],
            "teacher_id": row["teacher_id"],
            "page_number": row["page_number"],
            "script_id": row["script_id"],
            "drawing_data": row["drawing_data"],
            "stroke_color": row.get("stroke_color"),
            "stroke_width": row.get("stroke_width"),
            "created_at": now,
            "updated_at": now,
        }
        self._append_dict_row("pen_annotations", data)
        return data

    def list_pen_annotations(
        self,
        student_id: str,
        page_number: int,
        script_id: str,
    ) -> list[dict[str, Any]]:
        result = [
            r for r in self._typed_rows("pen_annotations")
            if r.get("student_id") == student_id
            and r.get("page_number") == page_number
            and r.get("script_id") == script_id
        ]
        result.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return result
