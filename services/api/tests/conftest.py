"""
Shared fixtures.

Run with: pytest services/api/tests -v
"""
import os
import sys

import gspread
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from quranakh.adapters.json import JsonAdapter
from quranakh.adapters.sheets import SheetsAdapter
from quranakh.adapters.sqlite import SqliteAdapter


def _user_entered(value):
    """What Sheets keeps for a cell parsed as if typed in: formulas and numbers are interpreted."""
    s = "" if value is None else str(value)
    if s.startswith("="):
        return "#ERROR!"
    try:
        num = float(s)
    except ValueError:
        return s
    return str(int(num)) if num.is_integer() else str(num)


class FakeWorksheet:
    """In-memory worksheet; cells are kept as strings like the Sheets API returns them."""

    def __init__(self, title):
        self.title = title
        self.cells = []

    def _set(self, row, col, value):
        while len(self.cells) < row:
            self.cells.append([])
        r = self.cells[row - 1]
        while len(r) < col:
            r.append("")
        r[col - 1] = "" if value is None else str(value)

    def update(self, range_name=None, values=None, **kwargs):
        start = range_name.split(":")[0]
        if start.isdigit():
            row, col = int(start), 1
        else:
            row, col = gspread.utils.a1_to_rowcol(start)
        for i, vals in enumerate(values):
            for j, v in enumerate(vals):
                self._set(row + i, col + j, v)

    def get_values(self, range_name=None, **kwargs):
        if range_name == "1:1":
            return [list(self.cells[0])] if self.cells else []
        return self.get_all_values()

    def get_all_values(self, **kwargs):
        width = max((len(r) for r in self.cells), default=0)
        return [r + [""] * (width - len(r)) for r in self.cells]

    def row_values(self, row, **kwargs):
        return list(self.cells[row - 1]) if row <= len(self.cells) else []

    def col_values(self, col, **kwargs):
        return [r[col - 1] if col - 1 < len(r) else "" for r in self.cells]

    def append_rows(self, rows, value_input_option=None, **kwargs):
        for row in rows:
            if value_input_option == "USER_ENTERED":
                self.cells.append([_user_entered(v) for v in row])
            else:
                self.cells.append(["" if v is None else str(v) for v in row])

    def batch_update(self, data, **kwargs):
        for item in data:
            self.update(range_name=item["range"], values=item["values"])

    def clear(self):
        self.cells = []


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols, **kwargs):
        self.sheets[title] = FakeWorksheet(title)
        return self.sheets[title]


@pytest.fixture
def json_storage(tmp_path):
    """Fresh JSON-file storage per test."""
    return JsonAdapter(str(tmp_path / "json"))


@pytest.fixture
def sqlite_storage(tmp_path):
    return SqliteAdapter.from_url(f"sqlite:///{tmp_path / 'quranakh.db'}")


@pytest.fixture
def fake_spreadsheet():
    return FakeSpreadsheet()


@pytest.fixture
def sheets_storage(fake_spreadsheet):
    return SheetsAdapter(spreadsheet=fake_spreadsheet)


@pytest.fixture(params=["json", "sqlite", "sheets"])
def storage(request):
    """Each storage backend in turn."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def client(json_storage, monkeypatch):
    """API client wired to the per-test JSON storage."""
    from fastapi.testclient import TestClient

    from quranakh import main
    from quranakh.routers.annotations import clear_annotation_cache

    monkeypatch.setattr(main, "storage_adapter", json_storage)
    clear_annotation_cache()
    yield TestClient(main.app)
    clear_annotation_cache()
