import re

import pytest
from fastapi.testclient import TestClient

from core.errors import DealNotFound, StoreError, StoreSchemaError
from core.sheets import current_sheets_client
from main import app
from modules.pipeline.constants import PIPELINE_HEADERS
from modules.pipeline.schemas import Deal

_RANGE_RE = re.compile(r"^(?P<sheet>[^!]+)!A(?P<start>\d+):[A-Z]+(?P<end>\d*)$")


def _parse_range(range_a1):
    match = _RANGE_RE.match(range_a1)
    assert match, f"Rango inesperado: {range_a1}"
    end = match.group("end")
    return match.group("sheet"), int(match.group("start")), int(end) if end else None


class MockSheets:
    """
    Spreadsheet en memoria con la misma interfaz que SheetsClient.
    Las filas son 1-based como en Sheets; una fila borrada queda como [].
    """

    def __init__(self, grids=None):
        self.grids = {name: [list(r) for r in rows] for name, rows in (grids or {}).items()}
        self.calls = []
        self._failures = {}

    # Helpers para configurar mocks
    def fail_next(self, method, error: StoreError):
        self._failures[method] = error

    def rows(self, sheet):
        return self.grids[sheet]

    def called(self, method):
        return [c for c in self.calls if c[0] == method]

    def _check(self, method, range_a1):
        self.calls.append((method, range_a1))
        if method in self._failures:
            raise self._failures.pop(method)
        sheet, start, end = _parse_range(range_a1)
        if sheet not in self.grids:
            raise StoreSchemaError(f'Sheet "{sheet}" not found.')
        return self.grids[sheet], start, end

    async def get_values(self, range_a1):
        grid, start, end = self._check("get_values", range_a1)
        rows = grid[start - 1:end]
        # Sheets recorta celdas y filas vacías al final
        rows = [[str(c) for c in r] for r in rows]
        while rows and not any(rows[-1]):
            rows.pop()
        return [r[:max((i + 1 for i, c in enumerate(r) if c != ""), default=0)] for r in rows]

    async def update_values(self, range_a1, rows):
        grid, start, _ = self._check("update_values", range_a1)
        for offset, row in enumerate(rows):
            index = start - 1 + offset
            while len(grid) <= index:
                grid.append([])
            grid[index] = list(row)
        return {"updatedRows": len(rows)}

    async def append_values(self, range_a1, rows):
        grid, _, _ = self._check("append_values", range_a1)
        while grid and not any(str(c) for c in grid[-1]):
            grid.pop()
        grid.extend(list(r) for r in rows)
        return {"updatedRows": len(rows)}

    async def clear_values(self, range_a1):
        grid, start, end = self._check("clear_values", range_a1)
        for index in range(start - 1, min(end or len(grid), len(grid))):
            grid[index] = []
        return {}


class FakeDealStore:
    """Store de deals en memoria para probar el controlador sin hoja."""

    def __init__(self, deals):
        self.deals = {d.id: d for d in deals}
        self.calls = []
        self.fail_updates = None
        self.fail_deletes = None

    async def list_deals(self):
        self.calls.append(("list_deals",))
        return [d.model_copy() for d in self.deals.values()]

    async def create_deal(self, fields):
        self.calls.append(("create_deal", fields))
        deal = Deal.model_validate({**fields, "id": f"new-{len(self.deals) + 1}", "version": 1})
        self.deals[deal.id] = deal
        return deal

    async def update_deal(self, deal_id, fields, expected_version=None):
        self.calls.append(("update_deal", deal_id, dict(fields), expected_version))
        if self.fail_updates:
            raise self.fail_updates
        if deal_id not in self.deals:
            raise DealNotFound(f"Deal {deal_id} not found")
        current = self.deals[deal_id]
        updated = current.model_copy(update={**fields, "version": current.version + 1})
        self.deals[deal_id] = updated
        return updated

    async def delete_deal(self, deal_id):
        self.calls.append(("delete_deal", deal_id))
        if self.fail_deletes:
            raise self.fail_deletes
        if deal_id not in self.deals:
            raise DealNotFound(f"Deal {deal_id} not found")
        del self.deals[deal_id]


# ===== FIXTURES =====

@pytest.fixture
def pipeline_rows():
    """Hoja Pipeline: una fila con UUID y varias filas legacy (id = número de fila)."""
    return [
        PIPELINE_HEADERS,
        ["Northwind Ventures", "NDA (Signed)", "120000", "2024-05-02 10:00", "", "2024-04-01 09:00",
         "3", "5", "2", "1", "0b6f7c1e-5a57-4c1b-9a53-2d0f3c8e9a11", "4"],
        ["Acme Capital", "Meeting Booked", "50000", "2024-05-01", "Intro call"],
        ["Cedar Holdings", "active-conversation", "", "2024-04-20", ""],
        ["Delta Fund", "Won", "75000", "2024-03-15", "Signed"],
        ["Evergreen Partners", "Waiting on legal", "", "", ""],
    ]


@pytest.fixture
def mock_sheets(pipeline_rows):
    return MockSheets({
        "Pipeline": pipeline_rows,
        "Meetings": [
            ["Date", "Title", "Stage", "Owner"],
            ["2024-05-06", "Acme intro", "Meeting Booked", "Ana"],
            ["2024-05-08", "Northwind NDA", "NDA (Signed)", "Luis"],
            ["2024-04-29", "Cedar follow-up", "Active Conversation", "Ana"],
            ["not a date", "Old meeting", "", ""],
        ],
        "Firms": [
            ["Firm", "Date Booked", "AUM (M)"],
            ["Acme Capital", "2024-03-05", "250"],
            ["Acme Capital", "2024-01-10", "300"],
            ["Northwind Ventures", "2024-02-14", "1,200"],
            ["Cedar Holdings", "2024-04-02", "0"],
        ],
    })


@pytest.fixture
def make_sheets():
    """Fábrica para hojas con contenido propio."""
    return MockSheets


@pytest.fixture
def fake_store():
    return FakeDealStore([
        Deal(id="3", firm_name="Acme Capital", stage="meeting-booked", value="50000", version=1),
        Deal(id="4", firm_name="Cedar Holdings", stage="active-conversation", version=1),
        Deal(id="5", firm_name="Delta Fund", stage="won", value="75000", version=1),
    ])


@pytest.fixture
def client(mock_sheets):
    """TestClient sin startup: la hoja en memoria reemplaza al cliente de Sheets."""
    app.dependency_overrides[current_sheets_client] = lambda: mock_sheets
    yield TestClient(app)
    app.dependency_overrides.clear()
