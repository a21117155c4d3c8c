"""
Shared test fixtures.

The mock Supabase client keeps table rows in memory and honours the
filters the services use (eq, order, range, single), so updates made by
one call are visible to the next.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings require Supabase credentials at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from typing import Generator

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data
        self.count = count


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, table: "MockSupabaseTable"):
        self._table = table
        self._filters = []
        self._update_data = None
        self._is_single = False
        self._order = None
        self._range = None
        self._limit = None

    def select(self, *args, **kwargs):
        return self

    def update(self, data: dict):
        self._update_data = dict(data)
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        self._table.calls += 1
        rows = [r for r in self._table.rows if all(f(r) for f in self._filters)]

        if self._update_data is not None:
            for row in rows:
                if row.get("id") in self._table.failing_ids:
                    raise Exception(f"simulated update failure for {row['id']}")
            for row in rows:
                row.update(self._update_data)
            return MockSupabaseResponse(data=[dict(r) for r in rows], count=len(rows))

        total = len(rows)
        if self._order:
            column, desc = self._order
            rows = sorted(rows, key=lambda r: r.get(column), reverse=desc)
        if self._range:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]

        if self._is_single:
            data = dict(rows[0]) if rows else None
            return MockSupabaseResponse(data=data, count=1 if data else 0)

        return MockSupabaseResponse(data=[dict(r) for r in rows], count=total)


class MockSupabaseTable:
    """In-memory table shared by every query against it."""

    def __init__(self, rows: list = None):
        self.rows = rows if rows is not None else []
        self.failing_ids: set = set()
        self.calls = 0

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self).select(*args, **kwargs)

    def update(self, data):
        return MockSupabaseQuery(self).update(data)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure mock rows for a table (copied, so fixtures stay clean)."""
        self._tables[table_name] = MockSupabaseTable([dict(row) for row in data])

    def fail_updates_for(self, table_name: str, ids):
        """Make updates touching these ids raise."""
        self.table(table_name).failing_ids.update(ids)

    def rows(self, table_name: str) -> list:
        return self.table(table_name).rows

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_singletons():
    """Services cache their clients; every test starts fresh."""
    import services.product_service as product_service_module
    import services.reconciliation_service as reconciliation_service_module
    from services import preview_cache_service

    product_service_module._product_service = None
    reconciliation_service_module._reconciliation_service = None
    preview_cache_service.clear_runs()
    yield
    product_service_module._product_service = None
    reconciliation_service_module._reconciliation_service = None
    preview_cache_service.clear_runs()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": 1, "name": "Criado Mudo", "brand": "Moval", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.product_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def furniture_catalog() -> list:
    """Small multi-brand catalog as stored in the products table."""
    return [
        {
            "id": 1,
            "name": "ROUPEIRO 3P BLANCO",
            "brand": "Moval",
            "price": 120000,
            "cost": 80000,
            "stock": 3,
            "color": "Blanco",
            "created_at": "2025-11-02T10:00:00Z"
        },
        {
            "id": 2,
            "name": "Criado Mudo",
            "brand": "Moval",
            "price": 45000,
            "cost": 30000,
            "stock": 6,
            "color": None,
            "created_at": "2025-11-02T10:00:00Z"
        },
        {
            "id": 3,
            "name": "Cômoda Giardino",
            "brand": "Demobile",
            "price": 99000,
            "cost": 60000,
            "stock": 1,
            "color": "Nogal",
            "created_at": "2025-11-03T10:00:00Z"
        },
        {
            "id": 4,
            "name": "Silla Eucalipto Tapizada",
            "brand": "Mosconi",
            "price": 38000,
            "cost": None,
            "stock": 12,
            "color": None,
            "created_at": "2025-11-03T10:00:00Z"
        },
    ]


@pytest.fixture
def price_sheet_csv() -> str:
    """Supplier price list as exported from Google Sheets."""
    return (
        "Lista de precios noviembre,,\n"
        ",,\n"
        "Articulo,Marca,Precio\n"
        "Ropero 3 puertas blanco,Moval,\"$ 150.000\"\n"
        "Mesa de luz con espejo,Moval,52000\n"
        "Sofa Retratil,Mosconi,\"$ 380.000\"\n"
        "Sin precio,Moval,abc\n"
        ",,\n"
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_supabase):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            response = test_client_with_mock_db.get("/api/products")
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.product_service.get_supabase_client", return_value=mock_supabase):
            yield TestClient(app)
