"""
Shared test fixtures.

The mock Supabase client keeps table rows in memory so upserts and
deletes are visible to later selects within a test.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from typing import Generator, Optional

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, table: "MockSupabaseTable", mode: str = "select", payload=None, on_conflict: str = ""):
        self._table = table
        self._mode = mode
        self._payload = payload
        self._on_conflict = on_conflict
        self._filters = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._table.calls.append(self._mode)
        if self._table.error is not None:
            raise self._table.error

        if self._mode == "upsert":
            return MockSupabaseResponse(data=self._table.upsert_rows(self._payload, self._on_conflict))

        if self._mode == "delete":
            removed = [row for row in self._table.rows if self._matches(row)]
            self._table.rows[:] = [row for row in self._table.rows if not self._matches(row)]
            return MockSupabaseResponse(data=removed)

        rows = [dict(row) for row in self._table.rows if self._matches(row)]
        if self._order:
            column, desc = self._order
            rows.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
        if self._limit is not None:
            rows = rows[:self._limit]
        return MockSupabaseResponse(data=rows)


class MockSupabaseTable:
    """In-memory table; set `error` to make every execute() raise."""

    def __init__(self, rows: list = None):
        self.rows = rows if rows is not None else []
        self.error: Optional[Exception] = None
        self.calls: list[str] = []

    def upsert_rows(self, payload, on_conflict: str) -> list:
        incoming = payload if isinstance(payload, list) else [payload]
        keys = [k.strip() for k in on_conflict.split(",") if k.strip()]
        for item in incoming:
            existing = next(
                (row for row in self.rows if keys and all(row.get(k) == item.get(k) for k in keys)),
                None
            )
            if existing is not None:
                existing.update(item)
            else:
                self.rows.append(dict(item))
        return incoming

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def upsert(self, payload, on_conflict: str = "", **kwargs):
        return MockSupabaseQuery(self, "upsert", payload=payload, on_conflict=on_conflict)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure rows for a table."""
        self.table(table_name).rows[:] = [dict(row) for row in data]

    def fail_table(self, table_name: str, message: str = "relation does not exist"):
        """Make every query on the table raise."""
        self.table(table_name).error = Exception(message)

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return self._tables.setdefault(name, MockSupabaseTable())


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("shopify_tokens", [
                {"shop": "demo.myshopify.com", "access_token": "shpat_x"}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch every module that resolves the Supabase client.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("shopify_cart_inventory_staging", [...])
    """
    with patch("services.staging_service.try_get_supabase_client", return_value=mock_supabase):
        with patch("services.store_service.try_get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def no_db() -> Generator:
    """Supabase not configured anywhere."""
    with patch("services.staging_service.try_get_supabase_client", return_value=None):
        with patch("services.store_service.try_get_supabase_client", return_value=None):
            yield


@pytest.fixture
def no_env_shop() -> Generator:
    """No configured default shop or global token."""
    with patch("services.store_service.settings") as mock_settings:
        mock_settings.shopify_shop_domain = None
        with patch("integrations.shopify.settings") as shopify_settings:
            shopify_settings.shopify_shop_domain = None
            shopify_settings.shopify_admin_access_token = None
            yield


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
