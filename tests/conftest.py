"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import pytest
from unittest.mock import patch
from typing import Generator, Optional, Sequence

from models.product import CatalogProduct, Category
from services.catalog_provider import InMemoryCatalogProvider, WriteOperation
from exceptions import DatabaseError

from tests.factories import CatalogProductFactory


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods. range() slices the rows."""

    def __init__(self, data: list = None, error: Optional[Exception] = None):
        self._data = data or []
        self._error = error
        self.ranges: list[tuple[int, int]] = []

    def select(self, *args, **kwargs):
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        self._data = self._data[:count]
        return self

    def range(self, start, end):
        self.ranges.append((start, end))
        self._data = self._data[start:end + 1]
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        return MockSupabaseResponse(data=self._data)


class MockSupabaseRpc:
    """Mock Postgres function call."""

    def __init__(self, client: "MockSupabaseClient", name: str, params: dict):
        self._client = client
        self._name = name
        self._params = params

    def execute(self) -> MockSupabaseResponse:
        self._client.rpc_calls.append((self._name, self._params))
        if self._client.rpc_error is not None:
            raise self._client.rpc_error
        return MockSupabaseResponse(data=None)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self._table_errors = {}
        self.rpc_calls: list[tuple[str, dict]] = []
        self.rpc_error: Optional[Exception] = None

    def set_table_data(self, table_name: str, data: list):
        """Configure mock rows for a table."""
        self._tables[table_name] = data

    def set_table_error(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self._table_errors[table_name] = error

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(
            list(self._tables.get(name, [])),
            self._table_errors.get(name)
        )

    def rpc(self, name: str, params: dict) -> MockSupabaseRpc:
        return MockSupabaseRpc(self, name, params)


# ===================
# FAKE PROVIDERS
# ===================

class RecordingCatalogProvider(InMemoryCatalogProvider):
    """In-memory provider that counts snapshot reads."""

    def __init__(self, products=None):
        super().__init__(products)
        self.get_all_calls = 0

    def get_all(self) -> list[CatalogProduct]:
        self.get_all_calls += 1
        return super().get_all()


class FailingCatalogProvider(InMemoryCatalogProvider):
    """In-memory provider whose n-th batch write fails (1-based)."""

    def __init__(self, products=None, fail_on_batch: int = 1):
        super().__init__(products)
        self.fail_on_batch = fail_on_batch
        self.attempts = 0

    def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        self.attempts += 1
        if self.attempts == self.fail_on_batch:
            raise DatabaseError("batch write", "connection reset")
        super().batch_write(operations)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "name": "Chablis", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def sample_catalog() -> list[CatalogProduct]:
    """Small bar catalog: two wines, a beer and a soft drink."""
    CatalogProductFactory.reset_counter()
    return [
        CatalogProductFactory.create(
            id="p-margaux", name="Château Margaux 2015",
            category=Category.WINE_RED, quantity=10
        ),
        CatalogProductFactory.create(
            id="p-chablis", name="Chablis Premier Cru",
            category=Category.WINE_WHITE, quantity=12
        ),
        CatalogProductFactory.create(
            id="p-leffe", name="Leffe Blonde 33cl",
            category=Category.BEER, quantity=48
        ),
        CatalogProductFactory.create(
            id="p-coca", name="Coca-Cola 33cl",
            category=Category.SOFT, quantity=24
        ),
    ]


@pytest.fixture
def catalog_provider(sample_catalog) -> RecordingCatalogProvider:
    """In-memory provider loaded with the sample catalog."""
    return RecordingCatalogProvider(sample_catalog)


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


@pytest.fixture
def test_client_with_catalog(catalog_provider) -> Generator:
    """
    FastAPI test client whose uploads import into the in-memory catalog.

    Usage:
        def test_endpoint(test_client_with_catalog, catalog_provider):
            response = test_client_with_catalog.post("/api/imports/stock", ...)
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.imports.get_catalog_provider", return_value=catalog_provider):
        yield TestClient(app)
