"""
Shared test fixtures.

The Supabase mock keeps rows per table in memory and applies filters,
ordering and writes, so service tests can assert on stored state.
"""

import os
import re
import sys
from pathlib import Path

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Generator
from uuid import uuid4


# ===================
# MOCK SUPABASE CLIENT
# ===================

# Embedded resources resolved through a foreign key column
JOIN_KEYS = {
    "products": "product_id",
    "orders": "order_id",
    "categories": "category_id",
}


class SimulatedDatabaseFailure(Exception):
    """Raised by the mock when a failure was scheduled."""


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count


def _ordering_key(value):
    return (value is None, value if value is not None else "")


def _parse_condition(term: str):
    """One `column.op.value` term of an `or` filter (eq, gte, lte, is, not.)."""
    column, op, value = term.strip().split(".", 2)
    negate = op == "not"
    if negate:
        op, value = value.split(".", 1)

    def check(row):
        current = row.get(column)
        if op == "is":
            result = current is None if value == "null" else current == value
        elif current is None:
            result = False
        elif op == "eq":
            result = current == value
        elif op == "gte":
            result = current >= value
        elif op == "lte":
            result = current <= value
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
        return not result if negate else result

    return check


class MockSupabaseQuery:
    """Chainable query builder executing against MockSupabaseClient state."""

    def __init__(self, client: "MockSupabaseClient", table: str, op: str = "select", payload=None):
        self._client = client
        self._table = table
        self._op = op
        self._payload = payload
        self._columns = "*"
        self._count = None
        self._filters = []
        self._order = []
        self._range = None
        self._limit = None
        self._is_single = False

    def select(self, columns: str = "*", count: str = None):
        self._columns = columns
        self._count = count
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def ilike(self, column, pattern):
        regex = re.compile(
            "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$",
            re.IGNORECASE,
        )
        self._filters.append(lambda row: row.get(column) is not None and bool(regex.match(str(row.get(column)))))
        return self

    def gte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def or_(self, filters: str):
        """PostgREST `or` filter: comma separated `column.op.value` terms."""
        conditions = [_parse_condition(term) for term in filters.split(",")]
        self._filters.append(lambda row: any(c(row) for c in conditions))
        return self

    def order(self, column, desc: bool = False):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    def _matches(self, rows: list) -> list:
        return [row for row in rows if all(f(row) for f in self._filters)]

    def _with_joins(self, row: dict) -> dict:
        result = dict(row)
        for name, _ in re.findall(r"(\w+)\(([^)]*)\)", self._columns or ""):
            key = JOIN_KEYS.get(name)
            if key is None:
                continue
            related = next(
                (r for r in self._client.rows(name) if r.get("id") == row.get(key)),
                None,
            )
            result[name] = dict(related) if related else None
        return result

    def execute(self) -> MockSupabaseResponse:
        self._client._maybe_fail(self._table, self._op)
        self._client.calls.append((self._table, self._op))
        rows = self._client.rows(self._table)
        now = datetime.now(timezone.utc).isoformat()

        if self._op == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in items:
                row = {"id": str(uuid4()), "created_at": now, "updated_at": now, **item}
                rows.append(row)
                inserted.append(dict(row))
            return MockSupabaseResponse(data=inserted, count=len(inserted))

        matched = self._matches(rows)

        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse(data=[dict(r) for r in matched], count=len(matched))

        if self._op == "delete":
            for row in matched:
                rows.remove(row)
            return MockSupabaseResponse(data=[dict(r) for r in matched], count=len(matched))

        result = list(matched)
        for column, desc in reversed(self._order):
            result.sort(key=lambda r: _ordering_key(r.get(column)), reverse=desc)
        total = len(result)
        if self._range is not None:
            result = result[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            result = result[:self._limit]
        result = [self._with_joins(r) for r in result]

        if self._is_single:
            return MockSupabaseResponse(data=result[0] if result else None, count=total)
        return MockSupabaseResponse(data=result, count=total if self._count else None)


class MockSupabaseTable:
    """Entry point for queries on one table."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, columns: str = "*", count: str = None):
        return MockSupabaseQuery(self._client, self._name).select(columns, count=count)

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name, "update", data)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name, "delete")


class MockSupabaseClient:
    """In-memory Supabase client."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._failures: list[dict] = []
        self.calls: list[tuple[str, str]] = []

    def set_table_data(self, table_name: str, data: list):
        """Replace the rows of a table."""
        self._tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list:
        return self._tables.setdefault(table_name, [])

    def row(self, table_name: str, row_id: str) -> dict:
        return next(r for r in self.rows(table_name) if r.get("id") == row_id)

    def fail_on(self, table_name: str, op: str, skip: int = 0, times: int = 1):
        """Make the next matching execute() raise, after `skip` successful ones."""
        self._failures.append({"table": table_name, "op": op, "skip": skip, "times": times})

    def _maybe_fail(self, table_name: str, op: str):
        for rule in self._failures:
            if rule["table"] != table_name or rule["op"] != op or rule["times"] <= 0:
                continue
            if rule["skip"] > 0:
                rule["skip"] -= 1
                return
            rule["times"] -= 1
            raise SimulatedDatabaseFailure(f"{op} on {table_name} failed")

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(self, name)


# ===================
# FIXTURES
# ===================

PATCHED_CLIENT_MODULES = [
    "config.database",
    "services.product_service",
    "services.order_service",
    "services.stock_service",
    "services.production_task_service",
]


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [ProductFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Route every get_supabase_client() call to the mock and reset
    service singletons.
    """
    patches = [
        patch(f"{module}.get_supabase_client", return_value=mock_supabase)
        for module in PATCHED_CLIENT_MODULES
    ]
    patches += [
        patch("services.production_task_service._production_task_service", None),
        patch("services.planning_service._planning_service", None),
    ]
    for p in patches:
        p.start()
    try:
        yield mock_supabase
    finally:
        for p in reversed(patches):
            p.stop()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    FastAPI test client backed by the in-memory database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("production_tasks", [...])
            response = test_client_with_mock_db.get("/api/production/tasks")
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def actor_headers() -> dict:
    return {"X-User-Id": "user-operator-1"}
