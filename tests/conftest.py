"""
Shared test fixtures.

The store double is an in-memory async stand-in for the Supabase client:
it honours select/eq/limit filters, inserts assign ids, updates apply to
matching rows, and failures can be injected per table and operation.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

# Settings are read at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from typing import Any, Optional

from services.identity_provisioner import IdentityProvisioner
from services.import_service import ImportService


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Chainable query against one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._operation = "select"
        self._payload: Optional[dict] = None
        self._filters: list[tuple[str, Any]] = []
        self._limit: Optional[int] = None

    def select(self, *args, **kwargs):
        self._operation = "select"
        return self

    def insert(self, data: dict):
        self._operation = "insert"
        self._payload = dict(data)
        return self

    def update(self, data: dict):
        self._operation = "update"
        self._payload = dict(data)
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(row.get(column) == value for column, value in self._filters)

    async def execute(self) -> MockSupabaseResponse:
        self._client.calls.append({
            "table": self._table,
            "operation": self._operation,
            "payload": self._payload,
            "filters": list(self._filters),
        })

        failure = self._client.failures.get((self._table, self._operation))
        if failure is not None:
            raise failure

        rows = self._client.tables.setdefault(self._table, [])

        if self._operation == "insert":
            row = dict(self._payload)
            if not row.get("id"):
                self._client.id_counter += 1
                row["id"] = f"{self._table}-{self._client.id_counter}"
            rows.append(row)
            return MockSupabaseResponse([dict(row)])

        if self._operation == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return MockSupabaseResponse(updated)

        matched = [dict(row) for row in rows if self._matches(row)]
        count = len(matched)
        if self._limit is not None:
            matched = matched[:self._limit]
        return MockSupabaseResponse(matched, count)


class MockSupabaseClient:
    """In-memory async Supabase client."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[dict] = []
        self.id_counter = 0

    def set_table_data(self, table_name: str, data: list):
        """Seed a table with rows."""
        self.tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list[dict]:
        return self.tables.get(table_name, [])

    def fail_on(self, table_name: str, operation: str, error: Exception):
        """Make every <operation> on <table_name> raise error."""
        self.failures[(table_name, operation)] = error

    def writes(self, table_name: Optional[str] = None) -> list[dict]:
        """Insert/update calls, optionally for one table."""
        return [
            c for c in self.calls
            if c["operation"] in ("insert", "update")
            and (table_name is None or c["table"] == table_name)
        ]

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)


class MockPostgrestError(Exception):
    """Shape of a PostgREST API error (message, details, hint, code)."""

    def __init__(self, message: str, details: str = None, hint: str = None, code: str = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.hint = hint
        self.code = code


# ===================
# IDENTITY DOUBLES
# ===================

class ScriptedIdentityProvider:
    """
    Identity provider that replays scripted outcomes.

    Each outcome is a user id to return or an exception to raise. Once the
    script is exhausted, calls succeed with generated ids.
    """

    def __init__(self, outcomes: list = None):
        self.outcomes = list(outcomes or [])
        self.calls: list[tuple[str, str]] = []

    async def create_identity(self, email: str, password: str) -> str:
        self.calls.append((email, password))
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return f"auth-user-{len(self.calls)}"


class RecordingSleep:
    """Async sleep that records the delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Fresh in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("users", [
                {"id": "u1", "gym_id": "gym-1", "email": "a@b.com"}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def identity_provider() -> ScriptedIdentityProvider:
    return ScriptedIdentityProvider()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def provisioner(identity_provider, recording_sleep) -> IdentityProvisioner:
    """Provisioner with the default pacing that never actually sleeps."""
    return IdentityProvisioner(
        identity_provider,
        pacing_seconds=1.5,
        cooldown_seconds=10.0,
        sleep=recording_sleep,
    )


@pytest.fixture
def import_service(mock_supabase, provisioner) -> ImportService:
    return ImportService(mock_supabase, provisioner)
