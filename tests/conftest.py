"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test client fixtures for FastAPI
- Mock API key and auth header fixtures
- Mock environment variables
- An in-memory stand-in for the Supabase client used by the coin ledger
"""

import os
import pytest
import pytest_asyncio
from types import SimpleNamespace
from httpx import AsyncClient, ASGITransport
from unittest.mock import patch, MagicMock


TEST_ENV = {
    "API_KEY": "test-api-key",
    "CRON_API_KEY": "test-cron-key",
    "ALLOWED_ORIGIN": "*",
    "CACHE_DIR": "./test_cache",
    "CACHE_TTL_HOURS": "3",
    "YTDLP_BINARY": "./bin/yt-dlp",
    "MAX_CONCURRENT_EXTRACTIONS": "2",
    "REQUEST_TIMEOUT": "5",
    "WELCOME_BONUS_COINS": "50",
    "ALLOW_ANONYMOUS": "true",
    "MONTHLY_CREDIT_ENABLED": "false",
}

# Settings are read once at import time, so the test values must be in
# place before any fetchsub module is imported by a test module.
os.environ.update(TEST_ENV)
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_SERVICE_KEY", None)


@pytest.fixture(scope="session")
def mock_env_vars():
    """Mock environment variables for testing."""
    with patch.dict(os.environ, TEST_ENV):
        yield


@pytest.fixture
def api_key():
    """Return test API key."""
    return "test-api-key"


@pytest.fixture
def api_headers(api_key):
    """Return headers with API key."""
    return {"X-API-Key": api_key}


@pytest.fixture
def cron_headers():
    return {"Authorization": "Bearer test-cron-key"}


@pytest.fixture
def anonymous_headers():
    return {"X-Anonymous-User": "true"}


@pytest.fixture
def user_headers():
    return {"Authorization": "Bearer user-token"}


@pytest_asyncio.fixture
async def client(mock_env_vars):
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server.
    """
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class FakeAPIError(Exception):
    """Shaped like postgrest's APIError: carries code and message."""

    def __init__(self, code, message):
        self.code = code
        self.message = message
        super().__init__(message)


class FakeQuery:
    """Chainable query over one in-memory table, mimicking supabase-py."""

    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.op = "select"
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def upsert(self, row, on_conflict=None):
        self.op, self.payload = "upsert", (row, on_conflict)
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        rows = self.db.tables.setdefault(self.name, [])
        if self.op == "insert":
            if self.name in self.db.fail_inserts:
                raise FakeAPIError("23505", "duplicate key value")
            row = dict(self.payload)
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])
        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)
        if self.op == "upsert":
            new_row, key = self.payload
            key = key or "id"
            for row in rows:
                if row.get(key) == new_row.get(key):
                    row.update(new_row)
                    return SimpleNamespace(data=[dict(row)])
            rows.append(dict(new_row))
            return SimpleNamespace(data=[dict(new_row)])

        result = [dict(row) for row in rows if self._matches(row)]
        if self._order:
            column, desc = self._order
            result.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self._limit is not None:
            result = result[:self._limit]
        return SimpleNamespace(data=result)


class FakeSupabase:
    """
    In-memory Supabase client with the spend_user_coins function.

    Set `rpc_installed = False` to get PGRST202 from rpc(), like a project
    where the function was never created.
    """

    def __init__(self):
        self.tables = {}
        self.fail_inserts = set()
        self.rpc_installed = True
        self.rpc_calls = []
        self.auth = MagicMock()

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        self.rpc_calls.append((name, params))
        db = self

        class _Call:
            def execute(self_inner):
                if not db.rpc_installed or name != "spend_user_coins":
                    raise FakeAPIError("PGRST202", f"Could not find the function public.{name}")
                for row in db.tables.get("user_coins", []):
                    if row["user_id"] == params["p_user_id"]:
                        if row["balance"] < params["p_amount"]:
                            raise FakeAPIError("P0001", "Insufficient balance")
                        row["balance"] -= params["p_amount"]
                        row["total_spent"] = row.get("total_spent", 0) + params["p_amount"]
                        db.tables.setdefault("coin_transactions", []).append({
                            "user_id": params["p_user_id"],
                            "transaction_id": params["p_transaction_id"],
                            "type": "SPENT",
                            "amount": params["p_amount"],
                            "description": params["p_description"],
                            "created_at": params["p_created_at"],
                        })
                        return SimpleNamespace(data=row["balance"])
                raise FakeAPIError("P0002", "User not found")

        return _Call()


@pytest.fixture
def fake_supabase():
    """
    Route every service's Supabase access to one in-memory client.

    The auth client resolves "user-token" to user-123.
    """
    fake = FakeSupabase()
    fake.auth.get_user.side_effect = lambda token: SimpleNamespace(
        user=SimpleNamespace(id="user-123", email="user@example.com") if token == "user-token" else None
    )
    with patch("fetchsub.services.supabase_service.supabase_client", fake):
        yield fake


@pytest.fixture
def sample_vtt():
    return (
        "WEBVTT\n"
        "Kind: captions\n"
        "Language: en\n"
        "\n"
        "00:00:00.000 --> 00:00:02.500 align:start position:0%\n"
        "Hello and welcome\n"
        "\n"
        "00:00:02.500 --> 00:00:05.000\n"
        "to the <c>channel</c>\n"
        "today we talk\n"
        "\n"
        "00:00:05.000 --> 00:00:07.000\n"
        "it&#39;s great\n"
    )


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def playlist_url():
    return "https://www.youtube.com/playlist?list=PLabc123"


@pytest.fixture(autouse=True)
def clear_caches():
    """Transcript caches are module-level; start every test empty."""
    from fetchsub.services.cache_service import clear_memory_caches
    clear_memory_caches()
    yield
    clear_memory_caches()
