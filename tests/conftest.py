"""
tests/conftest.py -- Shared test fixtures for OrgAccess.

This module provides:
  - store: a fresh file-backed SQLite CredentialStore per test (async tests)
  - api_client: TestClient over the real app with a patched lifespan
  - register: helper fixture that registers a user through the API

Design: each store lives in a pytest tmp directory rather than :memory:.
An in-memory SQLite database is per-connection, and the async engine hands
out several pooled connections, each of which would see a blank schema.

The environment variables below must be set before any project import:
  DEBUG=true             -- get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4        -- the minimum cost; keeps registration fast
  RATE_LIMIT_ENABLED=false -- the suite registers many users from one client
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from api.main import app
from auth.store import CredentialStore

PASSWORD = "C0mpl3xP@ssw0rd"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def store(tmp_path) -> AsyncIterator[CredentialStore]:
    """Yield an initialized CredentialStore backed by a throwaway SQLite file."""
    s = CredentialStore(f"sqlite+aiosqlite:///{tmp_path / 'orgaccess_test.db'}")
    await s.initialize()
    yield s
    await s.close()


def _patch_lifespan(db_url: str):
    """Return a lifespan that wires a test store into app.state.

    The store is created inside the lifespan so its connections belong to the
    TestClient's event loop.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = CredentialStore(db_url)
        await app.state.store.initialize()
        yield
        await app.state.store.close()

    return test_lifespan


# ---------------------------------------------------------------------------
# API fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(tmp_path_factory) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with an isolated store.

    Tests hit real route handlers, dependencies, and exception handlers.
    """
    db_path = tmp_path_factory.mktemp("api") / "orgaccess_api.db"
    app.router.lifespan_context = _patch_lifespan(f"sqlite+aiosqlite:///{db_path}")

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def register(api_client: TestClient) -> Callable[..., tuple[str, str]]:
    """Return a function that registers a user and yields (access_token, user_id).

    Emails must be unique per module because api_client is module-scoped.
    """

    def _register(first_name: str, email: str, last_name: str = "Doe") -> tuple[str, str]:
        resp = api_client.post(
            "/auth/register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": PASSWORD,
                "phone": "1234567890",
            },
        )
        assert resp.status_code == 201, f"Registration failed: {resp.status_code} {resp.text}"
        data = resp.json()["data"]
        return data["accessToken"], data["user"]["userId"]

    return _register
