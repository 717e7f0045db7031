"""
tests/conftest.py -- Shared test fixtures for Stashbox identity tests.

This module provides:
  - make_service(): a CredentialService on an isolated shared-memory SQLite DB
  - _patch_lifespan(): wires a test service into app.state, bypassing real startup
  - service / client / agent fixtures built on the two helpers above

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DEBUG must be set before any api/ import so get_settings() auto-generates
SECRET_KEY in dev mode instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.hashing import PasswordHasher
from auth.service import CredentialService
from auth.sessions import SessionManager, SqlSessionStore
from auth.store import AccountStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"

# bcrypt's minimum work factor; keeps the suite fast.
TEST_ROUNDS = 4


def make_service(ttl_seconds: int = 0, clock: Callable[[], float] | None = None) -> CredentialService:
    """Build a CredentialService on a fresh, uniquely named in-memory database."""
    db_url = f"sqlite:///file:test_stashbox_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    kwargs = {"clock": clock} if clock is not None else {}
    sessions = SessionManager(SqlSessionStore(db_url), secret_key=TEST_SECRET, ttl_seconds=ttl_seconds, **kwargs)
    return CredentialService(AccountStore(db_url), PasswordHasher(rounds=TEST_ROUNDS), sessions)


def _patch_lifespan(service: CredentialService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test service into app.state so TestClient routes see
    an isolated test DB. No purge task is started.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.credentials = service
        app.state.account_store = service.store
        app.state.sessions = service.sessions
        yield

    return test_lifespan


@pytest.fixture
def service() -> Generator[CredentialService, None, None]:
    svc = make_service()
    yield svc
    svc.sessions.close()
    svc.store.close()


@pytest.fixture
def client(service: CredentialService) -> Generator[TestClient, None, None]:
    """TestClient against the real app, backed by the per-test service."""
    app.router.lifespan_context = _patch_lifespan(service)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def agent(client: TestClient) -> Callable[[], TestClient]:
    """Factory for extra clients with their own cookie jar.

    They share the app (and so the service wired in by `client`) but not
    cookies, like separate browsers talking to the same server. The lifespan
    is only entered once, by `client`.
    """

    def _make() -> TestClient:
        return TestClient(app, raise_server_exceptions=True)

    return _make


def register(client: TestClient, name: str, password: str, email: str | None = None):
    return client.post(
        "/api/v1/auth/local/register",
        json={"name": name, "password": password, "email": email or f"{name}@example.com"},
    )


def login(client: TestClient, name: str, password: str):
    return client.post("/api/v1/auth/local", json={"name": name, "password": password})
