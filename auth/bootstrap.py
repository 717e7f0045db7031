"""
auth/bootstrap.py -- Assemble a CredentialService from Settings.

Shared by the API lifespan and the operator CLI so both build the same
store / hasher / session wiring from the same environment.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from auth.hashing import PasswordHasher
from auth.service import CredentialService
from auth.sessions import InMemorySessionStore, SessionManager, SessionStore, SqlSessionStore
from auth.store import AccountStore
from core.config import Settings


def build_session_store(settings: Settings, engine: Engine | None = None) -> SessionStore:
    """Return the configured session store. A SQL store reuses engine when given one."""
    if settings.session_backend == "memory":
        return InMemorySessionStore()
    return SqlSessionStore(settings.database_url, engine=engine)


def build_credential_service(settings: Settings) -> CredentialService:
    """Return a CredentialService wired to the configured database and session backend.

    Accounts and SQL sessions share one engine (one pool) for DATABASE_URL.
    Callers own the result: close service.store and service.sessions on shutdown.
    """
    store = AccountStore(settings.database_url)
    sessions = SessionManager(
        build_session_store(settings, engine=store.engine),
        secret_key=settings.secret_key,
        ttl_seconds=settings.session_ttl_seconds,
    )
    return CredentialService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        sessions=sessions,
        username_max_length=settings.username_max_length,
    )
