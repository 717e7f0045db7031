"""Tests for auth/bootstrap.py wiring and the API lifespan built on it."""

import asyncio
from types import SimpleNamespace

import api.main as api_main
from auth.bootstrap import build_credential_service
from auth.sessions import InMemorySessionStore, SqlSessionStore
from conftest import TEST_SECRET
from core.config import Settings


def _settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        debug=True,
        secret_key=TEST_SECRET,
        database_url=f"sqlite:///{tmp_path / 'boot.db'}",
        bcrypt_rounds=4,
        **overrides,
    )


def test_sql_sessions_share_the_account_engine(tmp_path):
    service = build_credential_service(_settings(tmp_path))
    try:
        assert isinstance(service.sessions.store, SqlSessionStore)
        assert service.sessions.store.engine is service.store.engine
        signed_in = service.register("alice", "password1", "")
        assert service.sessions.resolve(signed_in.session.token) == signed_in.account.id
    finally:
        service.sessions.close()
        service.store.close()


def test_memory_backend(tmp_path):
    service = build_credential_service(_settings(tmp_path, session_backend="memory"))
    try:
        assert isinstance(service.sessions.store, InMemorySessionStore)
    finally:
        service.sessions.close()
        service.store.close()


def test_lifespan_collects_the_purge_task(tmp_path, monkeypatch):
    monkeypatch.setattr(api_main, "settings", _settings(tmp_path))
    fake_app = SimpleNamespace(state=SimpleNamespace())

    async def start_and_stop():
        async with api_main.lifespan(fake_app):
            assert not fake_app.state.purge_task.done()

    asyncio.run(start_and_stop())
    assert fake_app.state.purge_task.cancelled()
