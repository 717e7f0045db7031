"""
auth/sessions.py -- Session issuing, resolution and revocation.

SessionManager owns the token lifecycle; where records live is the job of an
injected SessionStore:

  InMemorySessionStore -- dict guarded by a lock. Single process, lost on restart.
  SqlSessionStore      -- SQLAlchemy Core table, shared by every worker that
                          points at the same DATABASE_URL.

Security design:
  Tokens are secrets.token_urlsafe(32) -- 256 bits, unguessable. Stores only
  ever see HMAC-SHA256(SECRET_KEY, token). A copy of the sessions table is
  useless without SECRET_KEY, and the digest is deterministic so lookup
  stays O(1).

  Every resolve() reads the store; there is no cache in front of it, so a
  destroyed session is rejected on the very next request.

Expiry:
  ttl_seconds > 0 gives each session an absolute expiry. ttl_seconds == 0
  keeps a session until logout or account deletion. Expired records are
  deleted lazily on resolve() and in bulk by purge_expired().

Layer rule: no imports from api/.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Float, MetaData, String, Table
from sqlalchemy.engine import Engine

from auth.models import Session
from auth.store import make_engine, now_iso

logger = logging.getLogger("stashbox.sessions")


@dataclass
class SessionRecord:
    """What a SessionStore persists. expires_at is epoch seconds (None = no expiry)."""

    token_hash: str
    account_id: str
    created_at: str
    expires_at: float | None = None


class SessionStore(Protocol):
    def add(self, record: SessionRecord) -> None: ...

    def get(self, token_hash: str) -> SessionRecord | None: ...

    def delete(self, token_hash: str) -> bool: ...

    def delete_for_account(self, account_id: str) -> int: ...

    def delete_expired(self, now: float) -> int: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemorySessionStore:
    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.token_hash] = record

    def get(self, token_hash: str) -> SessionRecord | None:
        with self._lock:
            return self._records.get(token_hash)

    def delete(self, token_hash: str) -> bool:
        with self._lock:
            return self._records.pop(token_hash, None) is not None

    def delete_for_account(self, account_id: str) -> int:
        with self._lock:
            doomed = [h for h, r in self._records.items() if r.account_id == account_id]
            for h in doomed:
                del self._records[h]
        return len(doomed)

    def delete_expired(self, now: float) -> int:
        with self._lock:
            doomed = [h for h, r in self._records.items() if r.expires_at is not None and r.expires_at <= now]
            for h in doomed:
                del self._records[h]
        return len(doomed)

    def close(self) -> None:
        with self._lock:
            self._records.clear()


# ---------------------------------------------------------------------------
# SQL store
# ---------------------------------------------------------------------------

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("token_hash", String(64), primary_key=True),  # HMAC-SHA256 hex
    Column("account_id", String(32), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("expires_at", Float),  # epoch seconds; NULL = until logout
)


class SqlSessionStore:
    def __init__(self, db_url: str = "", engine: Engine | None = None) -> None:
        self.engine: Engine = engine if engine is not None else make_engine(db_url)
        _metadata.create_all(self.engine)

    def add(self, record: SessionRecord) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    token_hash=record.token_hash,
                    account_id=record.account_id,
                    created_at=record.created_at,
                    expires_at=record.expires_at,
                )
            )
            conn.commit()

    def get(self, token_hash: str) -> SessionRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token_hash == token_hash)).fetchone()
        if row is None:
            return None
        return SessionRecord(
            token_hash=row.token_hash,
            account_id=row.account_id,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def delete(self, token_hash: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.token_hash == token_hash))
            conn.commit()
        return result.rowcount > 0

    def delete_for_account(self, account_id: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.account_id == account_id))
            conn.commit()
        return result.rowcount

    def delete_expired(self, now: float) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.delete().where(_sessions.c.expires_at.is_not(None) & (_sessions.c.expires_at <= now))
            )
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class SessionManager:
    """Issue, resolve and revoke opaque session tokens.

    Usage:
        sessions = SessionManager(InMemorySessionStore(), secret_key, ttl_seconds=3600)
        session = sessions.create(account.id)
        sessions.resolve(session.token)   # -> account.id
        sessions.destroy(session.token)
        sessions.resolve(session.token)   # -> None
    """

    def __init__(
        self,
        store: SessionStore,
        secret_key: str,
        ttl_seconds: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._key = secret_key.encode("utf-8")
        self._clock = clock

    def _digest(self, token: str) -> str:
        return hmac.new(self._key, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def create(self, account_id: str) -> Session:
        token = secrets.token_urlsafe(32)
        expires_at: float | None = None
        if self.ttl_seconds > 0:
            expires_at = self._clock() + self.ttl_seconds
        created_at = now_iso()
        self.store.add(
            SessionRecord(
                token_hash=self._digest(token),
                account_id=account_id,
                created_at=created_at,
                expires_at=expires_at,
            )
        )
        return Session(
            token=token,
            account_id=account_id,
            created_at=created_at,
            expires_at=_epoch_to_iso(expires_at),
        )

    def resolve(self, token: str | None) -> str | None:
        """Return the account id bound to token, or None if it is unknown, destroyed or expired."""
        if not token:
            return None
        token_hash = self._digest(token)
        record = self.store.get(token_hash)
        if record is None:
            return None
        if record.expires_at is not None and record.expires_at <= self._clock():
            self.store.delete(token_hash)
            return None
        return record.account_id

    def destroy(self, token: str | None) -> None:
        """Revoke token. Unknown or empty tokens are a no-op."""
        if token:
            self.store.delete(self._digest(token))

    def destroy_all(self, account_id: str) -> int:
        """Revoke every session bound to account_id. Returns how many were removed."""
        return self.store.delete_for_account(account_id)

    def purge_expired(self) -> int:
        removed = self.store.delete_expired(self._clock())
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed

    def close(self) -> None:
        self.store.close()


def _epoch_to_iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
