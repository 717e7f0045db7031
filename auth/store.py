"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Service and route code never touches SQL.

Uniqueness:
  normalized_username is unique among ACTIVE rows only. A plain column-level
  UNIQUE would make soft-deleted names unreclaimable, so the constraint is a
  partial unique index (WHERE status = 'active'), supported by both SQLite and
  PostgreSQL. The index is the atomic check-and-insert: two concurrent inserts
  of the same name cannot both commit, and the loser's IntegrityError is
  re-raised as UsernameConflict.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB path: auth/stashbox_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Index, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account, AccountStatus

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("username", String(255), nullable=False),
    Column("normalized_username", String(255), nullable=False),
    Column("email", String(255), nullable=False, server_default=""),
    Column("password_hash", Text, nullable=False),
    Column("status", String(16), nullable=False, server_default=AccountStatus.ACTIVE.value),
    Column("created_at", String(32), nullable=False),
    Column("deleted_at", String(32)),
    Column("last_login", String(32)),
)

_ACTIVE_ONLY = text("status = 'active'")

Index(
    "uq_accounts_active_normalized_username",
    _accounts.c.normalized_username,
    unique=True,
    sqlite_where=_ACTIVE_ONLY,
    postgresql_where=_ACTIVE_ONLY,
)


class UsernameConflict(Exception):
    """An active account already holds this normalized username."""


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite threading and WAL settings applied."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore()
        account = store.insert(Account(username="alice", normalized_username="alice",
                                       email="a@example.com", password_hash=digest))
        store.find_active_by_normalized_name("alice")
        store.close()
    """

    def __init__(self, db_url: str = "", engine: Engine | None = None) -> None:
        self.engine: Engine = engine if engine is not None else make_engine(db_url)
        _metadata.create_all(self.engine)

    def insert(self, account: Account) -> Account:
        """Insert a new ACTIVE account and return it with id and created_at set.

        Raises UsernameConflict if an active account already holds the
        normalized username. Deleted accounts never conflict.
        """
        account_id = uuid.uuid4().hex
        created_at = now_iso()
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _accounts.insert().values(
                        id=account_id,
                        username=account.username,
                        normalized_username=account.normalized_username,
                        email=account.email,
                        password_hash=account.password_hash,
                        status=AccountStatus.ACTIVE.value,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise UsernameConflict(account.normalized_username) from exc
        return Account(
            id=account_id,
            username=account.username,
            normalized_username=account.normalized_username,
            email=account.email,
            password_hash=account.password_hash,
            status=AccountStatus.ACTIVE,
            created_at=created_at,
        )

    def find_active_by_normalized_name(self, normalized_username: str) -> Account | None:
        """Return the ACTIVE account holding normalized_username, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _accounts.select().where(
                    (_accounts.c.normalized_username == normalized_username)
                    & (_accounts.c.status == AccountStatus.ACTIVE.value)
                )
            ).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: str) -> Account | None:
        """Look up an account by id regardless of status. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def update_password_hash(self, account_id: str, password_hash: str) -> bool:
        """Replace the stored digest. Returns False if the account is missing or deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update()
                .where((_accounts.c.id == account_id) & (_accounts.c.status == AccountStatus.ACTIVE.value))
                .values(password_hash=password_hash)
            )
            conn.commit()
        return result.rowcount > 0

    def soft_delete(self, account_id: str) -> bool:
        """Mark an active account DELETED. The row stays; its username is released.

        Returns True if a row changed, False if the account was missing or
        already deleted.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update()
                .where((_accounts.c.id == account_id) & (_accounts.c.status == AccountStatus.ACTIVE.value))
                .values(status=AccountStatus.DELETED.value, deleted_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, account_id: str) -> None:
        """Stamp the current UTC timestamp as last_login."""
        with self.engine.connect() as conn:
            conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(last_login=now_iso()))
            conn.commit()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        normalized_username=row.normalized_username,
        email=row.email,
        password_hash=row.password_hash,
        status=AccountStatus(row.status),
        created_at=row.created_at,
        deleted_at=row.deleted_at,
        last_login=row.last_login,
    )
