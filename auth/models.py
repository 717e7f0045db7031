"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Stores and the
credential service do the work; these only own the shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AccountStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


@dataclass
class Account:
    """A registered Stashbox identity.

    normalized_username is the case-folded uniqueness key. It is only unique
    among ACTIVE rows: a soft-deleted account keeps its row but no longer
    blocks a new registration with the same name.

    password_hash is always a bcrypt digest produced by auth.hashing.
    """

    username: str
    normalized_username: str
    email: str
    password_hash: str
    id: str | None = None  # uuid4 hex, assigned by AccountStore.insert()
    status: AccountStatus = AccountStatus.ACTIVE
    created_at: str | None = None
    deleted_at: str | None = None
    last_login: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is AccountStatus.ACTIVE


@dataclass
class Session:
    """An issued login session.

    token is the raw bearer value handed to the client. It is only present on
    the object returned by SessionManager.create(); stores never persist it.
    """

    token: str
    account_id: str
    created_at: str
    expires_at: str | None = None  # None = valid until logout
