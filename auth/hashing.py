"""
auth/hashing.py -- Password hashing with bcrypt.

bcrypt only looks at the first 72 bytes of its input. Older releases silently
truncate longer passwords, so two long passwords sharing a 72-byte prefix would
hash identically; bcrypt 5 raises ValueError instead. Either way the boundary
is enforced here, before bcrypt sees the input:

  check()  -- rejects < 8 characters or > 72 UTF-8 bytes with InvalidPassword.
  hash()   -- check() then bcrypt with a fresh salt.
  verify() -- a > 72-byte candidate can never match; it returns False without
              calling bcrypt.

Using bcrypt directly rather than passlib: passlib's wrap-bug probe hashes a
password longer than 72 bytes, which bcrypt 4.x+ rejects.
"""

from __future__ import annotations

from functools import cached_property

import bcrypt

from auth.errors import InvalidPassword

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = 72


class PasswordHasher:
    """Salted, adaptive password hashing.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("hunter22")
        hasher.verify("hunter22", digest)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def check(self, password: str) -> None:
        """Raise InvalidPassword if password is outside [8 chars, 72 bytes]."""
        if len(password) < PASSWORD_MIN_LENGTH:
            raise InvalidPassword(f"Passwords must be at least {PASSWORD_MIN_LENGTH} characters.")
        if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise InvalidPassword(f"Passwords must be at most {PASSWORD_MAX_BYTES} bytes.")

    def hash(self, password: str) -> str:
        self.check(password)
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, digest: str) -> bool:
        """Return True if password matches digest. Never truncates."""
        raw = password.encode("utf-8")
        if len(raw) > PASSWORD_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, digest.encode("utf-8"))
        except ValueError:
            # Malformed or foreign digest
            return False

    # Timing equalization [C1]. Lazily computed so constructing a hasher is
    # cheap, then reused for every unknown-username login.
    @cached_property
    def _dummy_hash(self) -> str:
        return self.hash("stashbox_timing_dummy")

    def burn(self, password: str) -> None:
        """Spend one verify's worth of work without a real digest.

        Called when a login names an account that does not exist, so response
        time does not reveal whether the username is registered.
        """
        self.verify(password, self._dummy_hash)
