"""
auth/policy.py -- Username format rules.

Pure functions, no I/O. The credential service calls validate_username()
before it touches the account store, so a rejected name never reaches SQL.
"""

from __future__ import annotations

import re
import string

from auth.errors import BadUsername

USERNAME_MAX_LENGTH = 64

# Explicit ASCII classes: \w would admit accented letters under re.UNICODE.
_USERNAME_RE = re.compile(r"[A-Za-z0-9_.\-]+")
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def validate_username(name: str, max_length: int = USERNAME_MAX_LENGTH) -> None:
    """Raise BadUsername unless name is 1..max_length chars of [A-Za-z0-9_.-]."""
    if not name or not name.strip():
        raise BadUsername("Username must not be empty.")
    if len(name) > max_length:
        raise BadUsername(f"Username must be at most {max_length} characters.")
    if _USERNAME_RE.fullmatch(name) is None:
        raise BadUsername()


def normalize_username(name: str) -> str:
    """Return the case-insensitive uniqueness key for name.

    Only ASCII letters fold. casefold() would map non-ASCII look-alikes such as
    the Kelvin sign onto plain ASCII names.
    """
    return name.translate(_ASCII_LOWER)
