"""Unit tests for core/config.py -- SECRET_KEY policy and defaults."""

import pytest
from pydantic import ValidationError

from core.config import DEFAULT_CSP, Settings


def test_production_requires_secret_key():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debug=False, secret_key="")


def test_short_secret_key_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debug=True, secret_key="too-short")


def test_debug_generates_secret_key():
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_defaults():
    settings = Settings(_env_file=None, debug=True)
    assert settings.session_backend == "sql"
    assert settings.session_ttl_seconds == 14 * 24 * 3600
    assert settings.bcrypt_rounds == 12
    assert settings.content_security_policy == DEFAULT_CSP


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debug=True, bcrypt_rounds=3)
