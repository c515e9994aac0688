"""
tests/test_config.py -- Settings validation (core/config.py).

Settings() is constructed directly (not via the cached get_settings()) so
each case sees only the environment it sets up with monkeypatch.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_debug_generates_secret_key(monkeypatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = Settings(_env_file=None)
    assert len(settings.secret_key) >= 32


def test_production_requires_secret_key(monkeypatch) -> None:
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None)


def test_short_secret_key_rejected(monkeypatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("SECRET_KEY", "too-short")
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None)


def test_backend_url_trailing_slash_stripped(monkeypatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("BACKEND_URL", "http://licenses.internal:8080/")
    assert Settings(_env_file=None).backend_url == "http://licenses.internal:8080"


def test_devices_per_page_must_be_positive(monkeypatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("DEVICES_PER_PAGE", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("DEBUG", "true")
    for name in ("BACKEND_URL", "DEVICES_PER_PAGE", "SESSION_EXPIRE_SECONDS", "LOGIN_RATE_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.backend_url == "http://localhost:8080"
    assert settings.devices_per_page == 5
    assert settings.session_expire_seconds == 28800
    assert settings.login_rate_limit == "10/minute"
