"""Tests for core/config.py -- SECRET_KEY policy and token lifetime validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings
from tests.conftest import TEST_SECRET


def test_debug_mode_generates_secret_key() -> None:
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_production_requires_secret_key() -> None:
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short")


def test_explicit_secret_key_kept() -> None:
    assert Settings(debug=False, secret_key=TEST_SECRET).secret_key == TEST_SECRET


def test_default_token_policy() -> None:
    settings = Settings(secret_key=TEST_SECRET)
    assert settings.access_token_expire_seconds < settings.refresh_token_expire_seconds
    assert settings.token_leeway_seconds == 0
    assert settings.refresh_grace_seconds == 0
    assert settings.rotate_refresh_tokens is False


@pytest.mark.parametrize(
    "access,refresh",
    [(3600, 3600), (7200, 3600), (0, 3600), (60, -1)],
)
def test_invalid_lifetimes_rejected(access: int, refresh: int) -> None:
    with pytest.raises(ValidationError):
        Settings(
            secret_key=TEST_SECRET,
            access_token_expire_seconds=access,
            refresh_token_expire_seconds=refresh,
        )


def test_negative_grace_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(secret_key=TEST_SECRET, refresh_grace_seconds=-5)


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", TEST_SECRET)
    monkeypatch.setenv("ROTATE_REFRESH_TOKENS", "true")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_SECONDS", "120")
    settings = Settings()
    assert settings.rotate_refresh_tokens is True
    assert settings.access_token_expire_seconds == 120


def test_over_long_seed_password_rejected() -> None:
    with pytest.raises(ValidationError, match="72 bytes"):
        Settings(secret_key=TEST_SECRET, seed_username="admin", seed_password="é" * 40)
