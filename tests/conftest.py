"""
tests/conftest.py -- Shared test fixtures for Tokengate.

This module provides:
  - make_stores(): isolated named shared-memory SQLite stores
  - codec / issuer: a TokenCodec with a fixed secret and a controllable clock
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG and ALLOWED_HOSTS must be set before any api/core import so
get_settings() auto-generates SECRET_KEY and TrustedHostMiddleware accepts
TestClient's "testserver" host.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any api/core import (see module docstring).
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from auth.codec import TokenCodec
from auth.issuer import TokenIssuer
from auth.models import Member
from auth.store import MemberStore, RefreshTokenStore
from auth.verifier import hash_password

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters-long"


class FakeClock:
    """Manually advanced clock so expiry tests never sleep."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def make_stores() -> tuple[MemberStore, RefreshTokenStore]:
    """Create a MemberStore + RefreshTokenStore pair over one fresh in-memory DB."""
    url = _memory_url("test_auth")
    return MemberStore(url), RefreshTokenStore(url)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    return TokenCodec(TEST_SECRET, clock=clock)


@pytest.fixture
def issuer(codec: TokenCodec) -> TokenIssuer:
    return TokenIssuer(codec, access_ttl=900, refresh_ttl=86400)


@pytest.fixture
def stores() -> Generator[tuple[MemberStore, RefreshTokenStore], None, None]:
    members, refresh_tokens = make_stores()
    yield members, refresh_tokens
    members.close()
    refresh_tokens.close()


@pytest.fixture
def member_store(stores) -> MemberStore:
    return stores[0]


@pytest.fixture
def refresh_store(stores) -> RefreshTokenStore:
    return stores[1]


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, access_token) for API integration tests.

    The app is the real FastAPI app; only the lifespan is swapped so the
    services sit on an isolated in-memory DB. A member "testuser" with
    password "testpass123" and role "admin" exists before the client starts.
    The access token is signed by the app's own codec.
    """
    from api.limiter import limiter
    from api.main import app, codec
    from api.services import build_services
    from core.config import get_settings

    members, refresh_tokens = make_stores()
    members.create_member(Member(username="testuser", hashed_password=hash_password("testpass123"), role="admin"))
    services = build_services(get_settings(), codec, members, refresh_tokens)

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.services = services
        yield
        services.close()

    app.router.lifespan_context = test_lifespan
    limiter.reset()

    token = services.issuer.issue_access_token(services.verifier.verify("testuser", "testpass123"))

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """Keep login throttling from leaking between tests."""
    from api.limiter import limiter

    limiter.reset()
