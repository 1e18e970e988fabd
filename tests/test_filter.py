"""Tests for auth/filter.py -- bearer extraction and the ASGI authentication filter.

The middleware tests mount AuthenticationFilter on a throwaway FastAPI app
whose single route echoes whatever principal it received. That checks the
filter's contract in isolation: it attaches a principal or None, and it
always lets the request through.
"""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from auth.codec import TokenCodec
from auth.dependencies import get_principal
from auth.filter import AuthenticationFilter, extract_bearer_token, resolve_principal
from auth.models import Principal

# ---------------------------------------------------------------------------
# extract_bearer_token
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("Bearer   padded  ", "padded"),
        ("bearer abc", None),
        ("BEARER abc", None),
        ("Bearerabc", None),
        ("Basic dXNlcjpwdw==", None),
        ("Bearer ", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected) -> None:
    assert extract_bearer_token(header) == expected


# ---------------------------------------------------------------------------
# resolve_principal
# ---------------------------------------------------------------------------


def test_valid_token_yields_principal(codec: TokenCodec) -> None:
    token = codec.issue("alice", "admin", 60)
    assert resolve_principal(f"Bearer {token}", codec) == Principal("alice", "admin")


def test_refresh_token_does_not_authenticate(codec: TokenCodec) -> None:
    token = codec.issue("alice", None, 60)
    assert codec.validate(token).valid
    assert resolve_principal(f"Bearer {token}", codec) is None


def test_empty_scope_access_token_authenticates(codec: TokenCodec) -> None:
    token = codec.issue("alice", "", 60)
    assert resolve_principal(f"Bearer {token}", codec) == Principal("alice", "")


def test_expired_token_yields_none(codec: TokenCodec, clock) -> None:
    token = codec.issue("alice", "admin", 1)
    clock.advance(5)
    assert resolve_principal(f"Bearer {token}", codec) is None


def test_forged_token_yields_none(codec: TokenCodec, clock) -> None:
    forged = TokenCodec("z" * 40, clock=clock).issue("alice", "admin", 60)
    assert resolve_principal(f"Bearer {forged}", codec) is None


def test_wrong_scheme_yields_none(codec: TokenCodec) -> None:
    token = codec.issue("alice", "admin", 60)
    assert resolve_principal(f"Token {token}", codec) is None


# ---------------------------------------------------------------------------
# AuthenticationFilter (ASGI)
# ---------------------------------------------------------------------------


@pytest.fixture
def echo_client(codec: TokenCodec) -> TestClient:
    app = FastAPI()
    app.add_middleware(AuthenticationFilter, codec=codec)

    @app.get("/whoami")
    async def whoami(principal: Principal | None = Depends(get_principal)) -> dict:
        if principal is None:
            return {"authenticated": False}
        return {"authenticated": True, "identifier": principal.identifier, "scope": principal.scope}

    return TestClient(app)


class TestAuthenticationFilter:
    def test_no_header_passes_through_anonymous(self, echo_client: TestClient) -> None:
        resp = echo_client.get("/whoami")
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": False}

    def test_valid_bearer_attaches_principal(self, echo_client: TestClient, codec: TokenCodec) -> None:
        token = codec.issue("alice", "admin", 60)
        resp = echo_client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": True, "identifier": "alice", "scope": "admin"}

    @pytest.mark.parametrize(
        "header",
        ["Bearer not-a-token", "Bearer a.b.c", "Basic dXNlcjpwdw==", "Bearer", "bearer x.y.z"],
    )
    def test_bad_header_passes_through_anonymous(self, echo_client: TestClient, header: str) -> None:
        resp = echo_client.get("/whoami", headers={"Authorization": header})
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": False}

    def test_expired_token_passes_through_anonymous(self, echo_client: TestClient, codec: TokenCodec, clock) -> None:
        token = codec.issue("alice", "admin", 1)
        clock.advance(2)
        resp = echo_client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": False}

    def test_principal_does_not_leak_between_requests(self, echo_client: TestClient, codec: TokenCodec) -> None:
        token = codec.issue("alice", "admin", 60)
        assert echo_client.get("/whoami", headers={"Authorization": f"Bearer {token}"}).json()["authenticated"]
        assert echo_client.get("/whoami").json() == {"authenticated": False}

    def test_refresh_token_passes_through_anonymous(self, echo_client: TestClient, issuer) -> None:
        refresh = issuer.issue_refresh_token("alice")
        resp = echo_client.get("/whoami", headers={"Authorization": f"Bearer {refresh}"})
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": False}
