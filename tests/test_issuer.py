"""Unit tests for auth/issuer.py -- access/refresh pair issuance."""

from __future__ import annotations

import pytest

from auth.codec import TokenCodec
from auth.issuer import TokenIssuer
from auth.models import GRANT_TYPE, Principal


def test_pair_has_bearer_grant_type(issuer: TokenIssuer) -> None:
    pair = issuer.issue_token_pair(Principal("alice", "user"))
    assert pair.grant_type == GRANT_TYPE == "Bearer"


def test_access_token_carries_subject_and_scope(issuer: TokenIssuer, codec: TokenCodec) -> None:
    pair = issuer.issue_token_pair(Principal("alice", "admin"))
    claims = codec.validate(pair.access_token).claims
    assert claims["sub"] == "alice"
    assert claims["scope"] == "admin"


def test_refresh_token_carries_subject_only(issuer: TokenIssuer, codec: TokenCodec) -> None:
    pair = issuer.issue_token_pair(Principal("alice", "admin"))
    claims = codec.validate(pair.refresh_token).claims
    assert claims["sub"] == "alice"
    assert "scope" not in claims


def test_lifetimes_differ(issuer: TokenIssuer, codec: TokenCodec) -> None:
    pair = issuer.issue_token_pair(Principal("alice", "user"))
    access = codec.validate(pair.access_token).claims
    refresh = codec.validate(pair.refresh_token).claims
    assert access["exp"] - access["iat"] == 900
    assert refresh["exp"] - refresh["iat"] == 86400


def test_access_token_dies_before_refresh_token(issuer: TokenIssuer, codec: TokenCodec, clock) -> None:
    pair = issuer.issue_token_pair(Principal("alice", "user"))
    clock.advance(901)
    assert not codec.validate(pair.access_token).valid
    assert codec.validate(pair.refresh_token).valid


def test_two_issuances_are_independent(issuer: TokenIssuer) -> None:
    first = issuer.issue_token_pair(Principal("alice", "user"))
    second = issuer.issue_token_pair(Principal("alice", "user"))
    assert first.access_token != second.access_token
    assert first.refresh_token != second.refresh_token


def test_access_ttl_must_be_shorter(codec: TokenCodec) -> None:
    with pytest.raises(ValueError):
        TokenIssuer(codec, access_ttl=3600, refresh_ttl=60)
