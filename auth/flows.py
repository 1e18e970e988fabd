"""
auth/flows.py -- Login and refresh-token rotation.

Both flows are built once at startup with concrete collaborators (explicit
composition -- see api/services.py build_services()) and return AuthResult values
instead of raising. The HTTP layer turns a rejected AuthResult into a 401
carrying failure.value as the error code.

Rotation state machine:

    PRESENTED -> STORE_CHECKED -> SIGNATURE_CHECKED -> REISSUED
        \\              \\                 \\
         +--------------+-----------------+--> REJECTED(reason)

Policy knobs (all from Settings):
  grace_seconds  -- how long past exp a validly signed refresh token may still
                    renew. 0 rejects on expiry.
  rotate_refresh -- revoke the presented refresh token (atomically, before
                    anything is issued) and hand out a new one on every
                    renewal. Off: the same refresh token stays valid.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from auth.codec import TokenCodec
from auth.issuer import TokenIssuer
from auth.models import AuthFailure, AuthResult, Principal, TokenPair
from auth.store import RefreshTokenStore
from auth.verifier import CredentialVerifier

logger = logging.getLogger("tokengate.auth")


class RotationState(str, Enum):
    PRESENTED = "presented"
    STORE_CHECKED = "store_checked"
    SIGNATURE_CHECKED = "signature_checked"
    REISSUED = "reissued"
    REJECTED = "rejected"


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class LoginFlow:
    """Credentials in, TokenPair out. The refresh half is persisted here."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        issuer: TokenIssuer,
        refresh_store: RefreshTokenStore,
    ) -> None:
        self.verifier = verifier
        self.issuer = issuer
        self.refresh_store = refresh_store

    def login(self, identifier: str, secret: str) -> AuthResult:
        principal = self.verifier.verify(identifier, secret)
        if principal is None:
            logger.info("Login rejected for %r", identifier)
            return AuthResult.rejected(AuthFailure.INVALID_CREDENTIALS)

        pair = self.issuer.issue_token_pair(principal)
        self.refresh_store.save(pair.refresh_token)
        logger.info("Login succeeded for %r", principal.identifier)
        return AuthResult.issued(pair, principal.identifier)


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------


class RotationFlow:
    """Exchange a refresh token for a new access token bound to the same subject.

    resolve_scope(subject) returns the scope the new access token should
    carry, or None if the subject may no longer renew. Without a resolver the
    new access token carries an empty scope.
    """

    def __init__(
        self,
        codec: TokenCodec,
        issuer: TokenIssuer,
        refresh_store: RefreshTokenStore,
        resolve_scope: Callable[[str], str | None] | None = None,
        grace_seconds: int = 0,
        rotate_refresh: bool = False,
    ) -> None:
        self.codec = codec
        self.issuer = issuer
        self.refresh_store = refresh_store
        self.resolve_scope = resolve_scope
        self.grace_seconds = grace_seconds
        self.rotate_refresh = rotate_refresh

    def rotate(self, refresh_token: str) -> AuthResult:
        state = RotationState.PRESENTED

        if self.refresh_store.find_by_value(refresh_token) is None:
            return self._reject(state, AuthFailure.UNKNOWN_REFRESH_TOKEN)
        state = self._advance(state, RotationState.STORE_CHECKED)

        result = self.codec.validate(refresh_token)
        if result.valid:
            claims = result.claims
        elif result.failure is AuthFailure.EXPIRED:
            claims = self.codec.parse_claims_unsafe(refresh_token)
            if claims is None or self.codec.is_expired(claims, grace=self.grace_seconds):
                return self._reject(state, AuthFailure.EXPIRED)
            logger.debug("Accepting expired refresh token inside %ds grace window", self.grace_seconds)
        elif result.failure is AuthFailure.MISSING_SUBJECT_CLAIM:
            claims = {}
        else:
            return self._reject(state, result.failure)
        state = self._advance(state, RotationState.SIGNATURE_CHECKED)

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            return self._reject(state, AuthFailure.MISSING_SUBJECT_CLAIM)

        scope = ""
        if self.resolve_scope is not None:
            resolved = self.resolve_scope(subject)
            if resolved is None:
                return self._reject(state, AuthFailure.UNKNOWN_SUBJECT)
            scope = resolved

        principal = Principal(identifier=subject, scope=scope)
        if self.rotate_refresh:
            # Claim the presented token first. revoke() is a single DELETE, so
            # of two concurrent renewals only one sees it succeed.
            if not self.refresh_store.revoke(refresh_token):
                return self._reject(state, AuthFailure.UNKNOWN_REFRESH_TOKEN)
            pair = self.issuer.issue_token_pair(principal)
            self.refresh_store.save(pair.refresh_token)
        else:
            pair = TokenPair(
                access_token=self.issuer.issue_access_token(principal),
                refresh_token=refresh_token,
            )
        self._advance(state, RotationState.REISSUED)
        return AuthResult.issued(pair, subject)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _advance(current: RotationState, nxt: RotationState) -> RotationState:
        logger.debug("Rotation %s -> %s", current.value, nxt.value)
        return nxt

    @staticmethod
    def _reject(state: RotationState, failure: AuthFailure) -> AuthResult:
        logger.info("Refresh rejected at %s: %s", state.value, failure.value)
        return AuthResult.rejected(failure)
