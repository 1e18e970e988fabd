"""
auth/issuer.py -- Access/refresh token pair issuance.

The issuer only mints tokens. Persisting the refresh half is the job of the
flow that called it (login or rotation), never of the issuer itself.

Scope policy: scope rides in the access token only. Refresh tokens carry the
subject alone so a renewal can pick up a scope change made after login.
"""

from __future__ import annotations

from auth.codec import TokenCodec
from auth.models import GRANT_TYPE, Principal, TokenPair


class TokenIssuer:
    def __init__(self, codec: TokenCodec, access_ttl: int, refresh_ttl: int) -> None:
        if access_ttl >= refresh_ttl:
            raise ValueError("access_ttl must be shorter than refresh_ttl.")
        self.codec = codec
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def issue_access_token(self, principal: Principal) -> str:
        return self.codec.issue(principal.identifier, principal.scope, self.access_ttl)

    def issue_refresh_token(self, subject: str) -> str:
        return self.codec.issue(subject, None, self.refresh_ttl)

    def issue_token_pair(self, principal: Principal) -> TokenPair:
        """Mint a fresh access + refresh token for principal in one issuance."""
        return TokenPair(
            access_token=self.issue_access_token(principal),
            refresh_token=self.issue_refresh_token(principal.identifier),
            grant_type=GRANT_TYPE,
        )
