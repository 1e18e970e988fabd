"""
api/services.py -- Explicit composition of the auth core.

build_services() is the single place where codec, issuer, stores and flows
are wired together. The lifespan in api/main.py calls it once at startup and
stores the result on app.state.services; tests call it with in-memory stores.
No component looks its collaborators up at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.codec import TokenCodec
from auth.flows import LoginFlow, RotationFlow
from auth.issuer import TokenIssuer
from auth.store import MemberStore, RefreshTokenStore
from auth.verifier import MemberCredentialVerifier
from core.config import Settings


@dataclass
class Services:
    codec: TokenCodec
    issuer: TokenIssuer
    members: MemberStore
    refresh_tokens: RefreshTokenStore
    verifier: MemberCredentialVerifier
    login: LoginFlow
    rotation: RotationFlow

    def close(self) -> None:
        self.members.close()
        self.refresh_tokens.close()


def build_services(
    settings: Settings,
    codec: TokenCodec,
    members: MemberStore,
    refresh_tokens: RefreshTokenStore,
) -> Services:
    issuer = TokenIssuer(
        codec,
        access_ttl=settings.access_token_expire_seconds,
        refresh_ttl=settings.refresh_token_expire_seconds,
    )
    verifier = MemberCredentialVerifier(members)
    return Services(
        codec=codec,
        issuer=issuer,
        members=members,
        refresh_tokens=refresh_tokens,
        verifier=verifier,
        login=LoginFlow(verifier, issuer, refresh_tokens),
        rotation=RotationFlow(
            codec,
            issuer,
            refresh_tokens,
            resolve_scope=verifier.current_scope,
            grace_seconds=settings.refresh_grace_seconds,
            rotate_refresh=settings.rotate_refresh_tokens,
        ),
    )
