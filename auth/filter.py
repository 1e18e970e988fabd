"""
auth/filter.py -- Per-request bearer token authentication.

AuthenticationFilter is a pure ASGI middleware. For every HTTP request it:
  1. Extracts the token from "Authorization: Bearer <token>" (exact prefix).
  2. Validates it with the TokenCodec.
  3. Stores the resulting Principal -- or None -- in the request's own state
     (scope["state"]["principal"], read back as request.state.principal).
  4. Always hands the request on. The filter never rejects anything; routes
     that need an identity say so through auth.dependencies.require_principal.

Missing header, wrong scheme, malformed, expired and mis-signed tokens all
collapse into principal=None, as do refresh tokens presented as bearer
credentials. Flows that need the specific reason call
TokenCodec.validate() themselves.

The principal lives in per-request state, not in a module global or context
variable, so concurrent requests can never observe each other's identity.

Layer rule: depends on starlette (ASGI types + Headers) but not on api/.
"""

from __future__ import annotations

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from auth.codec import TokenCodec
from auth.models import Principal

BEARER_PREFIX = "Bearer "
PRINCIPAL_STATE_KEY = "principal"


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an Authorization header value, or None.

    Only the exact "Bearer " prefix is accepted ("bearer ", "Bearer" with no
    space, "Basic ..." all yield None). An empty token after the prefix also
    yields None.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


def resolve_principal(authorization: str | None, codec: TokenCodec) -> Principal | None:
    """Turn an Authorization header value into a Principal, or None.

    Only access tokens authenticate. The issuer puts a scope claim in every
    access token and never in a refresh token, so a token without one is
    refused even when its signature and expiry check out.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    result = codec.validate(token)
    if not result.valid:
        return None
    scope = result.claims.get("scope")
    if not isinstance(scope, str):
        return None
    return Principal(identifier=result.claims["sub"], scope=scope)


class AuthenticationFilter:
    """ASGI middleware that attaches request.state.principal on every request.

    Usage:
        app.add_middleware(AuthenticationFilter, codec=codec)
    """

    def __init__(self, app: ASGIApp, codec: TokenCodec) -> None:
        self.app = app
        self.codec = codec

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = Headers(scope=scope)
            principal = resolve_principal(headers.get("authorization"), self.codec)
            scope.setdefault("state", {})[PRINCIPAL_STATE_KEY] = principal
        await self.app(scope, receive, send)
