"""
api/routes/v1/auth.py -- Token issuance and renewal endpoints.

Routes:
  POST /api/v1/auth/login    -- credentials -> token pair
  POST /api/v1/auth/refresh  -- refresh token -> new access token
  POST /api/v1/auth/logout   -- revoke a refresh token
  GET  /api/v1/auth/me       -- principal attached by AuthenticationFilter (requires auth)

Security:
  [H2] POST /login is rate-limited per client IP (Settings.login_rate_limit).
  [C1] Credential checks go through LoginFlow -> MemberCredentialVerifier,
       which equalizes timing. Never inline a store lookup + bcrypt here.
  [M5] Cache-Control: no-store on every response that carries tokens.

Every rejection from the flows maps to 401 with the AuthFailure value as the
error code, so clients can tell "refresh token not recognized" from
"token expired" and decide between retrying and re-login.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, MeResponse, RefreshRequest, TokenPairResponse
from api.services import Services
from auth.dependencies import require_principal
from auth.models import AuthResult, Principal
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/refresh:  public -- the refresh token is the credential
# - POST /api/v1/auth/logout:   public -- possession of the refresh token is enough to revoke it
# - GET  /api/v1/auth/me:       requires auth (require_principal)
router = APIRouter()


def _token_response(services: Services, result: AuthResult) -> JSONResponse:
    if result.ok:
        resp = JSONResponse(
            status_code=200,
            content=TokenPairResponse.from_pair(result.token_pair, services.issuer.access_ttl).model_dump(),
        )
    else:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code=result.failure.value, message=result.failure.message)
            ).model_dump(exclude_none=True),
        )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(get_settings().login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=TokenPairResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return an access/refresh pair.

    Wrong username and wrong password produce the same "invalid_credentials"
    error so the response does not leak which usernames exist.
    """
    services: Services = request.app.state.services
    result = services.login.login(body.username, body.password)
    return _token_response(services, result)


@router.post("/auth/refresh", response_model=TokenPairResponse)
def refresh(request: Request, body: RefreshRequest) -> JSONResponse:
    """Exchange a refresh token for a new access token bound to the same subject."""
    services: Services = request.app.state.services
    result = services.rotation.rotate(body.refresh_token)
    return _token_response(services, result)


@router.post("/auth/logout")
def logout(request: Request, body: RefreshRequest) -> JSONResponse:
    """Revoke a refresh token. Idempotent: unknown tokens still return 200.

    Access tokens already handed out stay valid until they expire.
    """
    services: Services = request.app.state.services
    revoked = services.refresh_tokens.revoke(body.refresh_token)
    return JSONResponse(content={"message": "Logged out.", "revoked": revoked})


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(principal: Principal = Depends(require_principal)) -> MeResponse:
    """Return identity information for the currently authenticated principal."""
    return MeResponse(username=principal.identifier, scope=principal.scope)
