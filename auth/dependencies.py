"""
auth/dependencies.py -- FastAPI Depends() helpers that read the request principal.

AuthenticationFilter has already run by the time any of these execute; they
only read what it left in request.state.

get_principal() is the soft variant (returns None when unauthenticated).
require_principal() wraps it and raises HTTP 401.

Layer rule: may import from fastapi (Depends/HTTPException/Request) because
this module is part of the FastAPI dependency injection system. No api/ imports.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.filter import PRINCIPAL_STATE_KEY
from auth.models import Principal


def get_principal(request: Request) -> Principal | None:
    """Return the Principal attached by AuthenticationFilter, or None. Never raises."""
    return getattr(request.state, PRINCIPAL_STATE_KEY, None)


def require_principal(request: Request) -> Principal:
    """Require an authenticated request. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(principal: Principal = Depends(require_principal)): ...
    """
    principal = get_principal(request)
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal
