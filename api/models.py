"""
API request and response models for Tokengate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.models import TokenPair
from auth.verifier import MAX_PASSWORD_BYTES, password_fits

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[a-zA-Z0-9]+$"

# Usernames are trimmed; passwords are taken exactly as sent, since the CLI
# and seed paths hash them unmodified.
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Password = Annotated[str, Field(min_length=1, max_length=MAX_PASSWORD_BYTES)]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: Username
    password: Password


class RefreshRequest(BaseModel):
    """Request body for POST /api/v1/auth/refresh and /auth/logout."""

    model_config = ConfigDict(str_strip_whitespace=True)

    refresh_token: str = Field(min_length=1, max_length=4096)


class UsernameCheckRequest(BaseModel):
    """Request body for POST /api/v1/members/duplicate-check."""

    username: Username


class MemberCreate(BaseModel):
    """Request body for POST /api/v1/members.

    Usernames are letters and digits only. Passwords must fit bcrypt's
    72-byte input once UTF-8 encoded, so multibyte passwords hit the limit
    with fewer characters.
    """

    username: Annotated[
        str,
        StringConstraints(strip_whitespace=True, min_length=1, max_length=255, pattern=USERNAME_PATTERN),
    ]
    password: Password

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        if not password_fits(value):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenPairResponse(BaseModel):
    """Issued tokens. Returned by login and refresh."""

    model_config = ConfigDict(frozen=True)

    grant_type: str
    access_token: str
    refresh_token: str
    expires_in: int

    @classmethod
    def from_pair(cls, pair: TokenPair, expires_in: int) -> "TokenPairResponse":
        return cls(
            grant_type=pair.grant_type,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=expires_in,
        )


class MeResponse(BaseModel):
    """Identity attached to the current request."""

    model_config = ConfigDict(frozen=True)

    username: str
    scope: str


class Envelope(BaseModel):
    """{message, data} wrapper used by the member endpoints."""

    message: str
    data: Any = None


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
