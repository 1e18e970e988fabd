"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Stores, flows and
routes do the work; these types only describe shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

GRANT_TYPE = "Bearer"


class AuthFailure(str, Enum):
    """Every reason a login, renewal or token check can fail.

    The str mixin makes members JSON-serializable as their value, which the
    API layer uses directly as the error code.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    MALFORMED_TOKEN = "malformed_token"
    SIGNATURE_MISMATCH = "signature_mismatch"
    EXPIRED = "expired"
    UNKNOWN_REFRESH_TOKEN = "unknown_refresh_token"
    MISSING_SUBJECT_CLAIM = "missing_subject_claim"
    UNKNOWN_SUBJECT = "unknown_subject"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES = {
    AuthFailure.INVALID_CREDENTIALS: "Invalid username or password.",
    AuthFailure.MALFORMED_TOKEN: "Token is malformed or invalid.",
    AuthFailure.SIGNATURE_MISMATCH: "Token is malformed or invalid.",
    AuthFailure.EXPIRED: "Token has expired.",
    AuthFailure.UNKNOWN_REFRESH_TOKEN: "Refresh token not recognized.",
    AuthFailure.MISSING_SUBJECT_CLAIM: "Token contents are invalid.",
    AuthFailure.UNKNOWN_SUBJECT: "Account is no longer active.",
}


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request.

    Built from a validated access token (or from the credential verifier at
    login). Never persisted; frozen so it can be passed down the request
    chain without anyone mutating it.
    """

    identifier: str
    scope: str = ""


@dataclass
class Member:
    """A credential record in the bundled member store.

    role doubles as the scope granted to access tokens at login.
    """

    username: str
    hashed_password: str
    role: str = "user"
    id: int | None = None
    created_at: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class RefreshTokenRecord:
    """A refresh token the service has issued and still honors."""

    id: int
    token_value: str
    created_at: str | None = None


@dataclass(frozen=True)
class TokenPair:
    """Issuance result handed back to the client. Not persisted as a unit."""

    access_token: str
    refresh_token: str
    grant_type: str = GRANT_TYPE


@dataclass(frozen=True)
class TokenValidation:
    """Outcome of TokenCodec.validate().

    valid=True guarantees claims is populated and failure is None.
    valid=False carries the failure reason; claims is None.
    """

    valid: bool
    claims: dict | None = None
    failure: AuthFailure | None = None

    @classmethod
    def ok(cls, claims: dict) -> TokenValidation:
        return cls(valid=True, claims=claims)

    @classmethod
    def rejected(cls, failure: AuthFailure) -> TokenValidation:
        return cls(valid=False, failure=failure)


@dataclass(frozen=True)
class AuthResult:
    """Outcome of the login and rotation flows.

    Exactly one of token_pair / failure is set. Callers branch on .ok rather
    than catching exceptions.
    """

    token_pair: TokenPair | None = None
    failure: AuthFailure | None = None
    subject: str | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.token_pair is not None

    @classmethod
    def issued(cls, token_pair: TokenPair, subject: str) -> AuthResult:
        return cls(token_pair=token_pair, subject=subject)

    @classmethod
    def rejected(cls, failure: AuthFailure) -> AuthResult:
        return cls(failure=failure)
