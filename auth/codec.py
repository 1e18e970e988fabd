"""
auth/codec.py -- Signed bearer token encoding and verification.

Wire format: compact JWS (header.claims.signature, base64url segments) signed
with HS256 via python-jose. The codec is a pure function of its inputs, the
shared secret and the clock; it holds no other state.

Verification order matters and is fixed:
  1. Structural decode (header + claims must parse)   -> MALFORMED_TOKEN
  2. Header alg must equal the configured algorithm   -> SIGNATURE_MISMATCH
  3. HMAC recomputed, compared in constant time;
     signature segment must be canonical base64url     -> SIGNATURE_MISMATCH
  4. exp must be numeric                               -> MALFORMED_TOKEN
  5. exp must lie in the future (minus leeway)         -> EXPIRED
  6. sub must be a non-empty string                    -> MISSING_SUBJECT_CLAIM

No claim is read for a decision until step 3 has passed. Pinning alg in step 2
shuts out "alg": "none" and algorithm-confusion forgeries.

validate() enforces all six steps. parse_claims_unsafe() stops after step 3:
it exists only so the rotation flow can read the subject off an expired but
authentic refresh token.

Layer rule: no imports from api/ or core/. The secret is injected.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from collections.abc import Callable

from jose import jws, jwt
from jose.exceptions import JWSError, JWTError
from jose.utils import base64url_decode, base64url_encode

from auth.models import AuthFailure, TokenValidation

logger = logging.getLogger("tokengate.auth")

ALGORITHM = "HS256"


class TokenCodec:
    """Issue and verify signed tokens with a shared secret.

    Usage:
        codec = TokenCodec(secret_key)
        token = codec.issue("alice", "user", ttl=1800)
        result = codec.validate(token)
        if result.valid:
            result.claims["sub"]  # "alice"
    """

    def __init__(
        self,
        secret_key: str,
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a non-empty secret key.")
        self._secret_key = secret_key
        self.algorithm = ALGORITHM
        self.leeway = leeway
        self._clock = clock

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def issue(self, subject: str, scope: str | None, ttl: int) -> str:
        """Return a signed token for subject that expires ttl seconds from now.

        scope=None omits the claim entirely (refresh tokens). The jti claim is
        random so two tokens for the same subject issued within the same
        second are still distinct values.
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive.")
        issued_at = int(self._clock())
        claims: dict = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + ttl,
            "jti": secrets.token_urlsafe(16),
        }
        if scope is not None:
            claims["scope"] = scope
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def validate(self, token: str) -> TokenValidation:
        """Fully verify a token. Never raises for malformed input."""
        return self._decode(token, enforce_expiry=True)

    def parse_claims_unsafe(self, token: str) -> dict | None:
        """Return the claims of an authentic token, expired or not.

        The signature is still verified. Returns None if the token is malformed
        or mis-signed. Callers own the expiry decision.
        """
        result = self._decode(token, enforce_expiry=False)
        return result.claims if result.valid else None

    def _decode(self, token: str, enforce_expiry: bool) -> TokenValidation:
        if not isinstance(token, str) or token.count(".") != 2:
            return TokenValidation.rejected(AuthFailure.MALFORMED_TOKEN)

        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError:
            return TokenValidation.rejected(AuthFailure.MALFORMED_TOKEN)

        if header.get("alg") != self.algorithm:
            logger.debug("Rejected token signed with unexpected alg %r", header.get("alg"))
            return TokenValidation.rejected(AuthFailure.SIGNATURE_MISMATCH)

        try:
            payload = jws.verify(token, self._secret_key, algorithms=[self.algorithm])
        except JWSError:
            return TokenValidation.rejected(AuthFailure.SIGNATURE_MISMATCH)
        if not _is_canonical_segment(token.rsplit(".", 1)[1]):
            # Unused trailing bits in the last base64 char decode to the same
            # bytes; a token is only authentic in the exact form we issued.
            return TokenValidation.rejected(AuthFailure.SIGNATURE_MISMATCH)

        # Signature is good from here on; claims may be trusted.
        try:
            claims = json.loads(payload)
        except ValueError:
            return TokenValidation.rejected(AuthFailure.MALFORMED_TOKEN)
        if not isinstance(claims, dict):
            return TokenValidation.rejected(AuthFailure.MALFORMED_TOKEN)

        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return TokenValidation.rejected(AuthFailure.MALFORMED_TOKEN)

        if enforce_expiry and exp + self.leeway <= self._clock():
            return TokenValidation.rejected(AuthFailure.EXPIRED)

        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            # The unsafe path hands claims back anyway; the caller decides.
            if enforce_expiry:
                return TokenValidation.rejected(AuthFailure.MISSING_SUBJECT_CLAIM)

        return TokenValidation.ok(claims)

    def is_expired(self, claims: dict, grace: int = 0) -> bool:
        """Return True if claims["exp"] (plus leeway and grace) has passed."""
        return claims["exp"] + self.leeway + grace <= self._clock()


def _is_canonical_segment(segment: str) -> bool:
    return base64url_encode(base64url_decode(segment.encode("utf-8"))).decode("ascii") == segment
