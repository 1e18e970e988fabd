"""
auth/verifier.py -- Password hashing and credential verification.

The token core only depends on the CredentialVerifier protocol. The member
store implementation below is the one the service wires in; anything else with
a matching verify() (LDAP bind, another service) can replace it.

Passwords: bcrypt used directly (no passlib wrapper). Bcrypt's cost factor
makes brute force of low-entropy secrets expensive.

Timing equalization [C1]: verify() always runs one bcrypt comparison, against
_DUMMY_HASH when the username does not exist. Response time therefore does not
reveal which usernames are registered.
"""

from __future__ import annotations

import logging
from typing import Protocol

import bcrypt

from auth.models import Principal
from auth.store import MemberStore

logger = logging.getLogger("tokengate.auth")


# bcrypt only reads the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def password_fits(plain: str) -> bool:
    """Return True if plain is within bcrypt's input limit once UTF-8 encoded."""
    return len(plain.encode("utf-8")) <= MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError if the password is longer than MAX_PASSWORD_BYTES in
    UTF-8. Multibyte characters count per byte, so 40 accented letters are
    already too long. Callers validate with password_fits() first.
    """
    if not password_fits(plain):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    if not password_fits(plain):
        # No stored hash can come from an over-long password.
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


# Computed once at import so the first login is not measurably slower.
_DUMMY_HASH: str = hash_password("tokengate_timing_dummy")


class CredentialVerifier(Protocol):
    def verify(self, identifier: str, secret: str) -> Principal | None:
        """Return the Principal for matching credentials, None otherwise."""
        ...


class MemberCredentialVerifier:
    """CredentialVerifier backed by MemberStore.

    A member's role becomes the scope of the Principal (and so of every access
    token issued for it). Inactive members never verify.
    """

    def __init__(self, store: MemberStore) -> None:
        self.store = store

    def verify(self, identifier: str, secret: str) -> Principal | None:
        member = self.store.get_by_username(identifier)
        if member is None:
            # Equalize timing -- do NOT return before running bcrypt [C1]
            verify_password(secret, _DUMMY_HASH)
            return None
        if not verify_password(secret, member.hashed_password):
            return None
        if not member.is_active:
            return None
        return Principal(identifier=member.username, scope=member.role)

    def current_scope(self, identifier: str) -> str | None:
        """Return the member's scope right now, or None if it may not renew.

        Used by the rotation flow: refresh tokens carry no scope, so a renewal
        re-reads it here and picks up role changes or deactivation.
        """
        member = self.store.get_by_username(identifier)
        if member is None or not member.is_active:
            return None
        return member.role
