#!/usr/bin/env python3
"""
Tokengate -- operator CLI.

Usage:
  python main.py create-member alice
  python main.py create-member alice --role admin
  python main.py inspect-token eyJhbGciOi...
  python main.py inspect-token eyJhbGciOi... --allow-expired

Reads the same environment / .env settings as the API (SECRET_KEY,
DATABASE_URL, ...), so tokens inspected here are checked with the key the
running service signs with.
"""

import argparse
import getpass
import json
import sys
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.codec import TokenCodec
from auth.models import Member
from auth.store import MemberStore
from auth.verifier import MAX_PASSWORD_BYTES, hash_password, password_fits
from core.config import get_settings


def _create_member(args: argparse.Namespace) -> int:
    settings = get_settings()
    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    if not password:
        print("  [!] Password cannot be empty.")
        return 1
    if not password_fits(password):
        print(f"  [!] Password is longer than {MAX_PASSWORD_BYTES} bytes (UTF-8).")
        return 1

    store = MemberStore(settings.database_url)
    try:
        store.create_member(Member(username=args.username, hashed_password=hash_password(password), role=args.role))
    except IntegrityError:
        print(f"  [!] Member '{args.username}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created member '{args.username}' with role '{args.role}'.")
    return 0


def _format_ts(value) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    return str(value)


def _inspect_token(args: argparse.Namespace) -> int:
    settings = get_settings()
    codec = TokenCodec(settings.secret_key, leeway=settings.token_leeway_seconds)

    result = codec.validate(args.token)
    claims = result.claims
    if not result.valid:
        print(f"  Invalid: {result.failure.value} ({result.failure.message})")
        if not args.allow_expired:
            return 1
        claims = codec.parse_claims_unsafe(args.token)
        if claims is None:
            return 1

    if args.json:
        print(json.dumps(claims, indent=2))
        return 0 if result.valid else 1

    print(f"  Subject : {claims.get('sub')}")
    print(f"  Scope   : {claims.get('scope', '(none -- refresh token)')}")
    print(f"  Issued  : {_format_ts(claims.get('iat'))}")
    print(f"  Expires : {_format_ts(claims.get('exp'))}")
    return 0 if result.valid else 1


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Tokengate -- operator commands for members and tokens.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-member", help="Register a member directly in the store.")
    create.add_argument("username")
    create.add_argument("--role", default="user", help="Scope granted to this member's access tokens.")
    create.add_argument("--password", help="Password (prompted for if omitted).")
    create.set_defaults(func=_create_member)

    inspect = sub.add_parser("inspect-token", help="Verify a token and print its claims.")
    inspect.add_argument("token")
    inspect.add_argument(
        "--allow-expired",
        action="store_true",
        help="Still print claims of an expired (but authentic) token.",
    )
    inspect.add_argument("--json", action="store_true", help="Print raw claims as JSON.")
    inspect.set_defaults(func=_inspect_token)

    args = parser.parse_args()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
