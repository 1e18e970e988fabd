"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
MemberStore and RefreshTokenStore are the repositories; _row_to_member /
_row_to_refresh_token are the mappers. Flow and route code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

Concurrency:
  Every method opens its own connection and commits before returning, so a
  find_by_value() always observes an earlier save() of the same value. Inserts
  are independent -- there is no cross-record invariant to lock for.

  refresh_tokens.token_value is indexed but deliberately NOT unique: the store
  records every issuance it is handed and never merges two of them.

DB path: auth/tokengate.db by default (Settings.database_url overrides).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import Member, RefreshTokenRecord

logger = logging.getLogger("tokengate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_members = Table(
    "members",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token_value", Text, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block on a concurrent insert.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url and ensure both auth tables exist."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Member repository (bundled credential store)
# ---------------------------------------------------------------------------


class MemberStore:
    """Repository for Member credential records.

    Usage:
        store = MemberStore("sqlite:///members.db")
        store.create_member(Member(username="alice", hashed_password=hash_password("pw")))
        member = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)

    def has_members(self) -> bool:
        """Return True if at least one member record exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_members)).scalar()
        return (result or 0) > 0

    def username_exists(self, username: str) -> bool:
        """Return True if username is already registered (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_members.c.id).where(_members.c.username == username)).fetchone()
        return row is not None

    def create_member(self, member: Member) -> int:
        """Insert a new member and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        Callers that pre-check with username_exists() must still handle it:
        two concurrent registrations can both pass the pre-check.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _members.insert().values(
                    username=member.username,
                    hashed_password=member.hashed_password,
                    role=member.role,
                    created_at=_now_iso(),
                    is_active=1 if member.is_active else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> Member | None:
        """Look up a member by exact username. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_members.select().where(_members.c.username == username)).fetchone()
        return _row_to_member(row) if row is not None else None

    def set_active(self, username: str, is_active: bool) -> bool:
        """Enable or disable a member. Returns False if the username is unknown."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _members.update().where(_members.c.username == username).values(is_active=1 if is_active else 0)
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Refresh token repository
# ---------------------------------------------------------------------------


class RefreshTokenStore:
    """Durable record of the refresh tokens currently honored.

    Presence of a value means "honored"; absence means unknown or revoked.
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)

    def save(self, token_value: str) -> int:
        """Persist a newly issued refresh token and return the record ID."""
        with self.engine.connect() as conn:
            result = conn.execute(_refresh_tokens.insert().values(token_value=token_value, created_at=_now_iso()))
            conn.commit()
            return result.inserted_primary_key[0]

    def find_by_value(self, token_value: str) -> RefreshTokenRecord | None:
        """Exact-match lookup. Returns None when the value was never saved or was revoked."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _refresh_tokens.select()
                .where(_refresh_tokens.c.token_value == token_value)
                .order_by(_refresh_tokens.c.id)
                .limit(1)
            ).fetchone()
        return _row_to_refresh_token(row) if row is not None else None

    def revoke(self, token_value: str) -> bool:
        """Delete every record holding token_value. Returns True if any existed.

        One DELETE statement: when two callers revoke the same value at once,
        exactly one of them gets True. The rotation flow relies on this to
        claim a refresh token.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token_value == token_value))
            conn.commit()
        if result.rowcount:
            logger.debug("Revoked %d refresh token record(s)", result.rowcount)
        return result.rowcount > 0

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_refresh_tokens)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_member(row) -> Member:
    return Member(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=row.role,
        created_at=row.created_at,
        is_active=bool(row.is_active),
    )


def _row_to_refresh_token(row) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id=row.id,
        token_value=row.token_value,
        created_at=row.created_at,
    )
