"""
auth/store.py -- Async SQLAlchemy Core persistence layer for identity entities.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_user / _row_to_organisation are
the mappers. The access core and route code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Concurrency:
  Every call goes through the asyncio engine, so a slow query suspends only
  the request that issued it. Each public call is bounded by
  store_timeout_seconds; a timeout or driver failure is raised as
  StoreUnavailable, which the API renders as a generic 500. IntegrityError
  is let through untouched so callers can turn unique violations into
  Conflict.

Atomic writes:
  atomic() wraps engine.begin(). Every insert made through the yielded
  StoreTransaction commits together or rolls back together. Registration
  (user + default organisation + membership) and organisation creation
  (organisation + creator membership) depend on this.

Memberships:
  (user_id, org_id) is the composite primary key. insert_membership uses
  ON CONFLICT DO NOTHING, so adding an existing member is a no-op that
  reports False rather than an error or a duplicate row.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, MetaData, String, Table, Text, event, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from auth.models import Organisation, User
from core.errors import StoreUnavailable

logger = logging.getLogger("orgaccess.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("user_id", String(36), primary_key=True),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # case-sensitive as stored
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("phone", String(50)),
    Column("created_at", String(32), nullable=False),
)

_organisations = Table(
    "organisations",
    _metadata,
    Column("org_id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_user_organisations = Table(
    "user_organisations",
    _metadata,
    Column("user_id", String(36), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
    Column("org_id", String(36), ForeignKey("organisations.org_id", ondelete="CASCADE"), primary_key=True),
)


# ---------------------------------------------------------------------------
# SQLite connection pragmas
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign keys and WAL journal mode on every new SQLite connection.

    SQLite ignores FOREIGN KEY clauses unless the pragma is on, and PRAGMAs are
    not inherited by new connections from the pool, so this runs per-connection.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _bounded(method):
    """Apply the store timeout to a coroutine method and normalise failures.

    IntegrityError propagates unchanged (callers map it to Conflict). Any
    other SQLAlchemy or OS-level error, and a timeout, become StoreUnavailable.
    The original exception is chained for the server log only.
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await asyncio.wait_for(method(self, *args, **kwargs), timeout=self.timeout)
        except IntegrityError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error("Store call %s timed out after %.1fs", method.__name__, self.timeout)
            raise StoreUnavailable() from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Store call %s failed: %s", method.__name__, exc.__class__.__name__)
            raise StoreUnavailable() from exc

    return wrapper


def _insert_ignoring_duplicates(conn: AsyncConnection, table: Table):
    """Return an INSERT for the connection's dialect that skips conflicting rows."""
    if conn.dialect.name == "postgresql":
        return pg_insert(table).on_conflict_do_nothing()
    return sqlite_insert(table).on_conflict_do_nothing()


# ---------------------------------------------------------------------------
# Writes shared by the store and the transaction unit
# ---------------------------------------------------------------------------


async def _insert_user(conn: AsyncConnection, user: User) -> None:
    user.created_at = user.created_at or _now_iso()
    await conn.execute(
        _users.insert().values(
            user_id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            password=user.password,
            phone=user.phone,
            created_at=user.created_at,
        )
    )


async def _insert_organisation(conn: AsyncConnection, org: Organisation) -> None:
    org.created_at = org.created_at or _now_iso()
    await conn.execute(
        _organisations.insert().values(
            org_id=org.org_id,
            name=org.name,
            description=org.description,
            created_at=org.created_at,
        )
    )


async def _insert_membership(conn: AsyncConnection, user_id: str, org_id: str) -> bool:
    stmt = _insert_ignoring_duplicates(conn, _user_organisations).values(user_id=user_id, org_id=org_id)
    result = await conn.execute(stmt)
    return result.rowcount > 0


# ---------------------------------------------------------------------------
# Transaction unit
# ---------------------------------------------------------------------------


class StoreTransaction:
    """Write handle bound to one open transaction. Obtain via CredentialStore.atomic()."""

    def __init__(self, conn: AsyncConnection, timeout: float) -> None:
        self._conn = conn
        self.timeout = timeout

    @_bounded
    async def insert_user(self, user: User) -> None:
        await _insert_user(self._conn, user)

    @_bounded
    async def insert_organisation(self, org: Organisation) -> None:
        await _insert_organisation(self._conn, org)

    @_bounded
    async def insert_membership(self, user_id: str, org_id: str) -> bool:
        return await _insert_membership(self._conn, user_id, org_id)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User, Organisation, and membership links.

    Usage:
        store = CredentialStore("sqlite+aiosqlite:///./orgaccess.db")
        await store.initialize()
        async with store.atomic() as tx:
            await tx.insert_user(user)
            await tx.insert_organisation(org)
            await tx.insert_membership(user.user_id, org.org_id)
        await store.close()
    """

    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self.engine: AsyncEngine = create_async_engine(db_url)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragmas)

    async def initialize(self) -> None:
        """Create tables that do not exist yet. Idempotent -- safe on every startup."""
        async with self.engine.begin() as conn:
            await conn.run_sync(_metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    @_bounded
    async def ping(self) -> bool:
        """Round-trip a trivial query. Used by the health endpoint."""
        async with self.engine.connect() as conn:
            await conn.execute(select(1))
        return True

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[StoreTransaction]:
        """Yield a StoreTransaction whose writes commit or roll back as one unit.

        Exceptions raised inside the block roll the transaction back and
        propagate. Failures to begin or commit surface as StoreUnavailable,
        except IntegrityError, which propagates so callers can detect
        unique violations.
        """
        try:
            async with self.engine.begin() as conn:
                yield StoreTransaction(conn, self.timeout)
        except IntegrityError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Atomic write failed: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    @_bounded
    async def find_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        async with self.engine.connect() as conn:
            row = (await conn.execute(_users.select().where(_users.c.email == email))).fetchone()
        return _row_to_user(row) if row is not None else None

    @_bounded
    async def find_user_by_id(self, user_id: str) -> User | None:
        async with self.engine.connect() as conn:
            row = (await conn.execute(_users.select().where(_users.c.user_id == user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Organisation queries
    # ------------------------------------------------------------------

    @_bounded
    async def find_organisation_by_id(self, org_id: str) -> Organisation | None:
        async with self.engine.connect() as conn:
            row = (await conn.execute(_organisations.select().where(_organisations.c.org_id == org_id))).fetchone()
        return _row_to_organisation(row) if row is not None else None

    @_bounded
    async def get_organisations_for_user(self, user_id: str) -> list[Organisation]:
        """Return every organisation user_id belongs to, ordered by name."""
        linked = select(_user_organisations.c.org_id).where(_user_organisations.c.user_id == user_id)
        async with self.engine.connect() as conn:
            rows = (
                await conn.execute(
                    _organisations.select()
                    .where(_organisations.c.org_id.in_(linked))
                    .order_by(_organisations.c.name, _organisations.c.org_id)
                )
            ).fetchall()
        return [_row_to_organisation(r) for r in rows]

    # ------------------------------------------------------------------
    # Membership queries
    # ------------------------------------------------------------------

    @_bounded
    async def list_organisations_for_user(self, user_id: str) -> list[str]:
        """Return the ids of every organisation linked to user_id."""
        async with self.engine.connect() as conn:
            rows = (
                await conn.execute(
                    select(_user_organisations.c.org_id).where(_user_organisations.c.user_id == user_id)
                )
            ).fetchall()
        return [r.org_id for r in rows]

    @_bounded
    async def list_users_for_organisation(self, org_id: str) -> list[str]:
        """Return the ids of every user linked to org_id."""
        async with self.engine.connect() as conn:
            rows = (
                await conn.execute(
                    select(_user_organisations.c.user_id).where(_user_organisations.c.org_id == org_id)
                )
            ).fetchall()
        return [r.user_id for r in rows]

    @_bounded
    async def get_users_for_organisation(self, org_id: str) -> list[User]:
        """Return every user linked to org_id, ordered by last then first name."""
        linked = select(_user_organisations.c.user_id).where(_user_organisations.c.org_id == org_id)
        async with self.engine.connect() as conn:
            rows = (
                await conn.execute(
                    _users.select()
                    .where(_users.c.user_id.in_(linked))
                    .order_by(_users.c.last_name, _users.c.first_name, _users.c.user_id)
                )
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    @_bounded
    async def is_linked(self, user_id: str, org_id: str) -> bool:
        async with self.engine.connect() as conn:
            row = (
                await conn.execute(
                    select(_user_organisations.c.user_id).where(
                        (_user_organisations.c.user_id == user_id) & (_user_organisations.c.org_id == org_id)
                    )
                )
            ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Single-row writes (each in its own transaction)
    # ------------------------------------------------------------------

    @_bounded
    async def insert_user(self, user: User) -> None:
        """Insert a user. Raises IntegrityError if the email or id is taken."""
        async with self.engine.begin() as conn:
            await _insert_user(conn, user)

    @_bounded
    async def insert_organisation(self, org: Organisation) -> None:
        async with self.engine.begin() as conn:
            await _insert_organisation(conn, org)

    @_bounded
    async def insert_membership(self, user_id: str, org_id: str) -> bool:
        """Link user_id to org_id. Returns False if the link already existed."""
        async with self.engine.begin() as conn:
            return await _insert_membership(conn, user_id, org_id)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        user_id=row.user_id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        password=row.password,
        phone=row.phone,
        created_at=row.created_at,
    )


def _row_to_organisation(row) -> Organisation:
    return Organisation(
        org_id=row.org_id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )
