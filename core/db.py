"""
core/db.py -- Shared SQLAlchemy Core schema and engine factory.

The credential store (auth/store.py) and the verification store
(verification/store.py) are separate repositories, but verifications.email is
a foreign key into users.email, so both tables must live in one database and
one MetaData. This module owns that schema; each store owns its queries.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py and
verification/models.py remain the domain representation. Swapping SQLite for
PostgreSQL is a connection string change.

Layer rule: no imports from api/, auth/, verification/, or mail/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from core.errors import DomainError, ErrorKind

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # case-sensitive
    Column("pass_hash", Text, nullable=False),
    Column("is_admin", Integer, nullable=False, server_default="0"),
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

apps = Table(
    "apps",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("secret", Text, nullable=False),
)

# One pending row per email: the primary key is the email itself.
verifications = Table(
    "verifications",
    metadata,
    Column(
        "email",
        String(255),
        ForeignKey("users.email", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    ),
    Column("code", String(10), nullable=False),
    Column("expires_at", String(32), nullable=False),  # ISO 8601, UTC
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign keys on every new SQLite connection.

    SQLite PRAGMAs are per-connection and are not inherited from the pool.
    foreign_keys is off by default in SQLite; without it an unknown email
    could be given a verification row.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure the schema exists."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_iso(value: datetime) -> str:
    """Serialize a datetime as UTC ISO 8601. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def store_failure(exc: SQLAlchemyError, op: str, email: str | None = None) -> DomainError:
    """Translate an unexpected driver error into a DomainError.

    An interrupted statement (sqlite3 interrupt(), or a cancelled PostgreSQL
    query) becomes CANCELLED so callers never mistake a cancellation for a
    missing row. Everything else is INTERNAL.
    """
    if isinstance(exc, OperationalError):
        message = str(exc.orig).lower()
        if "interrupted" in message or "canceling statement" in message:
            return DomainError(ErrorKind.CANCELLED, op, email=email, detail=str(exc.orig))
    return DomainError(ErrorKind.INTERNAL, op, email=email, detail=type(exc).__name__)
