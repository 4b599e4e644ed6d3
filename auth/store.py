"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Flow, gate, and
route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(user_name) is enforced by the database. has_user_with_username() is
  a fast pre-check for a friendly error, but two concurrent registrations can
  both pass it; the constraint makes the second insert raise IntegrityError,
  which RegistrationFlow reports as UsernameTaken.

DB path: auth/thingful_auth.db unless DATABASE_URL overrides it.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine

from auth.models import User

logger = logging.getLogger("thingful.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_name", String(255), nullable=False, unique=True),
    Column("full_name", String(255), nullable=False),
    Column("nickname", String(255)),  # NULL when not supplied
    Column("password", Text, nullable=False),  # bcrypt hash, never plaintext
    Column("date_created", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///:memory:")
        created = store.insert_user(User(user_name="ab", full_name="A B", password_hash=h))
        user = store.get_by_username("ab")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_user_with_username(self, user_name: str) -> bool:
        """Return True if an account with this exact user_name exists."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.user_name == user_name).limit(1)).fetchone()
        return row is not None

    def get_by_username(self, user_name: str) -> User | None:
        """Look up a user by exact user_name (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.user_name == user_name)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /api/health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("User store health check failed")
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_user(self, user: User) -> User:
        """Insert a new user and return the stored record with its id.

        Raises sqlalchemy.exc.IntegrityError if the user_name already exists.
        The insert and the read-back share one transaction, so a failure
        leaves no row behind.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    user_name=user.user_name,
                    full_name=user.full_name,
                    nickname=user.nickname,
                    password=user.password_hash,
                    date_created=user.date_created or now_iso(),
                )
            )
            user_id = result.inserted_primary_key[0]
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        user_name=row.user_name,
        full_name=row.full_name,
        nickname=row.nickname,
        password_hash=row.password,
        date_created=row.date_created,
    )
