"""
auth/store.py -- SQLAlchemy Core persistence layer for user sessions.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. The session manager
never touches SQL directly -- it sees only the contract below:

  find_by_email, find_by_id, find_by_refresh_token,
  create(email, password_hash, name) -> User,
  set_refresh_token(user_id, token | None)

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database. A duplicate insert surfaces as
  ConflictError even when two registrations race past the service-level
  existence check.

Concurrency:
  set_refresh_token() is a plain UPDATE by id -- last writer wins. Two
  concurrent logins for the same user both succeed; whichever commits last
  owns the active session. No optimistic locking by design.

DB path: auth/authsession.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError
from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("name", String(255)),
    Column("refresh_token", Text, index=True),  # NULL = no active session
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
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


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.create("a@x.com", hasher.hash("secret"), "Ada")
        store.set_refresh_token(user.id, token)
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

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_refresh_token(self, token: str) -> User | None:
        """Return the user whose stored refresh token equals token exactly.

        An empty string never matches -- cleared sessions are stored as NULL,
        and NULL is not equal to anything in SQL.
        """
        if not token:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.refresh_token == token)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, email: str, password_hash: str, name: str | None = None) -> User:
        """Insert a new user and return the stored record.

        Raises ConflictError if the email already exists.
        """
        now = _now_iso()
        user_id = str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user_id,
                        email=email,
                        password_hash=password_hash,
                        name=name,
                        refresh_token=None,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("User with this email already exists") from exc
        return User(
            id=user_id,
            email=email,
            password_hash=password_hash,
            name=name,
            created_at=now,
            updated_at=now,
        )

    def set_refresh_token(self, user_id: str, token: str | None) -> bool:
        """Replace (or clear, with None) the user's active refresh token.

        Returns True if a row was updated, False if user_id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(refresh_token=token or None, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name,
        refresh_token=row.refresh_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
