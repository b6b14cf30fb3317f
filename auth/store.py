"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts and sessions.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and registry code never touches SQL directly.

Session storage:
  A user's token collection lives in its own table, one row per session,
  ordered by row id (issue order). Keeping sessions as rows rather than an
  array column on users turns every registry mutation into a single atomic
  statement:
    append  -> INSERT ... SELECT guarded by the users row
    remove  -> DELETE the oldest matching row
    clear   -> DELETE every row for the user
  Two simultaneous logins therefore each insert their own row; there is no
  read-modify-write of a shared list that could lose one of them.

Failure signalling:
  Lookups return None and token mutations return False when the user does
  not exist; the SessionRegistry turns that into UserNotFoundError.
  IntegrityError on the username index becomes ConflictError. Every other
  SQLAlchemyError becomes StoreError, chained to the original.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    literal,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import ConflictError, StoreError
from auth.models import User

logger = logging.getLogger("threadline.auth")

# Row ids are signed 64-bit integers; larger Python ints cannot be bound.
_MIN_ROW_ID = -(2**63)
_MAX_ROW_ID = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),  # case-sensitive
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_user_tokens = Table(
    "user_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("token", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into StoreError.

    AuthError subclasses raised inside the block (ConflictError) pass through.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Identity store failure during %s: %s", operation, exc.__class__.__name__)
        raise StoreError() from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records and their session tokens.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.create_user("alice", hasher.hash("pw123"))
        store.append_token(user.id, token)
        store.close()
    """

    def __init__(self, db_url: str, timeout_seconds: float = 5.0) -> None:
        connect_args: dict = {}
        engine_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            # Busy timeout: a writer blocked on a lock gives up after this long.
            connect_args["timeout"] = timeout_seconds
        else:
            engine_args["pool_timeout"] = timeout_seconds
            engine_args["pool_pre_ping"] = True
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        with _store_errors("schema setup"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Identity store ping failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, username: str, hashed_password: str) -> User:
        """Insert a new user with an empty token collection and return it.

        Raises ConflictError if the username already exists. The unique index
        is the arbiter, so two concurrent registrations for the same name
        cannot both succeed.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        hashed_password=hashed_password,
                        created_at=_now_iso(),
                    )
                )
                user_id = result.inserted_primary_key[0]
                return self._load(conn, user_id)
        except IntegrityError as exc:
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            logger.error("Identity store failure during create_user: %s", exc.__class__.__name__)
            raise StoreError() from exc

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user and its tokens by primary key. Returns None if not found."""
        if not _MIN_ROW_ID <= user_id <= _MAX_ROW_ID:
            return None
        with _store_errors("get_by_id"), self.engine.connect() as conn:
            return self._load(conn, user_id)

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with _store_errors("get_by_username"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
            if row is None:
                return None
            return _row_to_user(row, self._tokens_for(conn, row.id))

    def list_users(self) -> list[User]:
        """Return all users ordered by id, without their tokens."""
        with _store_errors("list_users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r, []) for r in rows]

    def update_user(
        self,
        user_id: int,
        *,
        username: str | None = None,
        hashed_password: str | None = None,
    ) -> User | None:
        """Replace the username and/or password digest.

        Returns the updated user, or None if user_id was not found.
        Raises ConflictError if the new username belongs to another account.
        """
        values: dict = {}
        if username is not None:
            values["username"] = username
        if hashed_password is not None:
            values["hashed_password"] = hashed_password
        try:
            with self.engine.begin() as conn:
                if values:
                    result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                    if result.rowcount == 0:
                        return None
                return self._load(conn, user_id)
        except IntegrityError as exc:
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            logger.error("Identity store failure during update_user: %s", exc.__class__.__name__)
            raise StoreError() from exc

    def delete_user(self, user_id: int) -> User | None:
        """Delete a user and its sessions. Returns the deleted record, or None if not found."""
        with _store_errors("delete_user"), self.engine.begin() as conn:
            user = self._load(conn, user_id)
            if user is None:
                return None
            conn.execute(_user_tokens.delete().where(_user_tokens.c.user_id == user_id))
            conn.execute(_users.delete().where(_users.c.id == user_id))
        return user

    # ------------------------------------------------------------------
    # Token collection
    # ------------------------------------------------------------------

    def update_user_tokens(self, user_id: int, tokens: list[str]) -> User | None:
        """Replace the whole token collection in one transaction.

        Returns the updated user, or None if user_id was not found. Prefer
        the append/remove/clear primitives for session changes; this is the
        bulk form for administrative rewrites.
        """
        with _store_errors("update_user_tokens"), self.engine.begin() as conn:
            if not self._exists(conn, user_id):
                return None
            conn.execute(_user_tokens.delete().where(_user_tokens.c.user_id == user_id))
            if tokens:
                now = _now_iso()
                conn.execute(
                    _user_tokens.insert(),
                    [{"user_id": user_id, "token": t, "created_at": now} for t in tokens],
                )
            return self._load(conn, user_id)

    def append_token(self, user_id: int, token: str) -> bool:
        """Atomically add one session row. Returns False if user_id does not exist.

        INSERT ... SELECT FROM users WHERE id = :user_id inserts nothing for a
        missing user, so existence check and append are one statement.
        """
        guarded = select(_users.c.id, literal(token), literal(_now_iso())).where(_users.c.id == user_id)
        with _store_errors("append_token"), self.engine.begin() as conn:
            result = conn.execute(
                _user_tokens.insert().from_select(["user_id", "token", "created_at"], guarded)
            )
        return result.rowcount > 0

    def remove_token(self, user_id: int, token: str) -> bool:
        """Delete exactly one matching session row (the oldest).

        Removing a token that is not present is not an error. Returns False
        only if user_id does not exist.
        """
        # Aliased so the subquery is not correlated to the DELETE's own table.
        match = _user_tokens.alias("match")
        oldest = (
            select(func.min(match.c.id))
            .where((match.c.user_id == user_id) & (match.c.token == token))
            .scalar_subquery()
        )
        with _store_errors("remove_token"), self.engine.begin() as conn:
            if not self._exists(conn, user_id):
                return False
            conn.execute(_user_tokens.delete().where(_user_tokens.c.id == oldest))
        return True

    def clear_tokens(self, user_id: int) -> bool:
        """Delete every session row for the user. Returns False if user_id does not exist."""
        with _store_errors("clear_tokens"), self.engine.begin() as conn:
            if not self._exists(conn, user_id):
                return False
            conn.execute(_user_tokens.delete().where(_user_tokens.c.user_id == user_id))
        return True

    def has_token(self, user_id: int, token: str) -> bool:
        """Return True if token is a live session for user_id."""
        with _store_errors("has_token"), self.engine.connect() as conn:
            row = conn.execute(
                select(_user_tokens.c.id)
                .where((_user_tokens.c.user_id == user_id) & (_user_tokens.c.token == token))
                .limit(1)
            ).fetchone()
        return row is not None

    def exists(self, user_id: int) -> bool:
        if not _MIN_ROW_ID <= user_id <= _MAX_ROW_ID:
            return False
        with _store_errors("exists"), self.engine.connect() as conn:
            return self._exists(conn, user_id)

    def count_tokens(self, user_id: int) -> int:
        """Return the number of live sessions for user_id."""
        with _store_errors("count_tokens"), self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_user_tokens).where(_user_tokens.c.user_id == user_id)
            ).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals (caller owns the connection)
    # ------------------------------------------------------------------

    def _exists(self, conn: Connection, user_id: int) -> bool:
        return conn.execute(select(_users.c.id).where(_users.c.id == user_id)).fetchone() is not None

    def _tokens_for(self, conn: Connection, user_id: int) -> list[str]:
        rows = conn.execute(
            select(_user_tokens.c.token).where(_user_tokens.c.user_id == user_id).order_by(_user_tokens.c.id)
        ).fetchall()
        return [r.token for r in rows]

    def _load(self, conn: Connection, user_id: int) -> User | None:
        row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            return None
        return _row_to_user(row, self._tokens_for(conn, user_id))


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, tokens: list[str]) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        tokens=tokens,
        created_at=row.created_at,
    )
