"""
auth/store.py -- SQLAlchemy Core persistence layer for local accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_token are the mappers.
Route, flow and linker code never touches SQL directly.

UserStore is the account-store collaborator of IdentityLinker:
  find_by_provider_id(id)                        -> User | None
  create_account(login_name, provider_user_id)   -> User | UsernameConflict
  record_token_association(user, login, token)   -> None

Uniqueness:
  users.username and users.github_user_id are both UNIQUE in SQL. This is what
  serializes concurrent first logins of the same GitHub user: the second
  INSERT fails, and create_account() returns the row that won instead of a
  duplicate. NULL github_user_id (accounts never linked) is allowed many times
  because SQL treats NULLs as distinct in UNIQUE constraints.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB path: auth/hublink_auth.db unless DATABASE_URL is set.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import ProviderToken, User, UsernameConflict

logger = logging.getLogger("hublink.auth.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'hublink_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("github_user_id", String(64), unique=True),  # provider's stable user ID
    Column("display_name", Text),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
    Column("is_active", Integer, nullable=False, server_default="1"),
)

# One row per account: the most recent token obtained at login, kept for
# later API calls on the user's behalf.
_github_tokens = Table(
    "github_tokens",
    _metadata,
    Column("user_id", Integer, primary_key=True),
    Column("github_login", String(255), nullable=False),
    Column("access_token", Text, nullable=False),
    Column("token_type", String(30), nullable=False),
    Column("scope", Text, nullable=False, server_default=""),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

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
    """Repository for local accounts and their GitHub links.

    Usage:
        store = UserStore()
        user = store.find_by_provider_id("42")
        store.close()

    The login path uses the account-store interface plus get_by_id and
    update_last_login. create_user, get_by_username, count_users and get_token
    are operator helpers for seeding and inspecting accounts; the tests use
    them the same way.
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Account-store interface used by IdentityLinker
    # ------------------------------------------------------------------

    def find_by_provider_id(self, provider_user_id: str) -> User | None:
        """Look up the account linked to a GitHub user ID. Returns None if unlinked."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.github_user_id == provider_user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def create_account(
        self,
        login_name: str,
        provider_user_id: str,
        display_name: str | None = None,
    ) -> User | UsernameConflict:
        """Provision a new account named login_name and linked to provider_user_id.

        On a UNIQUE violation there are two cases:
          - another request already provisioned this GitHub user -- return it;
          - the username belongs to an unrelated account -- UsernameConflict.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=login_name,
                        github_user_id=provider_user_id,
                        display_name=display_name,
                        created_at=_now_iso(),
                        is_active=1,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError:
            existing = self.find_by_provider_id(provider_user_id)
            if existing is not None:
                logger.info("Concurrent provisioning for GitHub user %s resolved to existing account", provider_user_id)
                return existing
            return UsernameConflict(username=login_name)
        return self.get_by_id(user_id)

    def record_token_association(self, user: User, github_login: str, token: ProviderToken) -> None:
        """Store (or replace) the GitHub token obtained for this account."""
        values = {
            "github_login": github_login,
            "access_token": token.access_token,
            "token_type": token.token_type,
            "scope": token.scope,
            "updated_at": _now_iso(),
        }
        update = _github_tokens.update().where(_github_tokens.c.user_id == user.id).values(**values)
        with self.engine.connect() as conn:
            result = conn.execute(update)
            if result.rowcount == 0:
                try:
                    conn.execute(_github_tokens.insert().values(user_id=user.id, **values))
                except IntegrityError:
                    # A concurrent login for the same account inserted the row first.
                    conn.rollback()
                    conn.execute(update)
            conn.commit()

    # ------------------------------------------------------------------
    # General user queries and operator helpers
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a pre-built user record and return its ID.

        Raises sqlalchemy.exc.IntegrityError if the username or GitHub ID is taken.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    github_user_id=user.github_user_id,
                    display_name=user.display_name,
                    created_at=_now_iso(),
                    is_active=1 if user.is_active else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login after a successful login."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    def get_token(self, user_id: int) -> ProviderToken | None:
        """Return the stored GitHub token for an account, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_github_tokens.select().where(_github_tokens.c.user_id == user_id)).fetchone()
        return _row_to_token(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        github_user_id=row.github_user_id,
        display_name=row.display_name,
        created_at=row.created_at,
        last_login=row.last_login,
        is_active=bool(row.is_active),
    )


def _row_to_token(row) -> ProviderToken:
    return ProviderToken(access_token=row.access_token, token_type=row.token_type, scope=row.scope or "")
