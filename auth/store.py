"""
auth/store.py -- User directory: where credentials and roles come from.

UserDirectory is the capability the credential validator and login handler
depend on. Two implementations:

  InMemoryUserDirectory -- the placeholder directory ("admin"/"admin123",
      "user"/"user123"). Passwords are hashed with PBKDF2 at construction so
      the validator runs the same verification path as with a real store.
      Its role policy is the placeholder one: "admin" -> Admin, else User.

  SqlUserDirectory -- SQLAlchemy Core store (Repository + Data Mapper).
      Roles come from the stored row. Selected by USER_STORE_URL.

Production wiring only swaps the implementation (build_user_directory()).

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Credential
from auth.passwords import hash_password

logger = logging.getLogger("incidentmap.auth.store")

ADMIN_ROLE = "Admin"
USER_ROLE = "User"
# Google SSO users are not in any directory yet; they all get this role.
SSO_ROLE = USER_ROLE


def role_for(username: str) -> str:
    """Placeholder role policy: the "admin" account is Admin, everyone else is User."""
    return ADMIN_ROLE if username == "admin" else USER_ROLE


class UserDirectory(Protocol):
    def get_credential(self, username: str) -> Optional[Credential]: ...

    def role_for(self, username: str) -> str: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Placeholder directory
# ---------------------------------------------------------------------------

_PLACEHOLDER_USERS = {
    "admin": "admin123",
    "user": "user123",
}


class InMemoryUserDirectory:
    """Stand-in for a real user store. Not for production use."""

    def __init__(self, users: Optional[dict[str, str]] = None) -> None:
        source = _PLACEHOLDER_USERS if users is None else users
        self._credentials = {
            name: Credential(username=name, password_hash=hash_password(pw), role=role_for(name))
            for name, pw in source.items()
        }

    def get_credential(self, username: str) -> Optional[Credential]:
        return self._credentials.get(username)

    def role_for(self, username: str) -> str:
        return role_for(username)

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# SQL-backed directory
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),  # iterations:salt_b64:digest_b64
    Column("role", String(30), nullable=False, server_default=USER_ROLE),
    Column("created_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (per connection)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqlUserDirectory:
    """Repository for user credentials.

    Usage:
        store = SqlUserDirectory("sqlite:///users.db")
        store.add_user("alice", hash_password("s3cret-pass"), role="Admin")
        cred = store.get_credential("alice")
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

    def add_user(self, username: str, password_hash: str, role: str = USER_ROLE) -> int:
        """Insert a user and return its id.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=username,
                    password_hash=password_hash,
                    role=role,
                    created_at=_now_iso(),
                    is_active=1,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def set_active(self, username: str, is_active: bool) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.username == username).values(is_active=1 if is_active else 0)
            )
            conn.commit()
        return result.rowcount > 0

    def get_credential(self, username: str) -> Optional[Credential]:
        """Return the credential for an active user (case-sensitive), or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.username == username) & (_users.c.is_active == 1))
            ).fetchone()
        return _row_to_credential(row) if row is not None else None

    def role_for(self, username: str) -> str:
        credential = self.get_credential(username)
        return credential.role if credential is not None else USER_ROLE

    def close(self) -> None:
        self.engine.dispose()


def _row_to_credential(row) -> Credential:
    return Credential(username=row.username, password_hash=row.password_hash, role=row.role)


def build_user_directory(user_store_url: str) -> UserDirectory:
    """Return the SQL directory when a URL is configured, else the placeholder."""
    if user_store_url:
        logger.info("Using SQL user directory")
        return SqlUserDirectory(user_store_url)
    logger.warning("USER_STORE_URL not set -- using the in-memory placeholder user directory")
    return InMemoryUserDirectory()
