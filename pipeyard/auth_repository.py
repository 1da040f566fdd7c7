"""Lookup of users and their tenants in the authentication database."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional, Sequence

from pipeyard.customer_repository import RepositoryError
from pipeyard.models import Tenant, User


class NotFoundError(RepositoryError):
    """Raised when a looked-up user or tenant does not exist or is inactive."""


_AUTH_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL,
    first_name TEXT,
    last_name TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS tenants (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    database_name TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS user_tenants (
    user_id INTEGER NOT NULL REFERENCES users (id),
    tenant_id INTEGER NOT NULL REFERENCES tenants (id),
    role TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    PRIMARY KEY (user_id, tenant_id)
);
"""

_USER_SELECT = (
    "SELECT id, email, username, COALESCE(first_name, ''), COALESCE(last_name, ''), "
    "active, created_at FROM users"
)

_TENANT_COLUMNS = "t.id, t.code, t.name, t.database_name, t.active, t.created_at"


def create_auth_schema(conn: sqlite3.Connection) -> None:
    """Create the users, tenants and user_tenants tables if they are missing."""
    conn.executescript(_AUTH_SCHEMA)
    conn.commit()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_user(row: Sequence[Any]) -> User:
    user_id, email, username, first_name, last_name, active, created_at = row
    return User(
        id=user_id,
        email=email,
        username=username,
        first_name=first_name,
        last_name=last_name,
        active=bool(active),
        created_at=_parse_timestamp(created_at),
    )


def _to_tenant(row: Sequence[Any]) -> Tenant:
    tenant_id, code, name, database_name, active, created_at = row
    return Tenant(
        id=tenant_id,
        code=code,
        name=name,
        database_name=database_name,
        active=bool(active),
        created_at=_parse_timestamp(created_at),
    )


@contextmanager
def _failure(message: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise RepositoryError(f"{message}: {exc}") from exc


class BaseRepository:
    """Holds the database connection a repository works on."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn


class AuthRepository(BaseRepository):
    """Reads active users, tenants and memberships."""

    def get_user_by_email(self, email: str) -> User:
        """Return the active user with this e-mail address."""
        with _failure("failed to get user"):
            row = self.conn.execute(
                f"{_USER_SELECT} WHERE email = ? AND active = 1", (email,)
            ).fetchone()
        if row is None:
            raise NotFoundError("user not found")
        return _to_user(row)

    def get_user_tenants(self, user_id: int) -> list[Tenant]:
        """Return the active tenants an active membership gives the user, by name."""
        with _failure("failed to get user tenants"):
            rows = self.conn.execute(
                f"SELECT {_TENANT_COLUMNS} FROM tenants t "
                "JOIN user_tenants ut ON t.id = ut.tenant_id "
                "WHERE ut.user_id = ? AND ut.active = 1 AND t.active = 1 "
                "ORDER BY t.name",
                (user_id,),
            ).fetchall()
        return [_to_tenant(row) for row in rows]

    def get_tenant_by_code(self, code: str) -> Tenant:
        """Return the active tenant with this code."""
        with _failure("failed to get tenant"):
            row = self.conn.execute(
                f"SELECT {_TENANT_COLUMNS} FROM tenants t WHERE t.code = ? AND t.active = 1",
                (code,),
            ).fetchone()
        if row is None:
            raise NotFoundError("tenant not found")
        return _to_tenant(row)