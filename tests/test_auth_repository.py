import sqlite3
from datetime import datetime

import pytest

from pipeyard.auth_repository import (
    AuthRepository,
    BaseRepository,
    NotFoundError,
    create_auth_schema,
)
from pipeyard.customer_repository import RepositoryError


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    create_auth_schema(connection)
    yield connection
    connection.close()


def add_user(conn, email, username, active=1, first_name=None, last_name=None):
    cursor = conn.execute(
        "INSERT INTO users (email, username, first_name, last_name, active) VALUES (?, ?, ?, ?, ?)",
        (email, username, first_name, last_name, active),
    )
    conn.commit()
    return cursor.lastrowid


def add_tenant(conn, code, name, active=1):
    cursor = conn.execute(
        "INSERT INTO tenants (code, name, database_name, active) VALUES (?, ?, ?, ?)",
        (code, name, f"oilgas_{code}", active),
    )
    conn.commit()
    return cursor.lastrowid


def link(conn, user_id, tenant_id, role="operator", active=1):
    conn.execute(
        "INSERT INTO user_tenants (user_id, tenant_id, role, active) VALUES (?, ?, ?, ?)",
        (user_id, tenant_id, role, active),
    )
    conn.commit()


def test_base_repository_keeps_connection(conn):
    repo = BaseRepository(conn)
    assert repo.conn is conn


def test_get_user_by_email_returns_user(conn):
    user_id = add_user(conn, "ann@example.com", "ann", first_name="Ann", last_name="Lee")
    user = AuthRepository(conn).get_user_by_email("ann@example.com")
    assert user.id == user_id
    assert user.username == "ann"
    assert user.first_name == "Ann"
    assert user.last_name == "Lee"
    assert user.active is True
    assert isinstance(user.created_at, datetime)


def test_missing_names_become_empty(conn):
    add_user(conn, "bob@example.com", "bob")
    user = AuthRepository(conn).get_user_by_email("bob@example.com")
    assert (user.first_name, user.last_name) == ("", "")


def test_unknown_user_raises(conn):
    with pytest.raises(NotFoundError, match="user not found"):
        AuthRepository(conn).get_user_by_email("nobody@example.com")


def test_inactive_user_is_not_found(conn):
    add_user(conn, "old@example.com", "old", active=0)
    with pytest.raises(NotFoundError):
        AuthRepository(conn).get_user_by_email("old@example.com")


def test_not_found_is_a_repository_error(conn):
    with pytest.raises(RepositoryError):
        AuthRepository(conn).get_tenant_by_code("missing")


def test_user_tenants_sorted_by_name_and_active_only(conn):
    user_id = add_user(conn, "ann@example.com", "ann")
    houston = add_tenant(conn, "houston", "Houston Location")
    longbeach = add_tenant(conn, "longbeach", "Long Beach Location")
    closed = add_tenant(conn, "closed", "Closed Location", active=0)
    revoked = add_tenant(conn, "revoked", "Another Location")
    link(conn, user_id, longbeach, role="admin")
    link(conn, user_id, houston)
    link(conn, user_id, closed)
    link(conn, user_id, revoked, active=0)

    tenants = AuthRepository(conn).get_user_tenants(user_id)
    assert [t.code for t in tenants] == ["houston", "longbeach"]
    assert all(t.active for t in tenants)
    assert tenants[1].database_name == "oilgas_longbeach"


def test_user_without_tenants_gets_empty_list(conn):
    user_id = add_user(conn, "ann@example.com", "ann")
    assert AuthRepository(conn).get_user_tenants(user_id) == []


def test_get_tenant_by_code(conn):
    tenant_id = add_tenant(conn, "longbeach", "Long Beach Location")
    tenant = AuthRepository(conn).get_tenant_by_code("longbeach")
    assert tenant.id == tenant_id
    assert tenant.name == "Long Beach Location"
    assert tenant.database_name == "oilgas_longbeach"


def test_inactive_tenant_is_not_found(conn):
    add_tenant(conn, "closed", "Closed Location", active=0)
    with pytest.raises(NotFoundError, match="tenant not found"):
        AuthRepository(conn).get_tenant_by_code("closed")


def test_database_failure_raises_repository_error():
    connection = sqlite3.connect(":memory:")
    with pytest.raises(RepositoryError):
        AuthRepository(connection).get_user_tenants(1)
    connection.close()