"""Persistence of customers in a relational store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional, Sequence

from pipeyard.domain import Customer


class RepositoryError(Exception):
    """Raised when a repository operation fails or finds nothing to change."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS customers (
    customer_id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer TEXT NOT NULL,
    billing_address TEXT,
    billing_city TEXT,
    billing_state TEXT,
    billing_zipcode TEXT,
    contact TEXT,
    phone TEXT,
    fax TEXT,
    email TEXT,
    deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

_COLUMNS = (
    "customer_id",
    "customer",
    "billing_address",
    "billing_city",
    "billing_state",
    "billing_zipcode",
    "contact",
    "phone",
    "fax",
    "email",
    "deleted",
    "created_at",
)

_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM customers"


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the customers table if it is missing."""
    conn.executescript(_SCHEMA)
    conn.commit()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_customer(row: Sequence[Any]) -> Customer:
    record = dict(zip(_COLUMNS, row))
    record["deleted"] = bool(record["deleted"])
    record["created_at"] = _parse_timestamp(record["created_at"])
    return Customer(**record)


@contextmanager
def _failure(conn: sqlite3.Connection, message: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        conn.rollback()
        raise RepositoryError(f"{message}: {exc}") from exc


class CustomerRepository:
    """Reads and writes customers; deletion is a soft delete."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_all(self) -> list[Customer]:
        """Return every customer that is not deleted, ordered by name."""
        with _failure(self._conn, "failed to query customers"):
            rows = self._conn.execute(
                f"{_SELECT} WHERE deleted = 0 ORDER BY customer"
            ).fetchall()
        return [_to_customer(row) for row in rows]

    def get_by_id(self, customer_id: int) -> Optional[Customer]:
        """Return the customer with this id, or None if absent or deleted."""
        with _failure(self._conn, f"failed to get customer {customer_id}"):
            row = self._conn.execute(
                f"{_SELECT} WHERE customer_id = ? AND deleted = 0", (customer_id,)
            ).fetchone()
        return _to_customer(row) if row is not None else None

    def search(self, query: str) -> list[Customer]:
        """Return customers whose name, contact or e-mail contains the query, ignoring case."""
        term = f"%{query.lower()}%"
        with _failure(self._conn, "failed to search customers"):
            rows = self._conn.execute(
                f"{_SELECT} WHERE deleted = 0 "
                "AND (customer LIKE ? OR contact LIKE ? OR email LIKE ?) "
                "ORDER BY customer",
                (term, term, term),
            ).fetchall()
        return [_to_customer(row) for row in rows]

    def create(self, customer: Customer) -> Customer:
        """Insert the customer, filling in its id and creation time."""
        with _failure(self._conn, "failed to create customer"):
            cursor = self._conn.execute(
                "INSERT INTO customers (customer, billing_address, billing_city, billing_state, "
                "billing_zipcode, contact, phone, fax, email) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    customer.customer,
                    customer.billing_address,
                    customer.billing_city,
                    customer.billing_state,
                    customer.billing_zipcode,
                    customer.contact,
                    customer.phone,
                    customer.fax,
                    customer.email,
                ),
            )
            new_id = cursor.lastrowid
            (created_at,) = self._conn.execute(
                "SELECT created_at FROM customers WHERE customer_id = ?", (new_id,)
            ).fetchone()
            self._conn.commit()
        customer.customer_id = new_id
        customer.created_at = _parse_timestamp(created_at)
        return customer

    def update(self, customer: Customer) -> None:
        """Overwrite the stored fields of a customer that is not deleted."""
        with _failure(self._conn, "failed to update customer"):
            cursor = self._conn.execute(
                "UPDATE customers SET customer = ?, billing_address = ?, billing_city = ?, "
                "billing_state = ?, billing_zipcode = ?, contact = ?, phone = ?, fax = ?, email = ? "
                "WHERE customer_id = ? AND deleted = 0",
                (
                    customer.customer,
                    customer.billing_address,
                    customer.billing_city,
                    customer.billing_state,
                    customer.billing_zipcode,
                    customer.contact,
                    customer.phone,
                    customer.fax,
                    customer.email,
                    customer.customer_id,
                ),
            )
            self._conn.commit()
        if cursor.rowcount == 0:
            raise RepositoryError(
                f"customer {customer.customer_id} not found or already deleted"
            )

    def delete(self, customer_id: int) -> None:
        """Mark the customer as deleted."""
        with _failure(self._conn, "failed to delete customer"):
            cursor = self._conn.execute(
                "UPDATE customers SET deleted = 1 WHERE customer_id = ?", (customer_id,)
            )
            self._conn.commit()
        if cursor.rowcount == 0:
            raise RepositoryError(f"customer {customer_id} not found")