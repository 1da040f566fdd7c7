"""Persistence of inventory items in a relational store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator, Optional, Sequence

from pipeyard.customer_repository import RepositoryError
from pipeyard.domain import InventoryFilters, InventoryItem

_SCHEMA = """
CREATE TABLE IF NOT EXISTS inventory (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    work_order TEXT,
    customer_id INTEGER,
    customer TEXT,
    joints INTEGER,
    size TEXT,
    weight REAL,
    grade TEXT,
    connection TEXT,
    date_in TEXT,
    date_out TEXT,
    well_in TEXT,
    lease_in TEXT,
    well_out TEXT,
    lease_out TEXT,
    location TEXT,
    notes TEXT,
    deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

_COLUMNS = (
    "id",
    "work_order",
    "customer_id",
    "customer",
    "joints",
    "size",
    "weight",
    "grade",
    "connection",
    "date_in",
    "date_out",
    "well_in",
    "lease_in",
    "well_out",
    "lease_out",
    "location",
    "notes",
    "deleted",
    "created_at",
)

_WRITABLE = _COLUMNS[1:17]

_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM inventory"


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the inventory table if it is missing."""
    conn.executescript(_SCHEMA)
    conn.commit()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _date_param(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _to_item(row: Sequence[Any]) -> InventoryItem:
    record = dict(zip(_COLUMNS, row))
    record["weight"] = float(record["weight"]) if record["weight"] is not None else None
    record["date_in"] = _parse_date(record["date_in"])
    record["date_out"] = _parse_date(record["date_out"])
    record["deleted"] = bool(record["deleted"])
    record["created_at"] = _parse_timestamp(record["created_at"])
    return InventoryItem(**record)


def _writable_values(item: InventoryItem) -> tuple[Any, ...]:
    values = []
    for column in _WRITABLE:
        value = getattr(item, column)
        if column in ("date_in", "date_out"):
            value = _date_param(value)
        values.append(value)
    return tuple(values)


@contextmanager
def _failure(conn: sqlite3.Connection, message: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        conn.rollback()
        raise RepositoryError(f"{message}: {exc}") from exc


class InventoryRepository:
    """Reads and writes inventory items; deletion is a soft delete."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _fetch(self, message: str, sql: str, params: Sequence[Any] = ()) -> list[InventoryItem]:
        with _failure(self._conn, message):
            rows = self._conn.execute(sql, tuple(params)).fetchall()
        return [_to_item(row) for row in rows]

    def get_all(self, filters: Optional[InventoryFilters] = None) -> list[InventoryItem]:
        """Return items that are not deleted and match the filters, newest first."""
        filters = filters or InventoryFilters()
        conditions = ["deleted = 0"]
        params: list[Any] = []

        for column in ("customer_id", "grade", "size", "location"):
            value = getattr(filters, column)
            if value is not None:
                conditions.append(f"{column} = ?")
                params.append(value)
        if filters.available:
            conditions.append("date_out IS NULL")
        if filters.date_from is not None:
            conditions.append("date_in >= ?")
            params.append(_date_param(filters.date_from))
        if filters.date_to is not None:
            conditions.append("date_in <= ?")
            params.append(_date_param(filters.date_to))

        sql = f"{_SELECT} WHERE {' AND '.join(conditions)} ORDER BY created_at DESC, id DESC"
        if filters.limit > 0:
            sql += " LIMIT ?"
            params.append(filters.limit)
        if filters.offset > 0:
            if filters.limit <= 0:
                sql += " LIMIT -1"
            sql += " OFFSET ?"
            params.append(filters.offset)

        return self._fetch("failed to query inventory", sql, params)

    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        """Return the item with this id, or None if absent or deleted."""
        with _failure(self._conn, f"failed to get inventory item {item_id}"):
            row = self._conn.execute(
                f"{_SELECT} WHERE id = ? AND deleted = 0", (item_id,)
            ).fetchone()
        return _to_item(row) if row is not None else None

    def get_by_work_order(self, work_order: str) -> list[InventoryItem]:
        """Return the items of one work order in the order they were created."""
        return self._fetch(
            "failed to query inventory by work order",
            f"{_SELECT} WHERE work_order = ? AND deleted = 0 ORDER BY created_at, id",
            (work_order,),
        )

    def get_available(self) -> list[InventoryItem]:
        """Return items that have not left the yard."""
        return self.get_all(InventoryFilters(available=True))

    def search(self, query: str) -> list[InventoryItem]:
        """Return items whose text fields contain the query, ignoring case."""
        term = f"%{query.lower()}%"
        fields = ("work_order", "customer", "size", "grade", "location", "notes")
        condition = " OR ".join(f"{name} LIKE ?" for name in fields)
        return self._fetch(
            "failed to search inventory",
            f"{_SELECT} WHERE deleted = 0 AND ({condition}) ORDER BY created_at DESC, id DESC",
            (term,) * len(fields),
        )

    def create(self, item: InventoryItem) -> InventoryItem:
        """Insert the item, filling in its id and creation time."""
        placeholders = ", ".join("?" for _ in _WRITABLE)
        with _failure(self._conn, "failed to create inventory item"):
            cursor = self._conn.execute(
                f"INSERT INTO inventory ({', '.join(_WRITABLE)}) VALUES ({placeholders})",
                _writable_values(item),
            )
            new_id = cursor.lastrowid
            (created_at,) = self._conn.execute(
                "SELECT created_at FROM inventory WHERE id = ?", (new_id,)
            ).fetchone()
            self._conn.commit()
        item.id = new_id
        item.created_at = _parse_timestamp(created_at)
        return item

    def update(self, item: InventoryItem) -> None:
        """Overwrite the stored fields of an item that is not deleted."""
        assignments = ", ".join(f"{column} = ?" for column in _WRITABLE)
        with _failure(self._conn, "failed to update inventory item"):
            cursor = self._conn.execute(
                f"UPDATE inventory SET {assignments} WHERE id = ? AND deleted = 0",
                (*_writable_values(item), item.id),
            )
            self._conn.commit()
        if cursor.rowcount == 0:
            raise RepositoryError(f"inventory item {item.id} not found or already deleted")

    def delete(self, item_id: int) -> None:
        """Mark the item as deleted."""
        with _failure(self._conn, "failed to delete inventory item"):
            cursor = self._conn.execute(
                "UPDATE inventory SET deleted = 1 WHERE id = ?", (item_id,)
            )
            self._conn.commit()
        if cursor.rowcount == 0:
            raise RepositoryError(f"inventory item {item_id} not found")