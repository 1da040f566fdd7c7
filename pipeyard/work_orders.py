"""Tenant-scoped inventory item lookup and work order listings built from inventory."""

from __future__ import annotations

import re
import sqlite3
from typing import Any, Mapping, Optional, Sequence, Union

from pipeyard.inventory import InventoryRow
from pipeyard.middleware import HttpError

_INTEGER = re.compile(r"[+-]?\d+")

_WITH_WORK_ORDER = (
    "tenant_id = ? AND NOT deleted AND work_order IS NOT NULL AND work_order != ''"
)

_ITEM_COLUMNS = (
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
    "well_in",
    "lease_in",
    "location",
    "notes",
    "tenant_id",
)

_DETAIL_COLUMNS = (
    "id",
    "joints",
    "size",
    "weight",
    "grade",
    "connection",
    "date_in",
    "well_in",
    "lease_in",
    "location",
    "notes",
)


def _atoi(text: Optional[str]) -> Optional[int]:
    if text is None or not _INTEGER.fullmatch(text):
        return None
    return int(text)


def _query_failed(exc: Exception) -> HttpError:
    return HttpError(500, {"error": "Query failed", "details": str(exc)})


def _null_column(columns: Sequence[str], row: Sequence[Any]) -> Optional[str]:
    return next((name for name, value in zip(columns, row) if value is None), None)


def get_inventory_item(
    conn: sqlite3.Connection, tenant_id: str, item_id: Union[str, int]
) -> dict[str, Any]:
    """Return one inventory item of a tenant."""
    number = _atoi(str(item_id))
    if number is None:
        raise HttpError(
            400, {"error": "Invalid inventory item ID", "message": "ID must be a number"}
        )

    try:
        row = conn.execute(
            f"SELECT {', '.join(_ITEM_COLUMNS)} FROM inventory "
            "WHERE id = ? AND tenant_id = ? AND NOT deleted",
            (number, tenant_id),
        ).fetchone()
    except sqlite3.Error as exc:
        raise _query_failed(exc) from exc
    if row is None:
        raise HttpError(
            404,
            {
                "error": "Inventory item not found",
                "message": f"No inventory item with ID {number} found for tenant {tenant_id}",
            },
        )
    missing = _null_column(_ITEM_COLUMNS, row)
    if missing is not None:
        raise HttpError(
            500, {"error": "Query failed", "details": f"column {missing} is NULL"}
        )

    record = dict(zip(_ITEM_COLUMNS, row))
    item = InventoryRow(
        id=int(record["id"]),
        work_order=str(record["work_order"]),
        customer_id=int(record["customer_id"]),
        customer=str(record["customer"]),
        joints=int(record["joints"]),
        size=str(record["size"]),
        weight=float(record["weight"]),
        grade=str(record["grade"]),
        connection=str(record["connection"]),
        date_in=str(record["date_in"]),
        well_in=str(record["well_in"]),
        lease_in=str(record["lease_in"]),
        location=str(record["location"]),
        notes=str(record["notes"]),
        tenant_id=str(record["tenant_id"]),
    )
    return {"tenant": tenant_id, "item": item.to_dict()}


def _distinct_values(
    conn: sqlite3.Connection,
    column: str,
    tenant_id: str,
    work_order: str,
    customer: str,
    customer_id: int,
) -> Optional[str]:
    """Join the sorted distinct non-null values of a column within one group, or None."""
    rows = conn.execute(
        f"SELECT DISTINCT {column} FROM inventory "
        "WHERE tenant_id = ? AND NOT deleted AND work_order = ? "
        f"AND customer = ? AND customer_id = ? AND {column} IS NOT NULL "
        f"ORDER BY {column}",
        (tenant_id, work_order, customer, customer_id),
    ).fetchall()
    if not rows:
        return None
    return ", ".join(str(value) for (value,) in rows)


def get_work_orders(
    conn: sqlite3.Connection, tenant_id: str, params: Mapping[str, str]
) -> dict[str, Any]:
    """List a tenant's work orders, aggregated from inventory, newest first.

    Understood parameters: search, customer_id, limit and offset.
    """
    search = params.get("search") or ""
    customer_id_text = params.get("customer_id") or ""
    limit = _atoi(params.get("limit", "50")) or 0
    offset = _atoi(params.get("offset", "0")) or 0
    limit = min(limit, 1000)
    if limit < 1:
        limit = 50

    clauses = [_WITH_WORK_ORDER]
    args: list[Any] = [tenant_id]
    customer_filter = _atoi(customer_id_text) if customer_id_text else None
    if customer_filter is not None:
        clauses.append("customer_id = ?")
        args.append(customer_filter)
    if search:
        clauses.append("(work_order LIKE ? OR customer LIKE ?)")
        args.extend([f"%{search}%"] * 2)
    where = " AND ".join(clauses)

    try:
        rows = conn.execute(
            "SELECT work_order, customer, customer_id, COUNT(*), SUM(joints), "
            "MIN(date_in), MAX(date_in) AS latest_date "
            f"FROM inventory WHERE {where} "
            "GROUP BY work_order, customer, customer_id "
            "ORDER BY latest_date DESC, work_order LIMIT ? OFFSET ?",
            (*args, limit, offset),
        ).fetchall()
    except sqlite3.Error as exc:
        raise _query_failed(exc) from exc

    work_orders = []
    for work_order, customer, customer_id, item_count, total_joints, start, latest in rows:
        if None in (customer, customer_id, total_joints, start, latest):
            continue
        try:
            lists = {
                name: _distinct_values(conn, name[:-1] if name != "locations" else "location",
                                       tenant_id, work_order, customer, customer_id)
                for name in ("locations", "sizes", "grades")
            }
        except sqlite3.Error:
            continue
        if any(value is None for value in lists.values()):
            continue
        work_orders.append(
            {
                "work_order": work_order,
                "customer": customer,
                "customer_id": customer_id,
                "item_count": item_count,
                "total_joints": total_joints,
                "start_date": str(start),
                "latest_date": str(latest),
                **lists,
            }
        )

    try:
        (total,) = conn.execute(
            f"SELECT COUNT(DISTINCT work_order) FROM inventory WHERE {where}", args
        ).fetchone()
    except sqlite3.Error:
        total = 0

    return {
        "tenant": tenant_id,
        "work_orders": work_orders,
        "count": len(work_orders),
        "total": total,
        "limit": limit,
        "offset": offset,
        "search": search,
        "customer_id": customer_id_text,
    }


def get_work_order(
    conn: sqlite3.Connection, tenant_id: str, work_order_id: str
) -> dict[str, Any]:
    """Return a work order's summary, its items and other work orders of its customer."""
    if not work_order_id:
        raise HttpError(400, {"error": "Work order ID is required"})

    try:
        row = conn.execute(
            "SELECT work_order, customer, customer_id, COUNT(*), SUM(joints), "
            "MIN(date_in), MAX(date_in) FROM inventory "
            "WHERE work_order = ? AND tenant_id = ? AND NOT deleted "
            "GROUP BY work_order, customer, customer_id LIMIT 1",
            (work_order_id, tenant_id),
        ).fetchone()
    except sqlite3.Error as exc:
        raise _query_failed(exc) from exc
    if row is None:
        raise HttpError(
            404,
            {
                "error": "Work order not found",
                "message": f"No work order '{work_order_id}' found for tenant {tenant_id}",
            },
        )

    summary_columns = (
        "work_order", "customer", "customer_id", "item_count",
        "total_joints", "start_date", "latest_date",
    )
    missing = _null_column(summary_columns, row)
    if missing is not None:
        raise HttpError(500, {"error": "Query failed", "details": f"column {missing} is NULL"})
    work_order, customer, customer_id, item_count, total_joints, start, latest = row
    try:
        locations = _distinct_values(
            conn, "location", tenant_id, work_order, customer, customer_id
        )
    except sqlite3.Error as exc:
        raise _query_failed(exc) from exc
    if locations is None:
        raise HttpError(500, {"error": "Query failed", "details": "column locations is NULL"})

    summary = {
        "work_order": work_order,
        "customer": customer,
        "customer_id": customer_id,
        "item_count": item_count,
        "total_joints": total_joints,
        "start_date": str(start),
        "latest_date": str(latest),
        "locations": locations,
    }

    try:
        item_rows = conn.execute(
            f"SELECT {', '.join(_DETAIL_COLUMNS)} FROM inventory "
            "WHERE work_order = ? AND tenant_id = ? AND NOT deleted ORDER BY date_in, id",
            (work_order_id, tenant_id),
        ).fetchall()
    except sqlite3.Error as exc:
        raise HttpError(
            500, {"error": "Failed to get work order items", "details": str(exc)}
        ) from exc

    items = []
    for item_row in item_rows:
        if _null_column(_DETAIL_COLUMNS, item_row) is not None:
            continue
        record = dict(zip(_DETAIL_COLUMNS, item_row))
        record["weight"] = float(record["weight"])
        record["date_in"] = str(record["date_in"])
        items.append(record)

    response: dict[str, Any] = {"tenant": tenant_id, "summary": summary, "items": items}
    try:
        related_rows = conn.execute(
            "SELECT DISTINCT work_order FROM inventory "
            "WHERE customer_id = ? AND tenant_id = ? AND work_order != ? AND NOT deleted "
            "ORDER BY work_order LIMIT 10",
            (customer_id, tenant_id, work_order_id),
        ).fetchall()
    except sqlite3.Error:
        return response
    response["related_work_orders"] = [
        related for (related,) in related_rows if related is not None
    ]
    return response