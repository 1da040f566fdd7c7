"""Tenant-scoped inventory listing with filters, paging and summary totals."""

from __future__ import annotations

import re
import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Sequence

from pipeyard.middleware import HttpError
from pipeyard.search import sanitize_search_term, validate_pagination

_INTEGER = re.compile(r"[+-]?\d+")

_SELECT = """
SELECT id, COALESCE(work_order, ''), COALESCE(r_number, ''),
       customer_id, customer, COALESCE(joints, 0), COALESCE(rack, ''),
       COALESCE(size, ''), COALESCE(weight, 0), COALESCE(grade, ''),
       COALESCE(connection, ''), COALESCE(ctd, ''),
       COALESCE(w_string, ''), COALESCE(color, ''),
       COALESCE(date_in, ''), COALESCE(date_out, ''),
       COALESCE(well_in, ''), COALESCE(lease_in, ''),
       COALESCE(well_out, ''), COALESCE(lease_out, ''),
       COALESCE(location, ''), COALESCE(notes, ''), tenant_id
FROM inventory
"""

_SEARCH_COLUMNS = ("customer", "work_order", "size", "grade", "notes", "location")
_OMIT_EMPTY = ("date_out", "well_out", "lease_out")
_REQUIRED = (0, 3, 4, 22)


@dataclass
class InventoryRow:
    """An inventory item as returned by the listing endpoint."""

    id: int
    work_order: str = ""
    r_number: str = ""
    customer_id: int = 0
    customer: str = ""
    joints: int = 0
    rack: str = ""
    size: str = ""
    weight: float = 0.0
    grade: str = ""
    connection: str = ""
    ctd: str = ""
    w_string: str = ""
    color: str = ""
    date_in: str = ""
    date_out: str = ""
    well_in: str = ""
    lease_in: str = ""
    well_out: str = ""
    lease_out: str = ""
    location: str = ""
    notes: str = ""
    tenant_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        for name in _OMIT_EMPTY:
            if not result[name]:
                del result[name]
        return result


def _to_row(row: Sequence[Any]) -> Optional[InventoryRow]:
    if any(row[index] is None for index in _REQUIRED):
        return None
    try:
        (
            item_id, work_order, r_number, customer_id, customer, joints, rack,
            size, weight, grade, connection, ctd, w_string, color, date_in,
            date_out, well_in, lease_in, well_out, lease_out, location, notes,
            tenant_id,
        ) = row
        return InventoryRow(
            id=int(item_id),
            work_order=str(work_order),
            r_number=str(r_number),
            customer_id=int(customer_id),
            customer=str(customer),
            joints=int(joints),
            rack=str(rack),
            size=str(size),
            weight=float(weight),
            grade=str(grade),
            connection=str(connection),
            ctd=str(ctd),
            w_string=str(w_string),
            color=str(color),
            date_in=str(date_in),
            date_out=str(date_out),
            well_in=str(well_in),
            lease_in=str(lease_in),
            well_out=str(well_out),
            lease_out=str(lease_out),
            location=str(location),
            notes=str(notes),
            tenant_id=str(tenant_id),
        )
    except (TypeError, ValueError):
        return None


def _param(params: Mapping[str, str], name: str) -> str:
    return (params.get(name) or "").strip()


def get_inventory(
    conn: sqlite3.Connection, tenant_id: str, params: Mapping[str, str]
) -> dict[str, Any]:
    """List a tenant's inventory filtered by the query parameters, one page at a time.

    Understood parameters: search, customer_id, work_order, size, grade,
    location, date_from, date_to (YYYY-MM-DD), limit and offset.
    """
    search = _param(params, "search")
    customer_id_text = params.get("customer_id") or ""
    work_order = _param(params, "work_order")
    size = _param(params, "size")
    grade = _param(params, "grade")
    location = _param(params, "location")
    date_from = _param(params, "date_from")
    date_to = _param(params, "date_to")
    limit, offset = validate_pagination(params.get("limit", "50"), params.get("offset", "0"))

    if search:
        search = sanitize_search_term(search)

    clauses = ["tenant_id = ?", "NOT deleted"]
    args: list[Any] = [tenant_id]
    if customer_id_text and _INTEGER.fullmatch(customer_id_text):
        clauses.append("customer_id = ?")
        args.append(int(customer_id_text))
    for column, value in (
        ("work_order", work_order),
        ("size", size),
        ("grade", grade),
        ("location", location),
    ):
        if value:
            clauses.append(f"{column} LIKE ?")
            args.append(f"%{value}%")
    if date_from:
        clauses.append("date_in >= ?")
        args.append(date_from)
    if date_to:
        clauses.append("date_in <= ?")
        args.append(date_to)
    if search:
        clauses.append("(" + " OR ".join(f"{c} LIKE ?" for c in _SEARCH_COLUMNS) + ")")
        args.extend([f"%{search}%"] * len(_SEARCH_COLUMNS))
    where = " AND ".join(clauses)

    try:
        rows = conn.execute(
            f"{_SELECT} WHERE {where} ORDER BY date_in DESC, id DESC LIMIT ? OFFSET ?",
            (*args, limit, offset),
        ).fetchall()
    except sqlite3.Error as exc:
        raise HttpError(500, {"error": "Query failed", "details": str(exc)}) from exc
    items = [item for item in map(_to_row, rows) if item is not None]

    try:
        (total,) = conn.execute(
            f"SELECT COUNT(*) FROM inventory WHERE {where}", args
        ).fetchone()
    except sqlite3.Error:
        total = 0

    return {
        "tenant": tenant_id,
        "inventory": [item.to_dict() for item in items],
        "count": len(items),
        "total": total,
        "limit": limit,
        "offset": offset,
        "page": offset // limit + 1,
        "has_more": offset + limit < total,
        "search": search,
        "filters": {
            "customer_id": customer_id_text,
            "work_order": work_order,
            "size": size,
            "grade": grade,
            "location": location,
            "date_from": date_from,
            "date_to": date_to,
        },
        "summary": inventory_summary(conn, tenant_id),
    }


def _count(conn: sqlite3.Connection, sql: str, tenant_id: str) -> int:
    try:
        row = conn.execute(sql, (tenant_id,)).fetchone()
    except sqlite3.Error:
        return 0
    return int(row[0]) if row is not None and row[0] is not None else 0


def inventory_summary(conn: sqlite3.Connection, tenant_id: str) -> dict[str, Any]:
    """Totals over all of a tenant's inventory: joints, weight and distinct counts.

    total_joints and total_weight are left out when there is nothing to sum.
    """
    base = "FROM inventory WHERE tenant_id = ? AND NOT deleted"
    summary: dict[str, Any] = {}
    try:
        row = conn.execute(f"SELECT SUM(joints), SUM(weight) {base}", (tenant_id,)).fetchone()
    except sqlite3.Error:
        row = None
    if row is not None:
        total_joints, total_weight = row
        if total_joints is not None:
            summary["total_joints"] = int(total_joints)
        if total_weight is not None:
            summary["total_weight"] = float(total_weight)

    def distinct(column: str, non_empty: bool = True) -> int:
        condition = f" AND {column} IS NOT NULL AND {column} != ''" if non_empty else ""
        return _count(conn, f"SELECT COUNT(DISTINCT {column}) {base}{condition}", tenant_id)

    summary["unique_customers"] = distinct("customer_id", non_empty=False)
    summary["unique_work_orders"] = distinct("work_order")
    summary["unique_sizes"] = distinct("size")
    summary["unique_grades"] = distinct("grade")
    return summary