"""Tenant-scoped customer listing and detail lookups."""

from __future__ import annotations

import re
import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from pipeyard.middleware import HttpError
from pipeyard.search import sanitize_search_term, validate_pagination

_INTEGER = re.compile(r"[+-]?\d+")

_SELECT = """
SELECT customer_id, customer, COALESCE(billing_address, ''), COALESCE(billing_city, ''),
       COALESCE(billing_state, ''), COALESCE(billing_zipcode, ''), COALESCE(contact, ''),
       COALESCE(phone, ''), COALESCE(fax, ''), COALESCE(email, ''), tenant_id,
       COALESCE(imported_at, ''), created_at
FROM customers
"""

_SEARCH_COLUMNS = ("customer", "contact", "billing_city", "billing_state", "phone", "email")


@dataclass
class CustomerRow:
    """A customer as returned by the listing and detail endpoints."""

    customer_id: int
    customer: str
    billing_address: str = ""
    billing_city: str = ""
    billing_state: str = ""
    billing_zipcode: str = ""
    contact: str = ""
    phone: str = ""
    fax: str = ""
    email: str = ""
    tenant_id: str = ""
    imported_at: str = ""
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        if not self.imported_at:
            del result["imported_at"]
        return result


def _to_row(row: Sequence[Any]) -> Optional[CustomerRow]:
    if any(row[index] is None for index in (0, 1, 10, 12)):
        return None
    return CustomerRow(*(row[0], *(str(value) for value in row[1:])))


def _search_condition() -> str:
    return "(" + " OR ".join(f"{column} LIKE ?" for column in _SEARCH_COLUMNS) + ")"


def get_customers(
    conn: sqlite3.Connection, tenant_id: str, params: Mapping[str, str]
) -> dict[str, Any]:
    """List a tenant's customers filtered by search, state and city, one page at a time."""
    search = (params.get("search") or "").strip()
    state = (params.get("state") or "").strip()
    city = (params.get("city") or "").strip()
    limit, offset = validate_pagination(params.get("limit", "50"), params.get("offset", "0"))

    search_requested = bool(search)
    if search_requested:
        search = sanitize_search_term(search)

    def conditions(include_search: bool) -> tuple[str, list[Any]]:
        clauses = ["tenant_id = ?", "NOT deleted"]
        args: list[Any] = [tenant_id]
        if include_search:
            clauses.append(_search_condition())
            args.extend([f"%{search}%"] * len(_SEARCH_COLUMNS))
        if state:
            clauses.append("billing_state LIKE ?")
            args.append(f"%{state}%")
        if city:
            clauses.append("billing_city LIKE ?")
            args.append(f"%{city}%")
        return " AND ".join(clauses), args

    where, args = conditions(search_requested)
    try:
        rows = conn.execute(
            f"{_SELECT} WHERE {where} ORDER BY customer LIMIT ? OFFSET ?",
            (*args, limit, offset),
        ).fetchall()
    except sqlite3.Error as exc:
        raise HttpError(500, {"error": "Query failed", "details": str(exc)}) from exc
    customers = [customer for customer in map(_to_row, rows) if customer is not None]

    count_where, count_args = conditions(bool(search))
    try:
        (total,) = conn.execute(
            f"SELECT COUNT(*) FROM customers WHERE {count_where}", count_args
        ).fetchone()
    except sqlite3.Error:
        total = 0

    return {
        "tenant": tenant_id,
        "customers": [customer.to_dict() for customer in customers],
        "count": len(customers),
        "total": total,
        "limit": limit,
        "offset": offset,
        "page": offset // limit + 1,
        "has_more": offset + limit < total,
        "search": search,
        "filters": {"state": state, "city": city},
    }


def get_customer(
    conn: sqlite3.Connection, tenant_id: str, customer_id: Union[str, int]
) -> dict[str, Any]:
    """Return one customer of a tenant with counts of its inventory and work orders."""
    text = str(customer_id)
    if not _INTEGER.fullmatch(text):
        raise HttpError(
            400, {"error": "Invalid customer ID", "message": "Customer ID must be a number"}
        )
    number = int(text)

    try:
        row = conn.execute(
            f"{_SELECT} WHERE customer_id = ? AND tenant_id = ? AND NOT deleted",
            (number, tenant_id),
        ).fetchone()
    except sqlite3.Error as exc:
        raise HttpError(500, {"error": "Query failed", "details": str(exc)}) from exc
    customer = _to_row(row) if row is not None else None
    if customer is None:
        raise HttpError(
            404,
            {
                "error": "Customer not found",
                "message": "No customer found with the specified ID for this tenant",
            },
        )

    response: dict[str, Any] = {"tenant": tenant_id, "customer": customer.to_dict()}
    related = customer_related_data(conn, number, tenant_id)
    if related is not None:
        response["related"] = related
    return response


def _scalar(conn: sqlite3.Connection, sql: str, args: Sequence[Any]) -> Optional[int]:
    try:
        row = conn.execute(sql, tuple(args)).fetchone()
    except sqlite3.Error:
        return None
    return row[0] if row is not None else None


def customer_related_data(
    conn: sqlite3.Connection, customer_id: int, tenant_id: str
) -> Optional[dict[str, Any]]:
    """Gather inventory and work order counts and up to five recent work orders.

    Returns None when nothing could be gathered.
    """
    related: dict[str, Any] = {}
    args = (customer_id, tenant_id)
    base = "FROM inventory WHERE customer_id = ? AND tenant_id = ? AND NOT deleted"
    with_work_order = f"{base} AND work_order IS NOT NULL AND work_order != ''"

    inventory_count = _scalar(conn, f"SELECT COUNT(*) {base}", args)
    if inventory_count is not None:
        related["inventory_count"] = inventory_count

    work_order_count = _scalar(conn, f"SELECT COUNT(DISTINCT work_order) {with_work_order}", args)
    if work_order_count is not None:
        related["work_order_count"] = work_order_count

    try:
        rows = conn.execute(
            f"SELECT work_order, MAX(date_in) AS latest_date {with_work_order} "
            "GROUP BY work_order ORDER BY latest_date DESC LIMIT 5",
            args,
        ).fetchall()
    except sqlite3.Error:
        rows = []
    recent = [
        {"work_order": work_order, "latest_date": str(latest_date)}
        for work_order, latest_date in rows
        if latest_date is not None
    ]
    if recent:
        related["recent_work_orders"] = recent

    return related or None