"""Domain records for customers, inventory, work orders and search."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional


def _to_json(value: Any) -> Any:
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return (value.days * 86_400 + value.seconds) * 1_000_000_000 + value.microseconds * 1_000
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_json(item) for key, item in value.items()}
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_json(getattr(value, f.name)) for f in fields(value)}
    return value


class _Record:
    """Mixin giving dataclasses a JSON-ready dictionary form."""

    _renames: dict = {}
    _omit_empty: frozenset = frozenset()

    def _record_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.name in self._omit_empty and not value:
                continue
            result[self._renames.get(f.name, f.name)] = _to_json(value)
        return result

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a JSON-ready dictionary."""
        return self._record_dict()


@dataclass
class Customer(_Record):
    """A customer of the yard."""

    customer_id: int = 0
    customer: str = ""
    billing_address: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_zipcode: Optional[str] = None
    contact: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    email: Optional[str] = None
    deleted: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the customer as a JSON-ready dictionary."""
        return self._record_dict()


@dataclass
class InventoryItem(_Record):
    """A batch of pipe held in the yard."""

    id: int = 0
    work_order: Optional[str] = None
    customer_id: Optional[int] = None
    customer: Optional[str] = None
    joints: Optional[int] = None
    size: Optional[str] = None
    weight: Optional[float] = None
    grade: Optional[str] = None
    connection: Optional[str] = None
    date_in: Optional[date] = None
    date_out: Optional[date] = None
    well_in: Optional[str] = None
    lease_in: Optional[str] = None
    well_out: Optional[str] = None
    lease_out: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    deleted: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the item as a JSON-ready dictionary."""
        return self._record_dict()


@dataclass
class InventoryFilters:
    """Exact-match filters for listing inventory; zero limit or offset means none."""

    customer_id: Optional[int] = None
    grade: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    available: Optional[bool] = None
    limit: int = 0
    offset: int = 0


@dataclass
class ReceivedItem(_Record):
    """Pipe received from a customer and awaiting or in production."""

    id: int = 0
    work_order: Optional[str] = None
    customer_id: Optional[int] = None
    customer: Optional[str] = None
    joints: Optional[int] = None
    size: Optional[str] = None
    weight: Optional[float] = None
    grade: Optional[str] = None
    connection: Optional[str] = None
    well: Optional[str] = None
    lease: Optional[str] = None
    ordered_by: Optional[str] = None
    notes: Optional[str] = None
    date_received: Optional[date] = None
    in_production: bool = False
    complete: bool = False
    deleted: bool = False
    created_at: Optional[datetime] = None


@dataclass
class ReceivedFilters:
    """Filters for listing received items."""

    customer_id: Optional[int] = None
    in_production: Optional[bool] = None
    complete: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    limit: int = 0
    offset: int = 0


@dataclass
class TenantCustomer(_Record):
    """A customer row that belongs to one tenant."""

    _omit_empty = frozenset({"imported_at"})

    customer_id: int = 0
    customer: str = ""
    billing_address: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_zipcode: Optional[str] = None
    contact: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    email: Optional[str] = None
    tenant_id: str = ""
    imported_at: Optional[datetime] = None
    deleted: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the customer as a JSON-ready dictionary, leaving out an empty import time."""
        return self._record_dict()


@dataclass
class TenantInventoryItem(_Record):
    """An inventory row that belongs to one tenant."""

    _omit_empty = frozenset({"imported_at"})

    id: int = 0
    work_order: Optional[str] = None
    r_number: Optional[str] = None
    customer_id: Optional[int] = None
    customer: Optional[str] = None
    joints: Optional[int] = None
    rack: Optional[str] = None
    size: Optional[str] = None
    weight: Optional[float] = None
    grade: Optional[str] = None
    connection: Optional[str] = None
    ctd: Optional[str] = None
    w_string: Optional[str] = None
    color: Optional[str] = None
    date_in: Optional[date] = None
    date_out: Optional[date] = None
    well_in: Optional[str] = None
    lease_in: Optional[str] = None
    well_out: Optional[str] = None
    lease_out: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    tenant_id: str = ""
    imported_at: Optional[datetime] = None
    deleted: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the item as a JSON-ready dictionary, leaving out an empty import time."""
        return self._record_dict()


@dataclass
class RecentWorkOrder(_Record):
    """A work order with the date of its latest inventory."""

    work_order: str = ""
    latest_date: str = ""


@dataclass
class CustomerRelatedData(_Record):
    """Counts and recent work orders attached to a customer."""

    _omit_empty = frozenset({"recent_work_orders"})

    inventory_count: int = 0
    work_order_count: int = 0
    recent_work_orders: list[RecentWorkOrder] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the data as a JSON-ready dictionary, leaving out empty recent work orders."""
        return self._record_dict()


@dataclass
class InventorySummary(_Record):
    """Totals over a tenant's inventory."""

    total_joints: int = 0
    total_weight: float = 0.0
    unique_customers: int = 0
    unique_work_orders: int = 0
    unique_sizes: int = 0
    unique_grades: int = 0


@dataclass
class WorkOrder(_Record):
    """A work order aggregated from its inventory rows."""

    work_order: Optional[str] = None
    customer: Optional[str] = None
    customer_id: Optional[int] = None
    item_count: int = 0
    total_joints: int = 0
    start_date: Optional[str] = None
    latest_date: Optional[str] = None
    locations: Optional[str] = None
    sizes: Optional[str] = None
    grades: Optional[str] = None


@dataclass
class WorkOrderDetails(_Record):
    """A work order with its items and the customer's other work orders."""

    _renames = {"related": "related_work_orders"}
    _omit_empty = frozenset({"related"})

    summary: WorkOrder = field(default_factory=WorkOrder)
    items: list[TenantInventoryItem] = field(default_factory=list)
    related: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the details as a JSON-ready dictionary, related work orders only when present."""
        return self._record_dict()


@dataclass
class CustomerFilters:
    """Substring filters and paging for customer listings."""

    search: str = ""
    state: str = ""
    city: str = ""
    limit: int = 0
    offset: int = 0


@dataclass
class TenantInventoryFilters:
    """Substring filters, date range and paging for tenant inventory listings."""

    customer_id: Optional[int] = None
    work_order: str = ""
    size: str = ""
    grade: str = ""
    location: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    available: Optional[bool] = None
    search: str = ""
    limit: int = 0
    offset: int = 0


@dataclass
class WorkOrderFilters:
    """Filters and paging for work order listings."""

    customer_id: Optional[int] = None
    search: str = ""
    limit: int = 0
    offset: int = 0


@dataclass
class SearchResult(_Record):
    """One hit of a cross-table search."""

    type: str = ""
    id: Any = None
    title: str = ""
    detail: str = ""
    data: Any = None


@dataclass
class SearchSummary(_Record):
    """Hit counts per kind of record."""

    customers: int = 0
    inventory: int = 0
    work_orders: int = 0
    total: int = 0


@dataclass
class SearchResults(_Record):
    """The answer to a cross-table search within one tenant."""

    _renames = {"tenant_id": "tenant"}

    tenant_id: str = ""
    query: str = ""
    results: list[SearchResult] = field(default_factory=list)
    summary: SearchSummary = field(default_factory=SearchSummary)

    def to_dict(self) -> dict[str, Any]:
        """Return the results as a JSON-ready dictionary keyed by tenant."""
        return self._record_dict()


@dataclass
class TenantConnectionStats(_Record):
    """Connection pool statistics of one tenant database."""

    tenant_id: str = ""
    max_open_conns: int = 0
    max_idle_conns: int = 0
    open_connections: int = 0
    idle_connections: int = 0
    in_use_connections: int = 0
    conn_max_lifetime: timedelta = timedelta(0)
    last_activity: Optional[datetime] = None


_TENANT_SCHEMA = """
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
    tenant_id TEXT NOT NULL DEFAULT '',
    imported_at TEXT,
    deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS inventory (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    work_order TEXT,
    r_number TEXT,
    customer_id INTEGER,
    customer TEXT,
    joints INTEGER,
    rack TEXT,
    size TEXT,
    weight REAL,
    grade TEXT,
    connection TEXT,
    ctd TEXT,
    w_string TEXT,
    color TEXT,
    date_in TEXT,
    date_out TEXT,
    well_in TEXT,
    lease_in TEXT,
    well_out TEXT,
    lease_out TEXT,
    location TEXT,
    notes TEXT,
    tenant_id TEXT NOT NULL DEFAULT '',
    imported_at TEXT,
    deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


def create_tenant_schema(conn: sqlite3.Connection) -> None:
    """Create the tenant-aware customers and inventory tables if they are missing."""
    conn.executescript(_TENANT_SCHEMA)
    conn.commit()