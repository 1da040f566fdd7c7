"""Tenant-aware customer, inventory and work-order records for pipe yards, stored with sqlite3."""

__version__ = "0.1.0"

__all__ = [
    "auth_repository",
    "customer_repository",
    "customers",
    "domain",
    "inventory",
    "inventory_repository",
    "middleware",
    "models",
    "search",
    "work_orders",
]