# pipeyard

Record keeping for oilfield pipe yards: customers, tubular inventory
(joints, sizes, grades, connections, locations) and the work orders that
group them. Listings and lookups are scoped to one tenant at a time.

Everything works on a `sqlite3.Connection`; the package needs nothing
beyond the standard library.

## Install

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `pipeyard.models`: dataclasses `User`, `Tenant`, `UserTenant`, `Session`,
  `AccountUser` and `UserWithTenant`, and `CreateUserRequest.from_dict(data)`,
  which checks the fields of a request body and raises `ValueError` on
  missing or invalid ones.
- `pipeyard.domain`: dataclasses for customers, inventory items, received
  items, filters, work-order summaries and details, search results and
  connection statistics, most with a `to_dict()` giving a JSON-ready
  dictionary. `create_tenant_schema(conn)` creates the `customers` and
  `inventory` tables with a `tenant_id` column, as used by the tenant-scoped
  modules below.
- `pipeyard.customer_repository`: `CustomerRepository(conn)` with
  `get_all()`, `get_by_id(id)` (returns `None` when absent or deleted),
  `search(query)` over name, contact and e-mail, `create(customer)` (fills in
  `customer_id` and `created_at`), `update(customer)` and a soft
  `delete(id)`. `create_schema(conn)` creates its table. Failures and
  updates or deletes that touch no row raise `RepositoryError`.
- `pipeyard.inventory_repository`: `InventoryRepository(conn)` with
  `get_all(filters)` taking an `InventoryFilters` (exact customer, grade,
  size and location, date range, `available`, limit and offset; newest
  first), `get_by_id`, `get_by_work_order`, `get_available` (items with no
  date out), `search`, `create`, `update` and soft `delete`.
  `create_schema(conn)` creates its table.
- `pipeyard.auth_repository`: `AuthRepository(conn)` with
  `get_user_by_email`, `get_user_tenants` (active memberships of active
  tenants, by name) and `get_tenant_by_code`. Only active records are found;
  otherwise `NotFoundError` is raised. `create_auth_schema(conn)` creates
  the `users`, `tenants` and `user_tenants` tables.
- `pipeyard.middleware`: `cors_headers()`, `is_preflight(method)`,
  `format_access_log(...)`, `is_valid_tenant_id`, `tenant_database_name`
  and `resolve_tenant(headers, database_exists)`, which reads the
  `X-Tenant` header and returns a `TenantContext` or raises `HttpError`
  (400 when the header is missing or malformed, 404 when
  `database_exists` says the tenant's database is absent).
- `pipeyard.search`: `global_search(conn, tenant_id, params)` searches
  customers, inventory and work orders using the parameters `q`
  (at least two characters), `type` (`customers`, `inventory` or
  `work_orders`) and `limit` (default 50, at most 200; split three ways
  when no type is given), and ranks hits with
  `calculate_relevance_score`. Also `sanitize_search_term` and
  `validate_pagination` (limit 1 to 1000, default 50; offset at least 0).
- `pipeyard.customers`: `get_customers(conn, tenant_id, params)` (search,
  state, city, limit, offset), `get_customer(conn, tenant_id, id)` and
  `customer_related_data`.
- `pipeyard.inventory`: `get_inventory(conn, tenant_id, params)` (search,
  customer_id, work_order, size, grade, location, date_from, date_to,
  limit, offset) with paging and a `summary` from `inventory_summary`.
- `pipeyard.work_orders`: `get_inventory_item`, `get_work_orders` and
  `get_work_order`, the latter with the work order's items and up to ten
  other work orders of the same customer.

The listing and detail functions return plain dictionaries ready to
serialise as JSON and raise `HttpError`, carrying `status` and `body`, where
a request should be answered with an error.

## Example

```python
import sqlite3

from pipeyard.customer_repository import CustomerRepository, create_schema
from pipeyard.domain import Customer

conn = sqlite3.connect(":memory:")
create_schema(conn)

repo = CustomerRepository(conn)
customer = Customer(customer="Test Oil Company", email="billing@example.com")
repo.create(customer)

print(customer.customer_id)
print([c.customer for c in repo.search("oil")])
```

Tenant checks and tenant-scoped search:

```python
import sqlite3

from pipeyard.domain import create_tenant_schema
from pipeyard.middleware import HttpError, resolve_tenant
from pipeyard.search import global_search

conn = sqlite3.connect(":memory:")
create_tenant_schema(conn)

try:
    context = resolve_tenant({"X-Tenant": "longbeach"}, lambda name: True)
    response = global_search(conn, context.tenant_id, {"q": "oil"})
    print(response.to_dict())
except HttpError as exc:
    print(exc.status, exc.body)
```

Tenant IDs are 2 to 20 characters of lower-case letters, digits and
underscores; a tenant's database is named `oilgas_<tenant_id>`.

## What it does not do

- There is no web server, routing or command-line program: the functions
  above are meant to be called from whatever serves the API.
- There is no login, password check or session store; the authentication
  repository only looks up users and tenants.
- Opening and pooling a database per tenant is left to the caller, as is
  deciding whether a tenant's database exists (the `database_exists`
  callback of `resolve_tenant`).