import sqlite3

import pytest

from pipeyard.customers import (
    CustomerRow,
    customer_related_data,
    get_customer,
    get_customers,
)
from pipeyard.domain import create_tenant_schema
from pipeyard.middleware import HttpError

TENANT = "longbeach"


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    create_tenant_schema(connection)
    yield connection
    connection.close()


def add_customer(conn, name, tenant=TENANT, deleted=0, **fields):
    columns = ["customer", "tenant_id", "deleted", *fields]
    values = [name, tenant, deleted, *fields.values()]
    cursor = conn.execute(
        f"INSERT INTO customers ({', '.join(columns)}) VALUES ({', '.join('?' for _ in values)})",
        values,
    )
    conn.commit()
    return cursor.lastrowid


def add_inventory(conn, customer_id, work_order, date_in, tenant=TENANT, deleted=0):
    conn.execute(
        "INSERT INTO inventory (customer_id, customer, work_order, date_in, tenant_id, deleted) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (customer_id, "Owner", work_order, date_in, tenant, deleted),
    )
    conn.commit()


def test_lists_tenant_customers_sorted_with_defaults(conn):
    add_customer(conn, "Shell Oil Company")
    add_customer(conn, "Chevron Corporation")
    add_customer(conn, "ExxonMobil Corp")
    add_customer(conn, "Elsewhere Inc", tenant="houston")

    response = get_customers(conn, TENANT, {})
    names = [c["customer"] for c in response["customers"]]
    assert names == ["Chevron Corporation", "ExxonMobil Corp", "Shell Oil Company"]
    assert response["count"] == len(names)
    assert response["total"] == len(names)
    assert response["limit"] == 50
    assert response["offset"] == 0
    assert response["page"] == 1
    assert response["has_more"] is False
    assert response["tenant"] == TENANT


def test_deleted_customers_are_hidden(conn):
    add_customer(conn, "Active Co")
    add_customer(conn, "Gone Co", deleted=1)
    response = get_customers(conn, TENANT, {})
    assert [c["customer"] for c in response["customers"]] == ["Active Co"]
    assert response["total"] == 1


def test_search_matches_contact_ignoring_case(conn):
    add_customer(conn, "Chevron Corporation", contact="Dana Smith")
    add_customer(conn, "Shell Oil Company", contact="Lee Brown")
    response = get_customers(conn, TENANT, {"search": "  dana  "})
    assert [c["customer"] for c in response["customers"]] == ["Chevron Corporation"]
    assert response["search"] == "dana"
    assert response["total"] == 1


def test_state_and_city_filters(conn):
    add_customer(conn, "Alpha", billing_state="TX", billing_city="Houston")
    add_customer(conn, "Beta", billing_state="TX", billing_city="Midland")
    add_customer(conn, "Gamma", billing_state="CA", billing_city="Long Beach")
    response = get_customers(conn, TENANT, {"state": "tx", "city": "mid"})
    assert [c["customer"] for c in response["customers"]] == ["Beta"]
    assert response["filters"] == {"state": "tx", "city": "mid"}


def test_paging_reports_page_and_more(conn):
    for name in ("A", "B", "C", "D", "E"):
        add_customer(conn, name)
    first = get_customers(conn, TENANT, {"limit": "2", "offset": "0"})
    second = get_customers(conn, TENANT, {"limit": "2", "offset": "2"})
    last = get_customers(conn, TENANT, {"limit": "2", "offset": "4"})
    assert [c["customer"] for c in first["customers"]] == ["A", "B"]
    assert [c["customer"] for c in second["customers"]] == ["C", "D"]
    assert [c["customer"] for c in last["customers"]] == ["E"]
    assert (first["page"], second["page"], last["page"]) == (1, 2, 3)
    assert first["has_more"] and second["has_more"]
    assert last["has_more"] is False


def test_bad_paging_values_fall_back(conn):
    add_customer(conn, "Alpha")
    bad = get_customers(conn, TENANT, {"limit": "abc", "offset": "-3"})
    assert (bad["limit"], bad["offset"]) == (50, 0)
    capped = get_customers(conn, TENANT, {"limit": "5000"})
    assert capped["limit"] == 1000


def test_empty_optional_fields_come_back_empty(conn):
    add_customer(conn, "Alpha")
    customer = get_customers(conn, TENANT, {})["customers"][0]
    assert customer["phone"] == ""
    assert customer["tenant_id"] == TENANT
    assert "imported_at" not in customer
    assert customer["created_at"]


def test_list_query_failure_is_500(conn):
    conn.execute("DROP TABLE customers")
    with pytest.raises(HttpError) as info:
        get_customers(conn, TENANT, {})
    assert info.value.status == 500
    assert info.value.body["error"] == "Query failed"


def test_get_customer_with_related_data(conn):
    customer_id = add_customer(conn, "Chevron Corporation", phone="555-0123")
    add_inventory(conn, customer_id, "LB-001000", "2024-01-05")
    add_inventory(conn, customer_id, "LB-001000", "2024-01-07")
    add_inventory(conn, customer_id, "LB-001001", "2024-02-01")
    add_inventory(conn, customer_id, "LB-001002", "2024-03-01", deleted=1)

    response = get_customer(conn, TENANT, str(customer_id))
    assert response["customer"]["customer"] == "Chevron Corporation"
    assert response["customer"]["phone"] == "555-0123"
    related = response["related"]
    assert related["inventory_count"] == 3
    assert related["work_order_count"] == 2
    assert related["recent_work_orders"] == [
        {"work_order": "LB-001001", "latest_date": "2024-02-01"},
        {"work_order": "LB-001000", "latest_date": "2024-01-07"},
    ]


def test_recent_work_orders_limited_to_five(conn):
    customer_id = add_customer(conn, "Alpha")
    for day in range(1, 8):
        add_inventory(conn, customer_id, f"WO-{day}", f"2024-01-0{day}")
    related = customer_related_data(conn, customer_id, TENANT)
    assert len(related["recent_work_orders"]) == 5
    assert related["recent_work_orders"][0]["work_order"] == "WO-7"


def test_related_data_without_inventory_has_zero_counts(conn):
    customer_id = add_customer(conn, "Alpha")
    related = customer_related_data(conn, customer_id, TENANT)
    assert related == {"inventory_count": 0, "work_order_count": 0}


def test_related_data_is_none_when_inventory_unavailable(conn):
    customer_id = add_customer(conn, "Alpha")
    conn.execute("DROP TABLE inventory")
    assert customer_related_data(conn, customer_id, TENANT) is None
    response = get_customer(conn, TENANT, customer_id)
    assert "related" not in response
    assert response["customer"]["customer_id"] == customer_id


def test_get_customer_rejects_non_numeric_id(conn):
    with pytest.raises(HttpError) as info:
        get_customer(conn, TENANT, "abc")
    assert info.value.status == 400
    assert info.value.body["message"] == "Customer ID must be a number"


def test_get_customer_of_other_tenant_is_not_found(conn):
    customer_id = add_customer(conn, "Elsewhere Inc", tenant="houston")
    with pytest.raises(HttpError) as info:
        get_customer(conn, TENANT, customer_id)
    assert info.value.status == 404
    assert info.value.body["error"] == "Customer not found"


def test_get_deleted_customer_is_not_found(conn):
    customer_id = add_customer(conn, "Gone Co", deleted=1)
    with pytest.raises(HttpError) as info:
        get_customer(conn, TENANT, customer_id)
    assert info.value.status == 404


def test_customer_row_keeps_imported_at_when_set():
    row = CustomerRow(customer_id=7, customer="Alpha", imported_at="2024-01-01 00:00:00")
    assert row.to_dict()["imported_at"] == "2024-01-01 00:00:00"
    assert "imported_at" not in CustomerRow(customer_id=7, customer="Alpha").to_dict()