from datetime import datetime, timedelta, timezone

import pytest

from pipeyard.middleware import (
    HttpError,
    TenantContext,
    cors_headers,
    format_access_log,
    is_preflight,
    is_valid_tenant_id,
    resolve_tenant,
    tenant_database_name,
)


def test_cors_headers_allow_tenant_and_session_headers():
    headers = cors_headers()
    assert headers["Access-Control-Allow-Origin"] == "*"
    assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert "X-Tenant" in headers["Access-Control-Allow-Headers"]
    assert "X-Session-ID" in headers["Access-Control-Allow-Headers"]


def test_preflight_only_for_options():
    assert is_preflight("OPTIONS") is True
    assert is_preflight("GET") is False
    assert is_preflight("options") is False


def test_access_log_line():
    line = format_access_log(
        "10.0.0.1",
        datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "GET",
        "/api/v1/customers",
        "HTTP/1.1",
        200,
        timedelta(microseconds=1500),
        "curl/8.0",
        "",
    )
    assert line == (
        '10.0.0.1 - [02/Jan/2024:03:04:05 +0000] '
        '"GET /api/v1/customers HTTP/1.1 200 1.5ms "curl/8.0" "\n'
    )


def test_access_log_whole_seconds_and_string_latency():
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    line = format_access_log("h", stamp, "POST", "/x", "HTTP/2", 500, timedelta(seconds=2), "ua", "boom")
    assert " 500 2s " in line
    assert line.endswith('"ua" boom"\n')
    passthrough = format_access_log("h", stamp, "GET", "/", "HTTP/1.1", 204, "42ms", "ua", "")
    assert " 204 42ms " in passthrough


@pytest.mark.parametrize("tenant_id", ["longbeach", "ab", "a" * 20, "yard_2"])
def test_valid_tenant_ids(tenant_id):
    assert is_valid_tenant_id(tenant_id) is True


@pytest.mark.parametrize("tenant_id", ["", "a", "a" * 21, "LongBeach", "long-beach", "yard 2"])
def test_invalid_tenant_ids(tenant_id):
    assert is_valid_tenant_id(tenant_id) is False


def test_tenant_database_name():
    assert tenant_database_name("longbeach") == "oilgas_longbeach"


def test_missing_header_is_rejected():
    with pytest.raises(HttpError) as info:
        resolve_tenant({}, lambda name: True)
    assert info.value.status == 400
    assert info.value.body["error"] == "X-Tenant header required"


def test_malformed_tenant_is_rejected():
    with pytest.raises(HttpError) as info:
        resolve_tenant({"X-Tenant": "Long-Beach"}, lambda name: True)
    assert info.value.status == 400
    assert info.value.body["error"] == "Invalid tenant ID format"


def test_unknown_tenant_is_not_found():
    with pytest.raises(HttpError) as info:
        resolve_tenant({"X-Tenant": "nowhere"}, lambda name: False)
    assert info.value.status == 404
    assert info.value.body["error"] == "Tenant not found"
    assert "oilgas_nowhere" in info.value.body["message"]


def test_known_tenant_resolves_case_insensitively():
    asked = []

    def exists(name):
        asked.append(name)
        return True

    context = resolve_tenant({"x-tenant": "longbeach"}, exists)
    assert context == TenantContext(tenant_id="longbeach", tenant_db="oilgas_longbeach")
    assert asked == ["oilgas_longbeach"]