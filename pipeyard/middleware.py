"""Request helpers: CORS headers, access log lines and tenant resolution."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Union

_TENANT_HEADER = "x-tenant"
_TENANT_ALPHABET = frozenset("abcdefghijklmnopqrstuvwxyz0123456789_")
_TIMESTAMP_FORMAT = "%d/%b/%Y:%H:%M:%S %z"


class HttpError(Exception):
    """A request that must be answered with an error status and JSON body."""

    def __init__(self, status: int, body: Mapping[str, Any]) -> None:
        self.status = status
        self.body = dict(body)
        super().__init__(f"{status}: {self.body.get('error', '')}")


@dataclass(frozen=True)
class TenantContext:
    """The tenant a request is routed to and the database holding its data."""

    tenant_id: str
    tenant_db: str


def cors_headers() -> dict[str, str]:
    """Return the headers that allow cross-origin use of the API."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": (
            "Origin, Content-Type, Accept, Authorization, X-Tenant, X-Session-ID"
        ),
    }


def is_preflight(method: str) -> bool:
    """Tell whether a request is a CORS preflight, answered with 204 and no body."""
    return method == "OPTIONS"


def _decimal(value: int, unit: int) -> str:
    whole, fraction = divmod(value, unit)
    digits = len(str(unit)) - 1
    fraction_text = str(fraction).zfill(digits).rstrip("0")
    return f"{whole}.{fraction_text}" if fraction_text else str(whole)


def _format_duration(latency: Union[timedelta, str]) -> str:
    if isinstance(latency, str):
        return latency
    nanos = (latency.days * 86_400 + latency.seconds) * 10**9 + latency.microseconds * 1_000
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos == 0:
        return "0s"
    if nanos < 10**3:
        return f"{sign}{nanos}ns"
    if nanos < 10**6:
        return f"{sign}{_decimal(nanos, 10**3)}µs"
    if nanos < 10**9:
        return f"{sign}{_decimal(nanos, 10**6)}ms"
    hours, rest = divmod(nanos, 3_600 * 10**9)
    minutes, rest = divmod(rest, 60 * 10**9)
    seconds = f"{_decimal(rest, 10**9)}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{seconds}"


def format_access_log(
    client_ip: str,
    timestamp: datetime,
    method: str,
    path: str,
    proto: str,
    status: int,
    latency: Union[timedelta, str],
    user_agent: str,
    error_message: str,
) -> str:
    """Render one access log line in a combined-log-like layout."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.astimezone()
    return (
        f'{client_ip} - [{timestamp.strftime(_TIMESTAMP_FORMAT)}] '
        f'"{method} {path} {proto} {status} {_format_duration(latency)} '
        f'"{user_agent}" {error_message}"\n'
    )


def is_valid_tenant_id(tenant_id: str) -> bool:
    """Tenant ids are 2 to 20 lowercase letters, digits or underscores."""
    if not 2 <= len(tenant_id.encode("utf-8")) <= 20:
        return False
    return all(char in _TENANT_ALPHABET for char in tenant_id)


def tenant_database_name(tenant_id: str) -> str:
    """Return the name of the database that holds a tenant's data."""
    return f"oilgas_{tenant_id}"


def resolve_tenant(
    headers: Mapping[str, str], database_exists: Callable[[str], bool]
) -> TenantContext:
    """Work out the tenant of a request from its X-Tenant header.

    ``database_exists`` is asked whether the tenant's database is present.
    Raises HttpError when the header is missing, malformed or names no tenant.
    """
    tenant_id = next(
        (value for name, value in headers.items() if name.lower() == _TENANT_HEADER), ""
    )
    if not tenant_id:
        raise HttpError(
            400,
            {
                "error": "X-Tenant header required",
                "message": "Please provide tenant ID in X-Tenant header",
            },
        )
    if not is_valid_tenant_id(tenant_id):
        raise HttpError(
            400,
            {
                "error": "Invalid tenant ID format",
                "message": "Tenant ID must contain only lowercase letters, numbers, and underscores",
            },
        )
    database = tenant_database_name(tenant_id)
    if not database_exists(database):
        raise HttpError(
            404,
            {
                "error": "Tenant not found",
                "message": f"Tenant database '{database}' does not exist",
            },
        )
    return TenantContext(tenant_id=tenant_id, tenant_db=database)