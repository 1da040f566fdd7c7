"""Account, tenant, membership and session records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class User:
    """A login account as stored in the authentication database."""

    id: int
    email: str
    username: str
    first_name: str = ""
    last_name: str = ""
    active: bool = True
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "active": self.active,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Tenant:
    """A yard location with its own database, e.g. code "longbeach"."""

    id: int
    code: str
    name: str
    database_name: str
    active: bool = True
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "database_name": self.database_name,
            "active": self.active,
            "created_at": _iso(self.created_at),
        }


@dataclass
class UserTenant:
    """Membership of a user in a tenant with a role such as "admin", "operator" or "viewer"."""

    user_id: int
    tenant_id: int
    role: str
    active: bool = True


@dataclass
class Session:
    """A login session bound to one user and tenant."""

    session_id: str
    user_id: int
    tenant_id: int
    expires_at: datetime


@dataclass(kw_only=True)
class AccountUser:
    """A user record of the account service, optionally attached to a tenant."""

    user_id: int = 0
    username: str = ""
    email: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tenant_id: Optional[int] = None
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "tenant_id": self.tenant_id,
            "active": self.active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} is required")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


@dataclass
class CreateUserRequest:
    """The body of a request to create a user."""

    username: str
    email: str
    tenant_id: int
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CreateUserRequest":
        """Build a request from decoded JSON, raising ValueError on invalid input."""
        username = _required_str(data, "username")
        email = _required_str(data, "email")
        if not _EMAIL_PATTERN.match(email):
            raise ValueError("email must be a valid e-mail address")
        tenant_id = data.get("tenant_id")
        if isinstance(tenant_id, bool) or not isinstance(tenant_id, int) or tenant_id == 0:
            raise ValueError("tenant_id is required")
        role = _required_str(data, "role")
        return cls(
            username=username,
            email=email,
            tenant_id=tenant_id,
            role=role,
            first_name=_optional_str(data, "first_name"),
            last_name=_optional_str(data, "last_name"),
        )


@dataclass(kw_only=True)
class UserWithTenant(AccountUser):
    """An account user joined with the tenant it belongs to and its role there."""

    tenant_name: str = ""
    tenant_slug: str = ""
    role: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "tenant_name": self.tenant_name,
            "tenant_slug": self.tenant_slug,
            "role": self.role,
        }