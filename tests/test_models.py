from datetime import datetime, timedelta

import pytest

from pipeyard.models import (
    AccountUser,
    CreateUserRequest,
    Session,
    Tenant,
    User,
    UserTenant,
    UserWithTenant,
)

CREATED = datetime(2024, 3, 1, 8, 30, 0)


def test_user_to_dict_keys_and_values():
    user = User(id=7, email="ann@example.com", username="ann", first_name="Ann",
                last_name="Lee", active=True, created_at=CREATED)
    data = user.to_dict()
    assert set(data) == {"id", "email", "username", "first_name", "last_name",
                         "active", "created_at"}
    assert data["id"] == 7
    assert data["email"] == "ann@example.com"
    assert datetime.fromisoformat(data["created_at"]) == CREATED


def test_user_without_timestamp_serialises_null():
    assert User(id=1, email="a@example.com", username="a").to_dict()["created_at"] is None


def test_tenant_to_dict():
    tenant = Tenant(id=2, code="longbeach", name="Long Beach Location",
                    database_name="oilgas_longbeach", created_at=CREATED)
    data = tenant.to_dict()
    assert data["code"] == "longbeach"
    assert data["database_name"] == "oilgas_longbeach"
    assert data["active"] is True
    assert datetime.fromisoformat(data["created_at"]) == CREATED


def test_user_tenant_and_session_hold_values():
    membership = UserTenant(user_id=3, tenant_id=4, role="operator")
    assert (membership.user_id, membership.tenant_id, membership.role) == (3, 4, "operator")
    assert membership.active is True
    expires = CREATED + timedelta(hours=1)
    session = Session(session_id="abc", user_id=3, tenant_id=4, expires_at=expires)
    assert session.expires_at - CREATED == timedelta(hours=1)


def test_account_user_defaults_to_nulls():
    data = AccountUser(user_id=5, username="bob", email="bob@example.com").to_dict()
    assert data["first_name"] is None
    assert data["tenant_id"] is None
    assert data["updated_at"] is None
    assert data["user_id"] == 5


def test_user_with_tenant_flattens_fields():
    user = UserWithTenant(user_id=9, username="cy", email="cy@example.com", tenant_id=2,
                          tenant_name="Houston", tenant_slug="houston", role="viewer",
                          updated_at=CREATED)
    data = user.to_dict()
    assert data["user_id"] == 9
    assert data["tenant_id"] == 2
    assert data["tenant_name"] == "Houston"
    assert data["tenant_slug"] == "houston"
    assert data["role"] == "viewer"
    assert datetime.fromisoformat(data["updated_at"]) == CREATED
    assert isinstance(user, AccountUser)


def test_create_user_request_from_dict():
    request = CreateUserRequest.from_dict({
        "username": "dee",
        "email": "dee@example.com",
        "tenant_id": 3,
        "role": "admin",
        "first_name": "Dee",
    })
    assert request.username == "dee"
    assert request.email == "dee@example.com"
    assert request.tenant_id == 3
    assert request.role == "admin"
    assert request.first_name == "Dee"
    assert request.last_name is None


@pytest.mark.parametrize("missing", ["username", "email", "tenant_id", "role"])
def test_create_user_request_requires_fields(missing):
    data = {"username": "dee", "email": "dee@example.com", "tenant_id": 3, "role": "admin"}
    del data[missing]
    with pytest.raises(ValueError, match=missing):
        CreateUserRequest.from_dict(data)


def test_create_user_request_rejects_bad_email():
    with pytest.raises(ValueError, match="email"):
        CreateUserRequest.from_dict(
            {"username": "dee", "email": "not-an-address", "tenant_id": 3, "role": "admin"}
        )


def test_create_user_request_rejects_zero_tenant():
    with pytest.raises(ValueError, match="tenant_id"):
        CreateUserRequest.from_dict(
            {"username": "dee", "email": "dee@example.com", "tenant_id": 0, "role": "admin"}
        )