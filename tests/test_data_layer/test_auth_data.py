"""
Tests for user loading (ORM).

Uses the db_session fixture: in-memory SQLite, rolled back after each test.
"""
from __future__ import annotations

import pytest
from fastapi import HTTPException

from freight_core.models import Organization, User
from freight_core.security.auth import load_user
from freight_core.security.context import RequestSession, Role, UserStatus


def test_load_user_returns_user_with_organization(db_session):
    org = Organization(id="org-1", name="Selam Transport", org_type="CARRIER_COMPANY")
    db_session.add(org)
    db_session.flush()

    user = User(id="u-1", email="fleet@example.com", role=Role.CARRIER.value, organization_id=org.id)
    db_session.add(user)
    db_session.commit()

    loaded = load_user(db_session, "u-1")

    assert loaded.id == "u-1"
    assert loaded.organization is not None
    assert loaded.organization.name == "Selam Transport"
    assert loaded.to_session() == RequestSession(
        user_id="u-1", role=Role.CARRIER, organization_id="org-1", status=UserStatus.ACTIVE
    )


def test_load_user_raises_when_not_found(db_session):
    with pytest.raises(HTTPException) as exc_info:
        load_user(db_session, "missing")
    assert exc_info.value.status_code == 401


@pytest.mark.parametrize("status", [UserStatus.SUSPENDED, UserStatus.REJECTED])
def test_load_user_raises_when_locked(db_session, status):
    db_session.add(User(id="u-2", email="locked@example.com", role=Role.SHIPPER.value, status=status.value))
    db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        load_user(db_session, "u-2")
    assert exc_info.value.status_code == 401


def test_unverified_user_can_still_authenticate(db_session):
    db_session.add(
        User(id="u-3", email="new@example.com", role=Role.SHIPPER.value, status=UserStatus.REGISTERED.value)
    )
    db_session.commit()

    assert load_user(db_session, "u-3").to_session().status is UserStatus.REGISTERED
