from __future__ import annotations

import pytest

from freight_core.security.context import InvalidSessionClaims, RequestSession, Role, UserStatus, session_from_claims


def test_camel_case_claims():
    session = session_from_claims({"userId": "u-1", "role": "carrier", "organizationId": "org-1"})

    assert session == RequestSession(user_id="u-1", role=Role.CARRIER, organization_id="org-1", status=UserStatus.ACTIVE)


def test_snake_case_claims_and_missing_org():
    session = session_from_claims({"user_id": 7, "role": "DISPATCHER", "status": "PENDING_VERIFICATION"})

    assert session.user_id == "7"
    assert session.organization_id is None
    assert session.status is UserStatus.PENDING_VERIFICATION


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "SHIPPER"},
        {"userId": "u-1", "role": "OWNER"},
        {"userId": "u-1", "role": "SHIPPER", "status": "GONE"},
    ],
)
def test_invalid_claims(claims):
    with pytest.raises(InvalidSessionClaims):
        session_from_claims(claims)
