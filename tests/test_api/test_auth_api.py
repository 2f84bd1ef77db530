from __future__ import annotations

import json

from fastapi.testclient import TestClient

from freight_core.db.session import get_db
from freight_core.main import create_app
from freight_core.security.config import PolicyConfig, PolicyConfigModel


def _auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_id}"}


def test_health_is_public(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_credentials(client, world):
    response = client.get("/loads")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing user id"}


def test_malformed_authorization_header(client, world):
    response = client.get("/loads", headers={"Authorization": "Token u-shipper-a"})

    assert response.status_code == 400


def test_unknown_and_suspended_users(client, world):
    assert client.get("/me", headers=_auth("u-nobody")).status_code == 401
    assert client.get("/me", headers=_auth("u-suspended")).status_code == 401


def test_pending_verification_user_is_limited_to_me(client, world):
    me = client.get("/me", headers=_auth("u-pending"))
    loads = client.get("/loads", headers=_auth("u-pending"))

    assert me.status_code == 200
    assert me.json()["status"] == "PENDING_VERIFICATION"
    assert loads.status_code == 403


def test_me(client, world):
    response = client.get("/me", headers=_auth("u-carrier-a"))

    assert response.json() == {
        "user_id": "u-carrier-a",
        "role": "CARRIER",
        "organization_id": world.carrier_a,
        "status": "ACTIVE",
    }


def test_admin_routes_need_admin_role(client, world):
    assert client.get("/admin/users", headers=_auth("u-shipper-a")).status_code == 403
    assert client.get("/admin/users", headers=_auth("u-dispatcher")).status_code == 403

    response = client.get("/admin/users", headers=_auth("u-super"))
    assert response.status_code == 200
    assert len(response.json()) == 10


def test_wallet_shows_only_own_accounts(client, world):
    shipper = client.get("/wallet", headers=_auth("u-shipper-a")).json()
    carrier = client.get("/wallet", headers=_auth("u-carrier-b")).json()

    assert [a["id"] for a in shipper] == ["wallet-shipper-a"]
    assert [a["id"] for a in carrier] == ["wallet-carrier-b"]
    assert client.get("/wallet", headers=_auth("u-dispatcher")).status_code == 403
    assert len(client.get("/wallet", headers=_auth("u-admin")).json()) == 5


def test_unknown_route_uses_error_body(client, world):
    response = client.get("/nowhere", headers=_auth("u-admin"))

    assert response.status_code == 404
    assert "error" in response.json()


def test_gateway_provider_reads_verified_claims(db_session, world):
    policy = PolicyConfig(PolicyConfigModel.model_validate({"auth": {"provider": "gateway"}}))
    application = create_app(policy=policy)
    application.dependency_overrides[get_db] = lambda: db_session
    gateway = TestClient(application)

    claims = {"userId": "svc-carrier", "role": "CARRIER", "organizationId": world.carrier_b}
    response = gateway.get("/trips", headers={"X-Verified-Session": json.dumps(claims)})

    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == ["trip-1"]
    assert gateway.get("/trips").status_code == 401
    assert gateway.get("/trips", headers={"X-Verified-Session": "not json"}).status_code == 400
    assert gateway.get("/trips", headers={"X-Verified-Session": json.dumps({"role": "CARRIER"})}).status_code == 401


def test_authenticated_caller_is_bound_to_the_handler_db_session(client, world, db_session):
    assert "session" not in db_session.info

    response = client.get("/trips", headers=_auth("u-admin"))

    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == ["trip-1"]
    assert db_session.info["session"].user_id == "u-admin"
    assert db_session.info["policy"] is client.app.state.policy
