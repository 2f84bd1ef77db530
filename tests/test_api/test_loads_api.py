from __future__ import annotations

from freight_core.models import Load


def _auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_id}"}


def _ids(response) -> set[str]:
    assert response.status_code == 200, response.json()
    return {item["id"] for item in response.json()}


def test_shipper_sees_all_own_loads_including_drafts(client, world):
    assert _ids(client.get("/loads", headers=_auth("u-shipper-a"))) == {"load-posted", "load-draft"}
    assert _ids(client.get("/loads", headers=_auth("u-shipper-b"))) == {"load-draft-b", "load-trip"}


def test_shipper_marketplace_view_still_only_shows_own_loads(client, world):
    assert _ids(client.get("/loads", params={"view": "marketplace"}, headers=_auth("u-shipper-b"))) == set()
    assert _ids(client.get("/loads", params={"view": "marketplace"}, headers=_auth("u-shipper-a"))) == {"load-posted"}


def test_carrier_marketplace_has_no_drafts(client, world):
    listed = _ids(client.get("/loads", headers=_auth("u-carrier-a")))

    assert listed == {"load-posted"}


def test_client_filters_cannot_widen_the_marketplace(client, world):
    response = client.get("/loads", params={"status": "DRAFT,ASSIGNED,POSTED"}, headers=_auth("u-carrier-a"))

    assert _ids(response) == {"load-posted"}


def test_carrier_mine_view_lists_assigned_loads(client, world):
    assert _ids(client.get("/loads", params={"view": "mine"}, headers=_auth("u-carrier-b"))) == {"load-trip"}
    assert _ids(client.get("/loads", params={"view": "mine"}, headers=_auth("u-carrier-a"))) == set()


def test_city_filters_narrow(client, world):
    response = client.get("/loads", params={"delivery_city": "Hawassa"}, headers=_auth("u-shipper-a"))

    assert _ids(response) == {"load-draft"}


def test_unscoped_roles_list_nothing(client, world):
    assert _ids(client.get("/loads", headers=_auth("u-agent"))) == set()


def test_draft_is_invisible_to_carriers(client, world):
    hidden = client.get("/loads/load-draft", headers=_auth("u-carrier-a"))
    missing = client.get("/loads/no-such-load", headers=_auth("u-carrier-a"))

    assert hidden.status_code == 404
    assert hidden.content == missing.content == b'{"error":"Load not found"}'


def test_posted_load_is_readable_but_not_writable_by_carrier(client, world):
    assert client.get("/loads/load-posted", headers=_auth("u-carrier-a")).status_code == 200

    response = client.patch("/loads/load-posted", json={"pickup_city": "Bahir Dar"}, headers=_auth("u-carrier-a"))

    assert response.status_code == 403
    assert response.json() == {"error": "You do not have permission to modify this load"}


def test_other_shipper_gets_not_found_on_write(client, world):
    response = client.patch("/loads/load-posted", json={"pickup_city": "Bahir Dar"}, headers=_auth("u-shipper-b"))

    assert response.status_code == 404


def test_owner_publishes_draft(client, world):
    response = client.patch("/loads/load-draft", json={"status": "POSTED"}, headers=_auth("u-shipper-a"))

    assert response.status_code == 200
    assert response.json()["status"] == "POSTED"
    assert response.json()["posted_at"] is not None
    assert "load-draft" in _ids(client.get("/loads", headers=_auth("u-carrier-a")))


def test_owner_cannot_jump_to_assigned(client, world):
    response = client.patch("/loads/load-draft", json={"status": "ASSIGNED"}, headers=_auth("u-shipper-a"))

    assert response.status_code == 400


def test_assigned_load_details_are_frozen(client, world):
    response = client.patch("/loads/load-trip", json={"cargo_description": "Steel"}, headers=_auth("u-shipper-b"))

    assert response.status_code == 400
    assert response.json() == {"error": "Load can no longer be edited in status ASSIGNED"}


def test_truck_postings(client, world):
    assert _ids(client.get("/truck-postings", headers=_auth("u-shipper-a"))) == {"posting-a"}
    assert _ids(client.get("/truck-postings", params={"view": "mine"}, headers=_auth("u-carrier-b"))) == {
        "posting-b-expired"
    }
    assert client.get("/truck-postings/posting-b-expired", headers=_auth("u-shipper-a")).status_code == 404
    assert client.get("/truck-postings/posting-a", headers=_auth("u-carrier-b")).status_code == 200


def test_trucks_are_private_to_their_carrier(client, world):
    assert _ids(client.get("/trucks", headers=_auth("u-carrier-a"))) == {"truck-a"}
    assert _ids(client.get("/trucks", headers=_auth("u-shipper-a"))) == set()
    assert client.get("/trucks/truck-a", headers=_auth("u-carrier-b")).status_code == 404


def test_null_for_required_city_is_rejected(client, world, db_session):
    for field in ("pickup_city", "delivery_city"):
        response = client.patch("/loads/load-draft", json={field: None}, headers=_auth("u-shipper-a"))

        assert response.status_code == 400, field
        assert "error" in response.json()

    db_session.expire_all()
    load = db_session.get(Load, "load-draft")
    assert load.pickup_city and load.delivery_city
