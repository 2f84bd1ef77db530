from __future__ import annotations

from sqlalchemy import select

from freight_core.models import BookingRequest, Load, Trip


def _auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_id}"}


def _status(db_session, request_id: str) -> str:
    db_session.expire_all()
    return db_session.get(BookingRequest, request_id).status


def test_shipper_approval_books_the_load(client, world, db_session):
    response = client.post(
        "/load-requests/req-load/respond",
        json={"action": "APPROVE", "response_notes": "See you Monday"},
        headers=_auth("u-shipper-a"),
    )

    assert response.status_code == 200, response.json()
    assert response.json()["status"] == "APPROVED"

    db_session.expire_all()
    load = db_session.get(Load, "load-posted")
    assert load.status == "ASSIGNED"
    assert load.carrier_org_id == world.carrier_a
    assert load.assigned_truck_id == "truck-a"

    trip = db_session.scalars(select(Trip).where(Trip.load_id == "load-posted")).one()
    assert trip.status == "ASSIGNED"
    assert trip.carrier_org_id == world.carrier_a
    assert trip.shipper_org_id == world.shipper_a

    # Competing requests for the same load are withdrawn.
    assert _status(db_session, "req-load-b") == "CANCELLED"
    assert _status(db_session, "req-truck") == "CANCELLED"

    # The new trip is immediately visible to the carrier.
    assert [t["id"] for t in client.get("/trips", headers=_auth("u-carrier-a")).json()] == [trip.id]


def test_proposer_cannot_answer_own_request(client, world):
    response = client.post("/load-requests/req-load/respond", json={"action": "APPROVE"}, headers=_auth("u-carrier-a"))

    assert response.status_code == 403


def test_unrelated_parties_get_not_found(client, world):
    for user in ("u-shipper-b", "u-agent"):
        hidden = client.post("/load-requests/req-load/respond", json={"action": "APPROVE"}, headers=_auth(user))
        missing = client.post("/load-requests/nope/respond", json={"action": "APPROVE"}, headers=_auth(user))
        assert hidden.status_code == missing.status_code == 404
        assert hidden.json() == {"error": "Load request not found"}


def test_request_of_another_kind_is_not_found(client, world):
    response = client.get("/truck-requests/req-load", headers=_auth("u-shipper-a"))

    assert response.status_code == 404
    assert response.json() == {"error": "Truck request not found"}


def test_expired_request_is_stamped_and_rejected(client, world, db_session):
    response = client.post("/load-requests/req-expired/respond", json={"action": "APPROVE"}, headers=_auth("u-shipper-a"))

    assert response.status_code == 400
    assert response.json() == {"error": "Load request has expired"}
    assert _status(db_session, "req-expired") == "EXPIRED"
    db_session.expire_all()
    assert db_session.get(Load, "load-posted").status == "POSTED"


def test_second_response_is_rejected(client, world):
    first = client.post("/load-requests/req-load/respond", json={"action": "REJECT"}, headers=_auth("u-shipper-a"))
    second = client.post("/load-requests/req-load/respond", json={"action": "APPROVE"}, headers=_auth("u-shipper-a"))

    assert first.status_code == 200
    assert first.json()["status"] == "REJECTED"
    assert second.status_code == 400
    assert second.json() == {"error": "Load request has already been rejected"}


def test_second_approval_for_the_same_load_conflicts(client, world, db_session):
    assert client.post("/load-requests/req-load/respond", json={"action": "APPROVE"}, headers=_auth("u-shipper-a")).status_code == 200

    # Re-open the competing request behind the service's back.
    db_session.get(BookingRequest, "req-load-b").status = "PENDING"
    db_session.commit()

    response = client.post("/load-requests/req-load-b/respond", json={"action": "APPROVE"}, headers=_auth("u-shipper-a"))

    assert response.status_code == 409
    assert _status(db_session, "req-load-b") == "PENDING"


def test_truck_request_is_answered_by_the_carrier(client, world):
    wrong = client.post("/truck-requests/req-truck/respond", json={"action": "APPROVE"}, headers=_auth("u-shipper-a"))
    right = client.post("/truck-requests/req-truck/respond", json={"action": "APPROVE"}, headers=_auth("u-carrier-a"))

    assert wrong.status_code == 403
    assert right.status_code == 200
    assert right.json()["status"] == "APPROVED"


def test_match_proposal_is_accepted_by_the_carrier(client, world):
    dispatcher = client.post("/match-proposals/req-match/respond", json={"action": "APPROVE"}, headers=_auth("u-dispatcher"))
    carrier = client.post("/match-proposals/req-match/respond", json={"action": "APPROVE"}, headers=_auth("u-carrier-a"))

    assert dispatcher.status_code == 403
    assert carrier.status_code == 200
    assert carrier.json()["status"] == "ACCEPTED"


def test_invalid_action_is_a_bad_request(client, world):
    response = client.post("/load-requests/req-load/respond", json={"action": "MAYBE"}, headers=_auth("u-shipper-a"))

    assert response.status_code == 400


def test_proposer_cancels(client, world):
    wrong = client.post("/load-requests/req-load/cancel", headers=_auth("u-shipper-a"))
    first = client.post("/load-requests/req-load/cancel", headers=_auth("u-carrier-a"))
    second = client.post("/load-requests/req-load/cancel", headers=_auth("u-carrier-a"))

    assert wrong.status_code == 403
    assert first.status_code == 200
    assert first.json()["status"] == "CANCELLED"
    assert second.status_code == 400


def test_request_listings_are_scoped(client, world):
    carrier_a = {r["id"] for r in client.get("/load-requests", headers=_auth("u-carrier-a")).json()}
    shipper_a = {r["id"] for r in client.get("/load-requests", headers=_auth("u-shipper-a")).json()}
    shipper_b = client.get("/load-requests", headers=_auth("u-shipper-b")).json()

    assert carrier_a == {"req-load"}
    assert shipper_a == {"req-load", "req-load-b", "req-expired"}
    assert shipper_b == []
    assert [r["id"] for r in client.get("/match-proposals", headers=_auth("u-dispatcher")).json()] == ["req-match"]
