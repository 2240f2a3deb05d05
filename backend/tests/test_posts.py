from flask_jwt_extended import create_access_token

from roomshare import events
from roomshare.extensions import db
from roomshare.models import Post

from conftest import ADMIN, LANDLORD, OTHER_LANDLORD, TENANT, SECOND_TENANT


def _moderate(client, headers, post_id, decision="approve"):
    return client.put(
        f"/api/posts/{post_id}/moderate",
        json={"decision": decision},
        headers=headers(ADMIN, "admin"),
    )


def test_landlord_creates_room(client, headers):
    resp = client.post(
        "/api/rooms",
        json={"room_number": "A-12", "monthly_rent": "2500000", "deposit": "500000", "max_occupancy": 3},
        headers=headers(LANDLORD, "landlord"),
    )
    assert resp.status_code == 201
    room = resp.get_json()
    assert room["landlord_id"] == LANDLORD
    assert room["current_occupancy"] == 0
    assert room["available_slots"] == 3
    assert room["monthly_rent"] == "2500000.00"

    resp = client.get(f"/api/rooms/{room['id']}", headers=headers(TENANT))
    assert resp.get_json()["room_number"] == "A-12"


def test_rooms_always_start_empty(client, headers):
    resp = client.post(
        "/api/rooms",
        json={"room_number": "A-13", "monthly_rent": "2500000", "max_occupancy": 3, "current_occupancy": 1},
        headers=headers(LANDLORD, "landlord"),
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "occupancy_not_accepted"

    resp = client.post(
        "/api/rooms",
        json={"room_number": "A-13", "monthly_rent": "2500000", "max_occupancy": 3, "current_occupancy": 0},
        headers=headers(LANDLORD, "landlord"),
    )
    assert resp.status_code == 201
    assert resp.get_json()["current_occupancy"] == 0


def test_requests_without_token_are_unauthorized(client):
    resp = client.post("/api/rooms", json={})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"


def test_non_numeric_identity_is_refused(client):
    token = create_access_token(identity="someone@example.com", additional_claims={"role": "tenant"})
    resp = client.get("/api/rental-requests", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "invalid_identity"


def test_new_posts_wait_for_moderation(client, headers, make_room):
    room = make_room()
    resp = client.post(
        "/api/posts",
        json={"room_id": room.id, "title": "Quiet studio", "post_type": "rent"},
        headers=headers(LANDLORD, "landlord"),
    )
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "pending"


def test_only_the_landlord_advertises_a_rental(client, headers, make_room):
    room = make_room()
    resp = client.post(
        "/api/posts",
        json={"room_id": room.id, "title": "Quiet studio", "post_type": "rent"},
        headers=headers(OTHER_LANDLORD, "landlord"),
    )
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "not_room_landlord"


def test_occupants_may_look_for_roommates(client, headers, make_room, make_post, submit_request, approve):
    room = make_room(max_occupancy=2)
    post = make_post(room, "roommate")
    req = submit_request(post, tenant_id=TENANT).get_json()
    approve(req["id"])

    payload = {"room_id": room.id, "title": "Looking for a roommate", "post_type": "roommate"}
    assert client.post("/api/posts", json=payload, headers=headers(TENANT)).status_code == 201

    resp = client.post("/api/posts", json=payload, headers=headers(SECOND_TENANT))
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "not_room_occupant"


def test_unknown_post_type_is_refused(client, headers, make_room):
    room = make_room()
    resp = client.post(
        "/api/posts",
        json={"room_id": room.id, "title": "Parking", "post_type": "garage"},
        headers=headers(LANDLORD, "landlord"),
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_post_type"


def test_approved_post_follows_room_occupancy(client, headers, make_room, make_post):
    free = make_post(make_room(), "rent", status="pending")
    taken = make_post(make_room(current_occupancy=1, room_number="102"), "rent", status="pending")

    seen = []

    def listener(sender, **kw):
        seen.append((sender.id, kw["to_status"]))

    with events.post_status_changed.connected_to(listener):
        assert _moderate(client, headers, free.id).get_json()["status"] == "active"
        assert _moderate(client, headers, taken.id).get_json()["status"] == "expired"

    assert seen == [(free.id, "active"), (taken.id, "expired")]


def test_moderation_happens_once(client, headers, make_room, make_post):
    post = make_post(make_room(), "rent", status="pending")
    assert _moderate(client, headers, post.id, "reject").get_json()["status"] == "rejected"

    resp = _moderate(client, headers, post.id)
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "post_already_moderated"


def test_only_admins_moderate(client, headers, make_room, make_post):
    post = make_post(make_room(), "rent", status="pending")
    resp = client.put(
        f"/api/posts/{post.id}/moderate",
        json={"decision": "approve"},
        headers=headers(LANDLORD, "landlord"),
    )
    assert resp.status_code == 403


def test_listing_hides_posts_for_taken_rooms(client, make_room, make_post):
    empty_rent = make_post(make_room(room_number="1"), "rent")
    make_post(make_room(current_occupancy=1, room_number="2"), "rent")
    shared = make_post(make_room(max_occupancy=3, current_occupancy=1, room_number="3"), "roommate")
    make_post(make_room(max_occupancy=2, current_occupancy=2, room_number="4"), "roommate")
    make_post(make_room(room_number="5"), "rent", status="pending")

    body = client.get("/api/posts").get_json()
    assert {p["id"] for p in body["items"]} == {empty_rent.id, shared.id}
    assert body["total"] == 2

    body = client.get("/api/posts?post_type=roommate").get_json()
    assert [p["id"] for p in body["items"]] == [shared.id]

    assert client.get("/api/posts?post_type=garage").status_code == 400


def test_visibility_endpoint_explains_the_decision(client, make_room, make_post):
    post = make_post(make_room(max_occupancy=3, current_occupancy=3), "roommate")

    body = client.get(f"/api/posts/{post.id}/visibility").get_json()
    assert body == {"post_id": post.id, "should_show": False, "reason": "room full"}

    assert client.get("/api/posts/999/visibility").status_code == 404


def test_pending_and_rejected_posts_are_left_alone(client, headers, make_room, make_post,
                                                    submit_request, approve):
    room = make_room()
    live = make_post(room, "rent")
    waiting = make_post(room, "rent", status="pending", title="Second listing")
    req = submit_request(live).get_json()
    approve(req["id"])

    db.session.expire_all()
    assert db.session.get(Post, live.id).status == "expired"
    assert db.session.get(Post, waiting.id).status == "pending"
