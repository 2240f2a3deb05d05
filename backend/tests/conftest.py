from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from config import TestConfig
from roomshare import create_app
from roomshare.extensions import db
from roomshare.models import Room, Post

LANDLORD = 1
OTHER_LANDLORD = 2
TENANT = 10
SECOND_TENANT = 11
THIRD_TENANT = 12
ADMIN = 99


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def headers(app):
    def _headers(user_id, role="tenant"):
        token = create_access_token(identity=str(user_id), additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def make_room(app):
    def _make(max_occupancy=1, current_occupancy=0, landlord_id=LANDLORD,
              monthly_rent="3000000", deposit="1000000", room_number="101"):
        room = Room(
            landlord_id=landlord_id,
            room_number=room_number,
            monthly_rent=Decimal(monthly_rent),
            deposit=Decimal(deposit),
            max_occupancy=max_occupancy,
            current_occupancy=current_occupancy,
        )
        db.session.add(room)
        db.session.commit()
        return room
    return _make


@pytest.fixture
def make_post(app):
    def _make(room, post_type="rent", status="active", author_id=None, title="Sunny room near campus"):
        post = Post(
            room_id=room.id,
            author_id=author_id or room.landlord_id,
            title=title,
            post_type=post_type,
            status=status,
        )
        db.session.add(post)
        db.session.commit()
        return post
    return _make


@pytest.fixture
def submit_request(client, headers):
    def _submit(post, tenant_id=TENANT, move_in="2026-11-01", duration=6, message=None):
        return client.post(
            "/api/rental-requests",
            json={
                "post_id": post.id,
                "requested_move_in_date": move_in,
                "requested_duration": duration,
                "message": message,
            },
            headers=headers(tenant_id, "tenant"),
        )
    return _submit


@pytest.fixture
def approve(client, headers):
    def _approve(request_id, landlord_id=LANDLORD):
        return client.put(
            f"/api/rental-requests/{request_id}/approve",
            json={"landlord_response": "welcome"},
            headers=headers(landlord_id, "landlord"),
        )
    return _approve


@pytest.fixture
def rented(make_room, make_post, submit_request, approve):
    """A single-occupancy room let through an approved rental request."""
    room = make_room()
    post = make_post(room, "rent")
    req = submit_request(post).get_json()
    body = approve(req["id"]).get_json()
    return room, post, body["contract"]
