from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from roomshare.errors import ConflictError, ValidationError
from roomshare.extensions import db
from roomshare.models import Contract, Post, Room
from roomshare.services.common import commit
from roomshare.services.contracts import contract_end_date, days_left, expire_due_contracts
from roomshare.services.occupancy import add_occupants, release_occupants

from conftest import ADMIN, LANDLORD, OTHER_LANDLORD, TENANT, SECOND_TENANT


def _fresh(model, obj_id):
    db.session.expire_all()
    return db.session.get(model, obj_id)


@pytest.mark.parametrize("start,months,expected", [
    (date(2026, 11, 1), 6, date(2027, 5, 1)),
    (date(2027, 1, 31), 1, date(2027, 2, 28)),
    (date(2028, 1, 31), 1, date(2028, 2, 29)),
    (date(2026, 8, 15), 12, date(2027, 8, 15)),
])
def test_end_date_adds_calendar_months(start, months, expected):
    assert contract_end_date(start, months) == expected


def test_days_left_counts_to_end_date():
    contract = SimpleNamespace(end_date=date(2027, 5, 1))
    assert days_left(contract, date(2027, 4, 21)) == 10
    assert days_left(contract, date(2027, 5, 3)) == -2


def test_release_never_goes_below_zero():
    room = SimpleNamespace(id=1, current_occupancy=1, max_occupancy=2)
    assert release_occupants(room, 3) == -1
    assert room.current_occupancy == 0
    assert release_occupants(room, 1) == 0
    assert room.current_occupancy == 0


def test_occupancy_cannot_exceed_capacity():
    room = SimpleNamespace(id=1, current_occupancy=2, max_occupancy=2)
    with pytest.raises(ValidationError) as exc:
        add_occupants(room, 1)
    assert exc.value.code == "occupancy_exceeds_capacity"
    assert room.current_occupancy == 2


def test_occupant_count_must_be_positive():
    room = SimpleNamespace(id=1, current_occupancy=0, max_occupancy=2)
    with pytest.raises(ValidationError):
        add_occupants(room, 0)


def test_contract_visible_to_parties_only(client, headers, rented):
    _, _, contract = rented

    assert client.get(f"/api/contracts/{contract['id']}", headers=headers(TENANT)).status_code == 200
    assert client.get(f"/api/contracts/{contract['id']}", headers=headers(LANDLORD, "landlord")).status_code == 200
    assert client.get(f"/api/contracts/{contract['id']}", headers=headers(ADMIN, "admin")).status_code == 200

    resp = client.get(f"/api/contracts/{contract['id']}", headers=headers(SECOND_TENANT))
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "not_contract_party"

    resp = client.get("/api/contracts/999", headers=headers(TENANT))
    assert resp.status_code == 404


def test_terminate_frees_the_room_and_reopens_its_post(client, headers, rented):
    room, post, contract = rented
    assert _fresh(Post, post.id).status == "expired"

    resp = client.put(
        f"/api/contracts/{contract['id']}/terminate",
        json={"reason": "moving abroad"},
        headers=headers(TENANT),
    )
    assert resp.status_code == 200
    body = resp.get_json()

    assert body["contract"]["status"] == "terminated"
    assert body["contract"]["deposit_forfeited"] is True
    assert body["contract"]["termination_reason"] == "moving abroad"
    assert body["contract"]["terminated_at"] is not None
    assert body["contract"]["tenants"][0]["status"] == "inactive"
    assert "deposit" in body["deposit_policy"].lower()
    assert body["affected_posts"]["count"] == 1
    assert body["affected_posts"]["items"][0]["id"] == post.id

    assert _fresh(Room, room.id).current_occupancy == 0
    assert _fresh(Post, post.id).status == "active"


def test_terminate_twice_is_a_conflict(client, headers, rented):
    room, _, contract = rented
    url = f"/api/contracts/{contract['id']}/terminate"
    client.put(url, headers=headers(LANDLORD, "landlord"))

    resp = client.put(url, headers=headers(LANDLORD, "landlord"))
    assert resp.status_code == 409
    body = resp.get_json()
    assert body["error"] == "contract_not_active"
    assert body["status"] == "terminated"
    assert _fresh(Room, room.id).current_occupancy == 0


def test_outsider_cannot_terminate(client, headers, rented):
    room, _, contract = rented

    resp = client.put(f"/api/contracts/{contract['id']}/terminate", headers=headers(OTHER_LANDLORD, "landlord"))
    assert resp.status_code == 403
    assert _fresh(Contract, contract["id"]).status == "active"
    assert _fresh(Room, room.id).current_occupancy == 1


def test_terminating_one_share_keeps_the_roommate_post_up(client, headers, make_room, make_post,
                                                          submit_request, approve):
    room = make_room(max_occupancy=2)
    post = make_post(room, "roommate")

    first = submit_request(post, tenant_id=TENANT).get_json()
    a = approve(first["id"]).get_json()["contract"]
    second = submit_request(post, tenant_id=SECOND_TENANT).get_json()
    client.put(f"/api/rental-requests/{second['id']}/occupant-approve", headers=headers(TENANT))
    approve(second["id"])
    assert _fresh(Post, post.id).status == "expired"

    resp = client.put(f"/api/contracts/{a['id']}/terminate", headers=headers(TENANT))
    assert resp.status_code == 200
    assert resp.get_json()["affected_posts"]["count"] == 1

    assert _fresh(Room, room.id).current_occupancy == 1
    assert _fresh(Post, post.id).status == "active"


def test_expiry_closes_due_contracts_only(app, rented, make_room, make_post, submit_request, approve):
    room, post, contract = rented

    other_room = make_room(room_number="102")
    other_post = make_post(other_room, "rent")
    later = submit_request(other_post, tenant_id=SECOND_TENANT, duration=12).get_json()
    later_contract = approve(later["id"]).get_json()["contract"]

    assert expire_due_contracts(date(2027, 4, 30)) == []

    expired = expire_due_contracts(date(2027, 5, 1))
    assert [c.id for c in expired] == [contract["id"]]

    assert _fresh(Contract, contract["id"]).status == "expired"
    assert _fresh(Contract, contract["id"]).deposit_forfeited is False
    assert _fresh(Room, room.id).current_occupancy == 0
    assert _fresh(Post, post.id).status == "active"

    assert _fresh(Contract, later_contract["id"]).status == "active"
    assert _fresh(Room, other_room.id).current_occupancy == 1

    assert expire_due_contracts(date(2027, 5, 1)) == []


def test_expire_command(app, rented):
    _, _, contract = rented
    runner = app.test_cli_runner()

    result = runner.invoke(args=["expire-contracts", "--today", "2027-06-01"])
    assert result.exit_code == 0
    assert "expired=1" in result.output
    assert _fresh(Contract, contract["id"]).status == "expired"

    result = runner.invoke(args=["expire-contracts", "--today", "June"])
    assert result.exit_code != 0


def test_rejected_write_becomes_a_conflict(app):
    db.session.add(Room(
        landlord_id=LANDLORD,
        room_number="900",
        monthly_rent=Decimal("1000000"),
        deposit=Decimal("0"),
        max_occupancy=1,
        current_occupancy=2,
    ))
    with pytest.raises(ConflictError) as exc:
        commit()
    assert exc.value.code == "conflicting_write"
    assert db.session.query(Room).count() == 0
