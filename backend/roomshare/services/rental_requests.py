"""Rental / room-sharing request lifecycle.

::

    pending --(room-sharing, occupied room)--> pending_user_approval
    pending --(room-sharing, empty room)-----> pending_landlord_approval
    pending_user_approval --occupant_approve--> pending_landlord_approval
    pending_user_approval --occupant_reject---> rejected
    pending | pending_landlord_approval --landlord_approve--> approved
    any open state --landlord_reject--> rejected
    any open state --cancel-----------> cancelled

Rental requests are decided by the landlord straight from ``pending``.
Room-sharing is routed on contracted occupants, not the raw count, and a
``pending_user_approval`` request whose room has since emptied goes to the
landlord. Every action re-reads the request and its room before committing.
"""
import logging
from datetime import datetime

from sqlalchemy import or_

from .. import events
from ..errors import ConflictError, DuplicateRequestError, NotFound, PermissionDenied, ValidationError
from ..extensions import db
from ..models import Contract, ContractTenant, Post, RentalRequest, Room, OPEN_REQUEST_STATUSES
from ..utils.authz import ensure_landlord_of
from .common import commit, reload
from .contracts import build_contract
from .visibility import reconcile_room_posts, resolve_visibility

logger = logging.getLogger(__name__)

TRANSITIONS = {
    "occupant_approve": (("pending_user_approval",), "pending_landlord_approval"),
    "occupant_reject": (("pending_user_approval",), "rejected"),
    "landlord_approve": (("pending", "pending_landlord_approval"), "approved"),
    "landlord_reject": (OPEN_REQUEST_STATUSES, "rejected"),
    "cancel": (OPEN_REQUEST_STATUSES, "cancelled"),
}


def _target(req, action):
    sources, target = TRANSITIONS[action]
    if req.status not in sources:
        raise ConflictError(
            "invalid_transition",
            f"cannot {action.replace('_', ' ')} a request that is {req.status}",
            request_id=req.id,
            status=req.status,
            action=action,
        )
    return target


def _emit(req, from_status, actor_id):
    events.request_transitioned.send(
        req, from_status=from_status, to_status=req.status, actor_id=actor_id,
    )


def room_occupant_ids(room_id):
    rows = (
        db.session.query(ContractTenant.tenant_id)
        .join(Contract, Contract.id == ContractTenant.contract_id)
        .filter(
            Contract.room_id == room_id,
            Contract.status == "active",
            ContractTenant.status == "active",
        )
        .all()
    )
    return {tid for (tid,) in rows}


def create_request(actor, post_id, move_in_date, duration, message=None):
    post = db.session.get(Post, post_id)
    if post is None:
        raise NotFound("post_not_found", id=post_id)
    if post.status != "active":
        raise ValidationError("post_not_available", post_id=post.id, status=post.status)

    room = reload(Room, post.room_id)
    if room.landlord_id == actor.id:
        raise ValidationError("cannot_request_own_room", room_id=room.id)
    if duration < 1:
        raise ValidationError("invalid_duration", field="requested_duration")

    visibility = resolve_visibility(post, room)
    if not visibility.should_show:
        raise ConflictError("room_unavailable", visibility.reason, room_id=room.id)

    open_request = (
        db.session.query(RentalRequest)
        .filter(
            RentalRequest.tenant_id == actor.id,
            RentalRequest.status.in_(OPEN_REQUEST_STATUSES),
            or_(RentalRequest.room_id == room.id, RentalRequest.post_id == post.id),
        )
        .first()
    )
    if open_request:
        raise DuplicateRequestError(
            "request_already_pending",
            "you already have a pending request for this room",
            request_id=open_request.id,
        )

    occupants = room_occupant_ids(room.id)
    if actor.id in occupants:
        raise ValidationError("already_renting_room", room_id=room.id)

    req = RentalRequest(
        post_id=post.id,
        room_id=room.id,
        tenant_id=actor.id,
        request_type="room_sharing" if post.post_type == "roommate" else "rental",
        requested_move_in_date=move_in_date,
        requested_duration=duration,
        message=message,
        status="pending",
    )

    # no co-tenant gate when there is no contracted occupant to ask
    if req.request_type == "room_sharing":
        req.status = "pending_user_approval" if occupants else "pending_landlord_approval"

    db.session.add(req)
    commit()

    _emit(req, None, actor.id)
    return req


def get_request_for(actor, request_id):
    req = db.session.get(RentalRequest, request_id)
    if req is None:
        raise NotFound("rental_request_not_found", id=request_id)
    if actor.is_admin or req.tenant_id == actor.id or req.room.landlord_id == actor.id:
        return req
    if req.status == "pending_user_approval" and actor.id in room_occupant_ids(req.room_id):
        return req
    raise PermissionDenied("not_request_party", request_id=req.id)


def occupant_decision(actor, request_id, approve, response=None):
    req = reload(RentalRequest, request_id, lock=True)
    if not actor.is_admin and actor.id not in room_occupant_ids(req.room_id):
        raise PermissionDenied("not_room_occupant", room_id=req.room_id)

    from_status = req.status
    req.status = _target(req, "occupant_approve" if approve else "occupant_reject")
    req.occupant_id = actor.id
    req.occupant_response = response
    if not approve:
        req.decided_at = datetime.utcnow()
    commit()

    _emit(req, from_status, actor.id)
    return req


def reject_request(actor, request_id, response=None):
    req = reload(RentalRequest, request_id, lock=True)
    ensure_landlord_of(actor, req.room)

    from_status = req.status
    req.status = _target(req, "landlord_reject")
    req.landlord_response = response
    req.decided_at = datetime.utcnow()
    commit()

    _emit(req, from_status, actor.id)
    return req


def cancel_request(actor, request_id, reason=None):
    req = reload(RentalRequest, request_id, lock=True)
    if req.tenant_id != actor.id and not actor.is_admin:
        raise PermissionDenied("not_request_owner", request_id=req.id)

    from_status = req.status
    req.status = _target(req, "cancel")
    req.cancel_reason = reason
    req.decided_at = datetime.utcnow()
    commit()

    _emit(req, from_status, actor.id)
    return req


def approve_request(actor, request_id, response=None):
    """Approve a request, creating its contract and taking a seat in the room.

    Returns ``(request, contract, reconciled_posts)``.
    """
    req = reload(RentalRequest, request_id, lock=True)
    room = reload(Room, req.room_id, lock=True)
    ensure_landlord_of(actor, room)

    if req.contract_id is not None:
        raise ConflictError(
            "request_already_approved",
            "this request already has a contract",
            request_id=req.id,
            contract_id=req.contract_id,
        )

    from_status = req.status
    # the occupants who had to agree may have left since the request was routed
    if req.status == "pending_user_approval" and not room_occupant_ids(room.id):
        req.status = "pending_landlord_approval"
    target = _target(req, "landlord_approve")

    if req.request_type == "rental" and not room.is_empty:
        raise ConflictError(
            "room_already_let",
            room_id=room.id,
            current_occupancy=room.current_occupancy,
        )

    tenant_ids = [req.tenant_id]
    contract = build_contract(req, room, tenant_ids)
    logger.debug("request %s: contract %s for tenants %s", req.id, contract.id, tenant_ids)

    req.status = target
    req.contract_id = contract.id
    req.landlord_response = response
    req.decided_at = datetime.utcnow()

    reconciled = reconcile_room_posts(room)
    commit()

    _emit(req, from_status, actor.id)
    events.contract_transitioned.send(contract, from_status=None, to_status=contract.status, actor_id=actor.id)
    events.occupancy_changed.send(room, delta=len(tenant_ids), reconciled_posts=reconciled)
    return req, contract, reconciled
