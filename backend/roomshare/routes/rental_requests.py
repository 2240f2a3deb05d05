from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import or_

from ..extensions import db
from ..errors import ValidationError
from ..models import RentalRequest, Room, REQUEST_STATUSES
from ..serializers import contract_to_dict, post_to_dict, request_to_dict
from ..services import rental_requests as svc
from ..utils.authz import current_actor, require_any_role
from ..utils.pagination import paginate
from ..utils.validation import require_fields, parse_date, parse_int

bp = Blueprint("rental_requests", __name__, url_prefix="/api/rental-requests")


def _body():
    return request.get_json(silent=True) or {}


def _text(data, field, limit=1000):
    value = data.get(field)
    if value is None:
        return None
    return str(value).strip()[:limit] or None


@bp.route("", methods=["POST"])
@require_any_role("tenant")
def create_rental_request():
    data = require_fields(
        request.get_json(silent=True),
        ["post_id", "requested_move_in_date", "requested_duration"],
    )

    req = svc.create_request(
        current_actor(),
        post_id=parse_int(data["post_id"], "post_id"),
        move_in_date=parse_date(data["requested_move_in_date"], "requested_move_in_date"),
        duration=parse_int(data["requested_duration"], "requested_duration", minimum=1),
        message=_text(data, "message"),
    )
    return jsonify(request_to_dict(req)), 201


@bp.route("", methods=["GET"])
@jwt_required()
def list_rental_requests():
    actor = current_actor()
    status = request.args.get("status")

    q = db.session.query(RentalRequest)
    if not actor.is_admin:
        landlord_rooms = db.session.query(Room.id).filter(Room.landlord_id == actor.id)
        q = q.filter(or_(
            RentalRequest.tenant_id == actor.id,
            RentalRequest.room_id.in_(landlord_rooms),
        ))

    if status:
        if status not in REQUEST_STATUSES:
            raise ValidationError("invalid_status", allowed=list(REQUEST_STATUSES))
        q = q.filter(RentalRequest.status == status)

    return jsonify(paginate(q.order_by(RentalRequest.id.desc()), request_to_dict))


@bp.route("/<int:request_id>", methods=["GET"])
@jwt_required()
def get_rental_request(request_id):
    req = svc.get_request_for(current_actor(), request_id)
    return jsonify(request_to_dict(req))


@bp.route("/<int:request_id>/cancel", methods=["PUT"])
@require_any_role("tenant")
def cancel_rental_request(request_id):
    req = svc.cancel_request(current_actor(), request_id, reason=_text(_body(), "reason", 500))
    return jsonify(request_to_dict(req)), 200


@bp.route("/<int:request_id>/occupant-approve", methods=["PUT"])
@require_any_role("tenant")
def occupant_approve(request_id):
    req = svc.occupant_decision(current_actor(), request_id, True, response=_text(_body(), "response"))
    return jsonify(request_to_dict(req)), 200


@bp.route("/<int:request_id>/occupant-reject", methods=["PUT"])
@require_any_role("tenant")
def occupant_reject(request_id):
    req = svc.occupant_decision(current_actor(), request_id, False, response=_text(_body(), "response"))
    return jsonify(request_to_dict(req)), 200


@bp.route("/<int:request_id>/approve", methods=["PUT"])
@require_any_role("landlord")
def approve_rental_request(request_id):
    req, contract, reconciled = svc.approve_request(
        current_actor(), request_id, response=_text(_body(), "landlord_response"),
    )
    return jsonify({
        "request": request_to_dict(req),
        "contract": contract_to_dict(contract),
        "affected_posts": [post_to_dict(p) for p in reconciled],
    }), 200


@bp.route("/<int:request_id>/reject", methods=["PUT"])
@require_any_role("landlord")
def reject_rental_request(request_id):
    req = svc.reject_request(current_actor(), request_id, response=_text(_body(), "landlord_response"))
    return jsonify(request_to_dict(req)), 200
