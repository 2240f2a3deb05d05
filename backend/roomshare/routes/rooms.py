from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import Room
from ..serializers import room_to_dict
from ..utils.authz import current_actor, require_any_role
from ..utils.validation import require_fields, parse_int, parse_money

bp = Blueprint("rooms", __name__, url_prefix="/api/rooms")


@bp.route("", methods=["POST"])
@require_any_role("landlord")
def create_room():
    data = require_fields(request.get_json(silent=True), ["room_number", "monthly_rent", "max_occupancy"])
    actor = current_actor()

    # occupancy only moves with contracts
    if data.get("current_occupancy"):
        raise ValidationError("occupancy_not_accepted", "rooms start empty")

    room = Room(
        landlord_id=actor.id,
        room_number=str(data["room_number"]).strip(),
        monthly_rent=parse_money(data["monthly_rent"], "monthly_rent"),
        deposit=parse_money(data.get("deposit", 0), "deposit"),
        max_occupancy=parse_int(data["max_occupancy"], "max_occupancy", minimum=1),
        current_occupancy=0,
    )
    db.session.add(room)
    db.session.commit()
    return jsonify(room_to_dict(room)), 201


@bp.route("/<int:room_id>", methods=["GET"])
@jwt_required()
def get_room(room_id):
    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFound("room_not_found", id=room_id)
    return jsonify(room_to_dict(room))
