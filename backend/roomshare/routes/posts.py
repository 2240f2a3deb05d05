from flask import Blueprint, request, jsonify

from .. import events
from ..extensions import db
from ..errors import ConflictError, NotFound, PermissionDenied, ValidationError
from ..models import Post, Room, POST_TYPES
from ..serializers import post_to_dict
from ..services.common import commit, reload
from ..services.rental_requests import room_occupant_ids
from ..services.visibility import check_visibility, filter_visible_posts, reconcile_room_posts
from ..utils.authz import current_actor, require_any_role
from ..utils.validation import require_fields, parse_int

bp = Blueprint("posts", __name__, url_prefix="/api/posts")


async def _load_room(room_id):
    return db.session.get(Room, room_id)


def _post_or_404(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        raise NotFound("post_not_found", id=post_id)
    return post


@bp.route("", methods=["POST"])
@require_any_role("landlord", "tenant")
def create_post():
    data = require_fields(request.get_json(silent=True), ["room_id", "title", "post_type"])
    actor = current_actor()

    post_type = str(data["post_type"]).strip().lower()
    if post_type not in POST_TYPES:
        raise ValidationError("invalid_post_type", allowed=list(POST_TYPES))

    room = db.session.get(Room, parse_int(data["room_id"], "room_id"))
    if room is None:
        raise NotFound("room_not_found", id=data["room_id"])

    is_landlord = actor.is_admin or room.landlord_id == actor.id
    if post_type == "rent" and not is_landlord:
        raise PermissionDenied("not_room_landlord", room_id=room.id)
    if post_type == "roommate" and not (is_landlord or actor.id in room_occupant_ids(room.id)):
        raise PermissionDenied("not_room_occupant", room_id=room.id)

    post = Post(
        room_id=room.id,
        author_id=actor.id,
        title=str(data["title"]).strip(),
        post_type=post_type,
        status="pending",
    )
    db.session.add(post)
    db.session.commit()
    return jsonify(post_to_dict(post)), 201


@bp.route("/<int:post_id>/moderate", methods=["PUT"])
@require_any_role("admin")
def moderate_post(post_id):
    data = require_fields(request.get_json(silent=True), ["decision"])
    decision = str(data["decision"]).strip().lower()
    if decision not in ("approve", "reject"):
        raise ValidationError("invalid_decision", allowed=["approve", "reject"])

    post = reload(Post, post_id, lock=True)
    if post.status != "pending":
        raise ConflictError("post_already_moderated", post_id=post.id, status=post.status)

    from_status = post.status
    if decision == "reject":
        post.status = "rejected"
    else:
        # start from active and let the room's occupancy decide
        post.status = "active"
        reconcile_room_posts(reload(Room, post.room_id))
    commit()

    events.post_status_changed.send(post, from_status=from_status, to_status=post.status, actor_id=current_actor().id)
    return jsonify(post_to_dict(post)), 200


@bp.route("", methods=["GET"])
async def list_posts():
    post_type = request.args.get("post_type")

    q = db.session.query(Post).filter(Post.status == "active")
    if post_type:
        if post_type not in POST_TYPES:
            raise ValidationError("invalid_post_type", allowed=list(POST_TYPES))
        q = q.filter(Post.post_type == post_type)

    posts = q.order_by(Post.created_at.desc(), Post.id.desc()).all()
    visible = await filter_visible_posts(posts, _load_room)

    return jsonify({
        "items": [post_to_dict(p) for p in visible],
        "total": len(visible),
    })


@bp.route("/<int:post_id>/visibility", methods=["GET"])
async def post_visibility(post_id):
    post = _post_or_404(post_id)
    result = await check_visibility(post, _load_room)
    return jsonify({"post_id": post.id, **result.to_dict()})
