from dataclasses import dataclass
from functools import wraps

from flask import current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity

from ..errors import PermissionDenied

ROLES = ("tenant", "landlord", "admin")


@dataclass(frozen=True)
class Actor:
    id: int
    role: str

    @property
    def is_admin(self):
        return self.role == "admin"


def current_actor():
    verify_jwt_in_request()
    claims = get_jwt()
    role = (claims.get("role") or "tenant").lower()
    if role not in ROLES:
        raise PermissionDenied("unknown_role", role=role)
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        raise PermissionDenied("invalid_identity")
    return Actor(id=user_id, role=role)


def require_any_role(*roles):
    allowed = {r.lower() for r in roles}

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            actor = current_actor()

            # admin bypass
            if not actor.is_admin and actor.role not in allowed:
                raise PermissionDenied("forbidden", role=actor.role)

            return current_app.ensure_sync(fn)(*args, **kwargs)
        return wrapper
    return deco


def ensure_landlord_of(actor, room):
    if actor.is_admin:
        return
    if actor.role != "landlord" or room.landlord_id != actor.id:
        raise PermissionDenied("not_room_landlord", room_id=room.id)
