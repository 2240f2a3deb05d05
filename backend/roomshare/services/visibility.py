"""Decide whether a listing should be advertised given its room's occupancy.

The rules only look at a post's type and a snapshot of the room's
``current_occupancy`` / ``max_occupancy``. Every path that cannot reach a
decision shows the post.
"""
import asyncio
import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import Post

logger = logging.getLogger(__name__)

# statuses the reconciler may flip; pending/rejected belong to moderation
RECONCILABLE_STATUSES = ("active", "expired")


@dataclass(frozen=True)
class VisibilityResult:
    should_show: bool
    reason: str

    def to_dict(self):
        return {"should_show": self.should_show, "reason": self.reason}


def resolve_visibility(post, room):
    if room is None:
        return VisibilityResult(True, "room data unavailable - default to visible")

    current = room.current_occupancy
    maximum = room.max_occupancy
    post_type = post.post_type

    if current == 0 and post_type == "rent":
        return VisibilityResult(True, "empty room - rent post")
    if current == 0 and post_type == "roommate":
        return VisibilityResult(True, "empty room - roommate post allowed")
    if current > 0 and post_type == "rent":
        return VisibilityResult(False, "room occupied")
    if current > 0 and post_type == "roommate":
        if current >= maximum:
            return VisibilityResult(False, "room full")
        return VisibilityResult(True, "room has space")

    return VisibilityResult(True, "unknown state - default to visible")


async def check_visibility(post, load_room):
    """Resolve visibility with a room fetched through ``load_room``.

    ``load_room`` is an async callable taking a room id. Any failure while
    loading fails open.
    """
    try:
        room = await load_room(post.room_id)
    except Exception as exc:
        logger.warning("room %s lookup failed for post %s: %s", post.room_id, post.id, exc)
        return VisibilityResult(True, "error checking visibility - default to visible")
    return resolve_visibility(post, room)


async def filter_visible_posts(posts, load_room):
    posts = list(posts)
    results = await asyncio.gather(
        *(check_visibility(p, load_room) for p in posts),
        return_exceptions=True,
    )

    visible = []
    for post, result in zip(posts, results):
        if isinstance(result, BaseException):
            logger.warning("visibility check crashed for post %s: %s", post.id, result)
            visible.append(post)
        elif result.should_show:
            visible.append(post)
    return visible


def reconcile_room_posts(room):
    """Re-run the resolver for the room's posts and sync their status.

    Runs inside the caller's transaction. Returns the posts whose status
    changed.
    """
    posts = (
        db.session.query(Post)
        .filter(Post.room_id == room.id, Post.status.in_(RECONCILABLE_STATUSES))
        .order_by(Post.id)
        .all()
    )

    changed = []
    for post in posts:
        result = resolve_visibility(post, room)
        wanted = "active" if result.should_show else "expired"
        if post.status != wanted:
            logger.debug("post %s %s -> %s (%s)", post.id, post.status, wanted, result.reason)
            post.status = wanted
            changed.append(post)
    return changed
