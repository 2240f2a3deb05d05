import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, NotFound
from ..extensions import db

logger = logging.getLogger(__name__)


def reload(model, obj_id, lock=False):
    """Fetch the authoritative row, discarding any state cached in the session."""
    q = (
        db.session.query(model)
        .filter(model.id == obj_id)
        .populate_existing()
    )
    if lock:
        q = q.with_for_update()
    obj = q.first()
    if obj is None:
        raise NotFound(f"{model.__tablename__}_not_found", id=obj_id)
    return obj


@contextmanager
def _write_conflicts():
    try:
        yield
    except StaleDataError as exc:
        db.session.rollback()
        logger.warning("stale write rejected: %s", exc)
        raise ConflictError(
            "stale_state",
            "the record was changed by someone else, reload and retry",
        )
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("integrity error on write: %s", exc.orig)
        raise ConflictError("conflicting_write")


def flush():
    with _write_conflicts():
        db.session.flush()


def commit():
    with _write_conflicts():
        db.session.commit()
