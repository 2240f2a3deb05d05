"""Signals emitted after every committed state transition.

Senders are the affected model instances. Keyword arguments:

- ``request_transitioned``: ``from_status``, ``to_status``, ``actor_id``
- ``contract_transitioned``: ``from_status``, ``to_status``, ``actor_id``
- ``occupancy_changed``: ``delta``, ``reconciled_posts``
- ``invoice_status_changed``: ``from_status``, ``to_status``, ``actor_id``
- ``post_status_changed``: ``from_status``, ``to_status``, ``actor_id``
"""
import logging

from blinker import Namespace

logger = logging.getLogger(__name__)

_signals = Namespace()

request_transitioned = _signals.signal("request-transitioned")
contract_transitioned = _signals.signal("contract-transitioned")
occupancy_changed = _signals.signal("occupancy-changed")
invoice_status_changed = _signals.signal("invoice-status-changed")
post_status_changed = _signals.signal("post-status-changed")


def _audit_transition(sender, from_status=None, to_status=None, actor_id=None, **extra):
    logger.info(
        "%s %s: %s -> %s (actor=%s)",
        type(sender).__name__, sender.id, from_status, to_status, actor_id,
    )


def _audit_occupancy(sender, delta=0, reconciled_posts=(), **extra):
    logger.info(
        "room %s occupancy %+d -> %s/%s, posts reconciled=%s",
        sender.id, delta, sender.current_occupancy, sender.max_occupancy,
        [p.id for p in reconciled_posts],
    )


def register_audit_log():
    request_transitioned.connect(_audit_transition)
    contract_transitioned.connect(_audit_transition)
    invoice_status_changed.connect(_audit_transition)
    post_status_changed.connect(_audit_transition)
    occupancy_changed.connect(_audit_occupancy)
