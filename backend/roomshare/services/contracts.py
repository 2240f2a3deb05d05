import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from dateutil.relativedelta import relativedelta

from .. import events
from ..errors import ConflictError, PermissionDenied
from ..extensions import db
from ..models import Contract, ContractTenant, Room
from .common import commit, flush, reload
from .invoices import build_initial_invoice
from .occupancy import add_occupants, release_occupants
from .visibility import reconcile_room_posts

logger = logging.getLogger(__name__)

DEPOSIT_FORFEIT_NOTICE = "Early termination forfeits the deposit."


def contract_end_date(start_date, months):
    return start_date + relativedelta(months=months)


def _share(amount, room):
    return (Decimal(str(amount)) / room.max_occupancy).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def build_contract(request, room, tenant_ids):
    """Create the contract for an approved request inside the caller's transaction.

    Takes one seat per tenant on the room and issues the initial payment
    invoice. Shared contracts carry the per-seat share of rent and deposit.
    """
    contract_type = "shared" if request.request_type == "room_sharing" else "single"
    if contract_type == "shared":
        monthly_rent, deposit = _share(room.monthly_rent, room), _share(room.deposit, room)
    else:
        monthly_rent, deposit = room.monthly_rent, room.deposit

    start = request.requested_move_in_date
    contract = Contract(
        room_id=room.id,
        landlord_id=room.landlord_id,
        request_id=request.id,
        post_id=request.post_id,
        contract_type=contract_type,
        status="active",
        start_date=start,
        end_date=contract_end_date(start, request.requested_duration),
        monthly_rent=monthly_rent,
        deposit=deposit,
        tenants=[
            ContractTenant(tenant_id=tid, move_in_date=start, status="active")
            for tid in tenant_ids
        ],
    )
    add_occupants(room, len(tenant_ids))

    db.session.add(contract)
    flush()

    build_initial_invoice(contract)
    return contract


def _close(contract, to_status):
    departing = contract.active_tenants()
    for t in departing:
        t.status = "inactive"
    contract.status = to_status

    room = reload(Room, contract.room_id, lock=True)
    delta = release_occupants(room, len(departing))
    reconciled = reconcile_room_posts(room)
    return room, delta, reconciled


def _emit_closed(contract, from_status, room, delta, reconciled, actor_id):
    events.contract_transitioned.send(
        contract, from_status=from_status, to_status=contract.status, actor_id=actor_id,
    )
    events.occupancy_changed.send(room, delta=delta, reconciled_posts=reconciled)


def terminate_contract(actor, contract_id, reason=None):
    contract = reload(Contract, contract_id, lock=True)
    ensure_contract_party(actor, contract)

    if contract.status != "active":
        raise ConflictError(
            "contract_not_active",
            f"contract is already {contract.status}",
            contract_id=contract.id,
            status=contract.status,
        )

    from_status = contract.status
    room, delta, reconciled = _close(contract, "terminated")
    contract.terminated_at = datetime.utcnow()
    contract.termination_reason = (reason or "").strip()[:500] or None
    contract.deposit_forfeited = True
    commit()

    _emit_closed(contract, from_status, room, delta, reconciled, actor.id)
    return contract, reconciled


def expire_due_contracts(today=None):
    """Close every active contract whose end date has been reached."""
    today = today or date.today()
    due_ids = [
        cid for (cid,) in
        db.session.query(Contract.id)
        .filter(Contract.status == "active", Contract.end_date <= today)
        .order_by(Contract.id)
        .all()
    ]

    expired = []
    for cid in due_ids:
        contract = reload(Contract, cid, lock=True)
        if contract.status != "active":
            continue
        room, delta, reconciled = _close(contract, "expired")
        commit()
        _emit_closed(contract, "active", room, delta, reconciled, None)
        expired.append(contract)

    logger.info("expiry run %s: %d contract(s) expired", today.isoformat(), len(expired))
    return expired


def days_left(contract, today=None):
    today = today or date.today()
    return (contract.end_date - today).days


def ensure_contract_party(actor, contract):
    if actor.is_admin or contract.landlord_id == actor.id or contract.has_tenant(actor.id):
        return
    raise PermissionDenied("not_contract_party", contract_id=contract.id)
