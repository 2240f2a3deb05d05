from datetime import date

from .services.contracts import days_left
from .services.invoices import money, effective_status, overdue_days


def _iso(v):
    return v.isoformat() if v else None


def room_to_dict(r):
    return {
        "id": r.id,
        "landlord_id": r.landlord_id,
        "room_number": r.room_number,
        "monthly_rent": money(r.monthly_rent),
        "deposit": money(r.deposit),
        "max_occupancy": r.max_occupancy,
        "current_occupancy": r.current_occupancy,
        "available_slots": r.available_slots,
    }


def post_to_dict(p):
    return {
        "id": p.id,
        "room_id": p.room_id,
        "author_id": p.author_id,
        "title": p.title,
        "post_type": p.post_type,
        "status": p.status,
        "created_at": _iso(p.created_at),
    }


def request_to_dict(r):
    return {
        "id": r.id,
        "post_id": r.post_id,
        "room_id": r.room_id,
        "tenant_id": r.tenant_id,
        "request_type": r.request_type,
        "requested_move_in_date": _iso(r.requested_move_in_date),
        "requested_duration": r.requested_duration,
        "message": r.message,
        "status": r.status,
        "contract_id": r.contract_id,
        "occupant_response": r.occupant_response,
        "landlord_response": r.landlord_response,
        "cancel_reason": r.cancel_reason,
        "decided_at": _iso(r.decided_at),
        "created_at": _iso(r.created_at),
    }


def contract_to_dict(c, today=None):
    today = today or date.today()
    return {
        "id": c.id,
        "room_id": c.room_id,
        "landlord_id": c.landlord_id,
        "request_id": c.request_id,
        "post_id": c.post_id,
        "contract_type": c.contract_type,
        "status": c.status,
        "start_date": _iso(c.start_date),
        "end_date": _iso(c.end_date),
        "days_left": days_left(c, today) if c.status == "active" else None,
        "monthly_rent": money(c.monthly_rent),
        "deposit": money(c.deposit),
        "deposit_forfeited": bool(c.deposit_forfeited),
        "terminated_at": _iso(c.terminated_at),
        "termination_reason": c.termination_reason,
        "tenants": [{
            "tenant_id": t.tenant_id,
            "move_in_date": _iso(t.move_in_date),
            "status": t.status,
        } for t in c.tenants],
    }


def invoice_to_dict(inv, today=None):
    today = today or date.today()
    return {
        "id": inv.id,
        "contract_id": inv.contract_id,
        "tenant_id": inv.tenant_id,
        "invoice_type": inv.invoice_type,
        "billing_period": inv.billing_period,
        "amount": money(inv.amount),
        "currency": inv.currency,
        "due_date": _iso(inv.due_date),
        "status": effective_status(inv, today),
        "overdue_days": overdue_days(inv, today),
        "paid_at": _iso(inv.paid_at),
        "payment_reference": inv.payment_reference,
        "note": inv.note,
        "items": [{
            "description": i.description,
            "type": i.item_type,
            "amount": money(i.amount),
        } for i in inv.items],
    }
