import calendar
import hashlib
import hmac
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from .. import events
from ..errors import ConflictError, PermissionDenied, ValidationError
from ..extensions import db
from ..models import Contract, Invoice, InvoiceItem, INVOICE_TYPES
from ..utils.authz import ensure_landlord_of
from .common import commit, flush, reload

logger = logging.getLogger(__name__)

PAYMENT_RESULTS = ("pending", "paid", "failed")


def _d(x) -> Decimal:
    if x is None:
        return Decimal("0")
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def money(x) -> str:
    q = _d(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{q:.2f}"


def _item_amount(item):
    if isinstance(item, dict):
        return item.get("amount")
    return item.amount


def _period_key(d0: date) -> str:
    return f"{d0.year:04d}-{d0.month:02d}"


def compute_invoice_total(items) -> Decimal:
    return sum((_d(_item_amount(i)) for i in items), Decimal("0"))


def normalize_items(raw_items):
    if not isinstance(raw_items, (list, tuple)):
        raise ValidationError("invalid_items", "items must be a list")

    items = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError("invalid_item", index=idx)

        description = str(raw.get("description") or "").strip()
        if not description:
            raise ValidationError("invalid_item", "item description is required", index=idx)

        try:
            amount = Decimal(str(raw.get("amount")))
        except (InvalidOperation, TypeError):
            raise ValidationError("invalid_item", "item amount must be a number", index=idx)
        if not amount.is_finite():
            raise ValidationError("invalid_item", "item amount must be a number", index=idx)

        items.append({
            "description": description,
            "item_type": str(raw.get("type") or raw.get("item_type") or "other"),
            "amount": amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        })
    return items


def _meter_item(label, item_type, reading, unit):
    start = _d(reading.get("start"))
    end = _d(reading.get("end"))
    price = _d(reading.get("unit_price"))
    if start < 0 or price < 0:
        raise ValidationError("invalid_meter_reading", field=item_type)
    if end < start:
        raise ValidationError("invalid_meter_reading", f"{label} end reading must be >= start", field=item_type)

    usage = end - start
    return {
        "description": f"{label}: {usage} {unit} x {money(price)}",
        "type": item_type,
        "amount": (usage * price).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
    }


def build_manual_items(contract, include_rent=True, rent_override=None,
                       electricity=None, water=None, other_items=()):
    """Assemble the line items of a landlord-issued invoice.

    ``electricity`` and ``water`` are dicts with ``start``, ``end`` and
    ``unit_price``; usage is ``end - start``. Zero-amount meter lines are
    dropped so an invoice for unused utilities stays empty.
    """
    items = []

    if include_rent:
        rent = _d(rent_override) if rent_override is not None else _d(contract.monthly_rent)
        if rent < 0:
            raise ValidationError("invalid_amount", field="rent_amount_override")
        if rent > 0:
            items.append({"description": "Monthly rent", "type": "rent", "amount": rent})

    if electricity:
        item = _meter_item("Electricity", "electricity", electricity, "kWh")
        if item["amount"] > 0:
            items.append(item)

    if water:
        item = _meter_item("Water", "water", water, "m3")
        if item["amount"] > 0:
            items.append(item)

    items.extend(other_items or ())
    return items


def build_invoice(contract, invoice_type, raw_items, due_date=None, billing_period=None,
                  note=None, tenant_id=None):
    """Create (flush, not commit) an invoice whose amount is the sum of its items."""
    if invoice_type not in INVOICE_TYPES:
        raise ValidationError("invalid_invoice_type", allowed=list(INVOICE_TYPES))

    if contract.status != "active":
        raise ConflictError("contract_not_active", contract_id=contract.id, status=contract.status)

    items = normalize_items(raw_items)
    total = compute_invoice_total(items)
    if total <= 0:
        raise ValidationError(
            "no_payable_items",
            "an invoice needs at least one payable item",
            total=money(total),
        )

    if due_date is None:
        due_date = date.today() + timedelta(days=current_app.config.get("INVOICE_DUE_DAYS", 7))

    if tenant_id is None:
        tenants = contract.active_tenants()
        if not tenants:
            raise ConflictError("contract_has_no_tenant", contract_id=contract.id)
        tenant_id = tenants[0].tenant_id

    inv = Invoice(
        contract_id=contract.id,
        tenant_id=tenant_id,
        invoice_type=invoice_type,
        billing_period=billing_period,
        amount=total,
        currency=current_app.config.get("CURRENCY", "VND"),
        due_date=due_date,
        status="pending",
        note=note,
        items=[
            InvoiceItem(description=i["description"], item_type=i["item_type"], amount=i["amount"])
            for i in items
        ],
    )
    db.session.add(inv)
    flush()
    return inv


def build_initial_invoice(contract):
    items = [{"description": "First month rent", "type": "rent", "amount": contract.monthly_rent}]
    if _d(contract.deposit) > 0:
        items.append({"description": "Security deposit", "type": "deposit", "amount": contract.deposit})

    return build_invoice(
        contract,
        "initial_payment",
        items,
        billing_period=_period_key(contract.start_date),
        note="Initial payment due before move-in",
    )


def issue_invoice(actor, contract_id, invoice_type, raw_items, due_date=None, note=None):
    contract = reload(Contract, contract_id, lock=True)
    ensure_landlord_of(actor, contract.room)

    inv = build_invoice(contract, invoice_type, raw_items, due_date=due_date, note=note)
    commit()

    events.invoice_status_changed.send(inv, from_status=None, to_status=inv.status, actor_id=actor.id)
    return inv


def _billing_due_date(year, month):
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(current_app.config.get("BILLING_DAY", 5), last_day))


def generate_monthly_invoices(today=None):
    """Issue this month's rent invoice for every active contract.

    A contract's first month is covered by its initial payment; a period that
    already has a ``monthly_rent`` invoice is skipped.
    """
    today = today or date.today()
    period = _period_key(today)
    month_end = date(today.year, today.month, calendar.monthrange(today.year, today.month)[1])

    contracts = (
        db.session.query(Contract)
        .filter(
            Contract.status == "active",
            Contract.start_date <= month_end,
            Contract.end_date > today.replace(day=1),
        )
        .order_by(Contract.id)
        .all()
    )

    created = []
    for contract in contracts:
        if _period_key(contract.start_date) == period:
            continue

        exists = (
            db.session.query(Invoice.id)
            .filter(
                Invoice.contract_id == contract.id,
                Invoice.invoice_type == "monthly_rent",
                Invoice.billing_period == period,
            )
            .first()
        )
        if exists:
            continue

        inv = build_invoice(
            contract,
            "monthly_rent",
            [{"description": f"Rent {period}", "type": "rent", "amount": contract.monthly_rent}],
            due_date=_billing_due_date(today.year, today.month),
            billing_period=period,
        )
        created.append(inv)

    commit()
    for inv in created:
        events.invoice_status_changed.send(inv, from_status=None, to_status=inv.status, actor_id=None)
    logger.info("billing run %s: %d invoice(s) issued", period, len(created))
    return created


def sign_callback(invoice_id, status, reference, secret):
    message = f"{invoice_id}|{status}|{reference or ''}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_callback(invoice_id, status, reference, signature):
    secret = current_app.config["PAYMENT_CALLBACK_SECRET"]
    expected = sign_callback(invoice_id, status, reference, secret)
    if not signature or not hmac.compare_digest(expected, str(signature)):
        raise PermissionDenied("invalid_signature")


def apply_payment_result(invoice_id, status, reference=None, now=None):
    """Apply a payment gateway verdict to an invoice.

    Returns ``(invoice, changed)``. Replaying a ``paid`` callback with the same
    reference is a no-op; anything that would undo a payment is a conflict.
    """
    if status not in PAYMENT_RESULTS:
        raise ValidationError("invalid_payment_status", allowed=list(PAYMENT_RESULTS))

    inv = reload(Invoice, invoice_id, lock=True)
    from_status = inv.status

    if status == "pending":
        return inv, False

    if inv.status == "paid":
        if status == "paid" and inv.payment_reference == reference:
            return inv, False
        raise ConflictError(
            "invoice_already_paid",
            invoice_id=inv.id,
            payment_reference=inv.payment_reference,
        )

    if status == "paid":
        inv.status = "paid"
        inv.paid_at = now or datetime.utcnow()
        inv.payment_reference = reference
    else:
        if inv.status == "failed":
            return inv, False
        inv.status = "failed"
        inv.payment_reference = reference

    commit()
    events.invoice_status_changed.send(inv, from_status=from_status, to_status=inv.status, actor_id=None)
    return inv, True


def effective_status(invoice, today=None):
    today = today or date.today()
    if invoice.status == "pending" and invoice.due_date < today:
        return "overdue"
    return invoice.status


def overdue_days(invoice, today=None):
    today = today or date.today()
    if effective_status(invoice, today) != "overdue":
        return 0
    return (today - invoice.due_date).days


def contract_payment_status(invoices, today=None):
    today = today or date.today()
    buckets = {
        "paid": [Decimal("0"), 0],
        "pending": [Decimal("0"), 0],
        "overdue": [Decimal("0"), 0],
        "failed": [Decimal("0"), 0],
    }

    latest = None
    initial_paid = False
    for inv in invoices:
        status = effective_status(inv, today)
        buckets[status][0] += _d(inv.amount)
        buckets[status][1] += 1
        if inv.invoice_type == "initial_payment" and inv.status == "paid":
            initial_paid = True
        if latest is None or (inv.due_date, inv.id) > (latest.due_date, latest.id):
            latest = inv

    total_count = sum(b[1] for b in buckets.values())
    paid_count = buckets["paid"][1]
    outstanding = total_count - paid_count

    if buckets["overdue"][1]:
        payment_status = "overdue"
    elif outstanding == 0:
        payment_status = "fully_paid"
    elif paid_count:
        payment_status = "partial_paid"
    else:
        payment_status = "not_paid"

    return {
        "payment_status": payment_status,
        "has_outstanding": outstanding > 0,
        "initial_payment_paid": initial_paid,
        "total_invoices": total_count,
        "total_amount": money(sum((b[0] for b in buckets.values()), Decimal("0"))),
        "paid_invoices": paid_count,
        "paid_amount": money(buckets["paid"][0]),
        "pending_invoices": buckets["pending"][1] + buckets["failed"][1],
        "pending_amount": money(buckets["pending"][0] + buckets["failed"][0]),
        "overdue_invoices": buckets["overdue"][1],
        "overdue_amount": money(buckets["overdue"][0]),
        "latest_invoice": {
            "invoice_id": latest.id,
            "invoice_type": latest.invoice_type,
            "amount": money(latest.amount),
            "due_date": latest.due_date.isoformat(),
            "status": effective_status(latest, today),
        } if latest is not None else None,
    }
