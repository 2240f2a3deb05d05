from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..errors import NotFound, ValidationError
from ..models import Contract, Invoice
from ..serializers import invoice_to_dict
from ..services.common import reload
from ..services.contracts import ensure_contract_party
from ..services.invoices import build_manual_items, issue_invoice
from ..utils.authz import current_actor, ensure_landlord_of, require_any_role
from ..utils.validation import require_fields, parse_bool, parse_date, parse_int, parse_money

bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _optional_date(data, field):
    if not data.get(field):
        return None
    return parse_date(data[field], field)


def _meter(data, field):
    reading = data.get(field)
    if reading is None:
        return None
    if not isinstance(reading, dict):
        raise ValidationError("invalid_meter_reading", field=field)
    return {
        "start": parse_money(reading.get("start", 0), f"{field}.start"),
        "end": parse_money(reading.get("end", 0), f"{field}.end"),
        "unit_price": parse_money(reading.get("unit_price", 0), f"{field}.unit_price"),
    }


@bp.route("", methods=["POST"])
@require_any_role("landlord")
def create_invoice():
    data = require_fields(request.get_json(silent=True), ["contract_id", "invoice_type"])
    if "amount" in data:
        raise ValidationError("amount_not_accepted", "the amount is computed from the items")

    inv = issue_invoice(
        current_actor(),
        parse_int(data["contract_id"], "contract_id"),
        str(data["invoice_type"]),
        data.get("items") or [],
        due_date=_optional_date(data, "due_date"),
        note=data.get("note"),
    )
    return jsonify(invoice_to_dict(inv)), 201


@bp.route("/manual", methods=["POST"])
@require_any_role("landlord")
def create_manual_invoice():
    data = require_fields(request.get_json(silent=True), ["contract_id"])
    actor = current_actor()

    contract = reload(Contract, parse_int(data["contract_id"], "contract_id"))
    ensure_landlord_of(actor, contract.room)

    rent_override = data.get("rent_amount_override")
    items = build_manual_items(
        contract,
        include_rent=parse_bool(data.get("include_rent", True), "include_rent"),
        rent_override=parse_money(rent_override, "rent_amount_override") if rent_override is not None else None,
        electricity=_meter(data, "electricity"),
        water=_meter(data, "water"),
        other_items=data.get("other_items") or [],
    )

    inv = issue_invoice(
        actor,
        contract.id,
        str(data.get("invoice_type") or "monthly_rent"),
        items,
        due_date=_optional_date(data, "due_date"),
        note=data.get("note"),
    )
    return jsonify(invoice_to_dict(inv)), 201


@bp.route("/<int:invoice_id>", methods=["GET"])
@jwt_required()
def get_invoice(invoice_id):
    inv = db.session.get(Invoice, invoice_id)
    if inv is None:
        raise NotFound("invoice_not_found", id=invoice_id)
    ensure_contract_party(current_actor(), inv.contract)
    return jsonify(invoice_to_dict(inv))
