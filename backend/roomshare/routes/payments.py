from flask import Blueprint, request, jsonify

from ..serializers import invoice_to_dict
from ..services.invoices import apply_payment_result, verify_callback
from ..utils.validation import require_fields, parse_int

bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@bp.post("/callback")
def payment_callback():
    data = require_fields(request.get_json(silent=True), ["invoice_id", "status", "signature"])

    invoice_id = parse_int(data["invoice_id"], "invoice_id")
    status = str(data["status"]).strip().lower()
    reference = data.get("reference")

    verify_callback(invoice_id, status, reference, data["signature"])
    inv, changed = apply_payment_result(invoice_id, status, reference=reference)

    return jsonify({"invoice": invoice_to_dict(inv), "changed": changed}), 200
