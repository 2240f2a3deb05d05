from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from ..extensions import db
from ..errors import NotFound
from ..models import Contract, Invoice
from ..serializers import contract_to_dict, invoice_to_dict, post_to_dict
from ..services.contracts import DEPOSIT_FORFEIT_NOTICE, ensure_contract_party, terminate_contract
from ..services.invoices import contract_payment_status
from ..utils.authz import current_actor

bp = Blueprint("contracts", __name__, url_prefix="/api/contracts")


def _contract_for_actor(contract_id):
    contract = db.session.get(Contract, contract_id)
    if contract is None:
        raise NotFound("contract_not_found", id=contract_id)
    ensure_contract_party(current_actor(), contract)
    return contract


def _contract_invoices(contract):
    return (
        db.session.query(Invoice)
        .filter(Invoice.contract_id == contract.id)
        .order_by(Invoice.due_date.asc(), Invoice.id.asc())
        .all()
    )


@bp.route("/<int:contract_id>", methods=["GET"])
@jwt_required()
def get_contract(contract_id):
    contract = _contract_for_actor(contract_id)
    return jsonify(contract_to_dict(contract))


@bp.route("/<int:contract_id>/terminate", methods=["PUT"])
@jwt_required()
def terminate(contract_id):
    data = request.get_json(silent=True) or {}
    contract, reconciled = terminate_contract(current_actor(), contract_id, reason=data.get("reason"))

    reactivated = [p for p in reconciled if p.status == "active"]
    return jsonify({
        "message": "contract terminated",
        "deposit_policy": DEPOSIT_FORFEIT_NOTICE,
        "contract": contract_to_dict(contract),
        "affected_posts": {
            "count": len(reactivated),
            "items": [post_to_dict(p) for p in reactivated],
        },
    }), 200


@bp.route("/<int:contract_id>/payment-status", methods=["GET"])
@jwt_required()
def payment_status(contract_id):
    contract = _contract_for_actor(contract_id)
    status = contract_payment_status(_contract_invoices(contract))
    return jsonify({"contract_id": contract.id, **status})


@bp.route("/<int:contract_id>/invoices", methods=["GET"])
@jwt_required()
def list_contract_invoices(contract_id):
    contract = _contract_for_actor(contract_id)
    return jsonify({
        "contract_id": contract.id,
        "items": [invoice_to_dict(i) for i in _contract_invoices(contract)],
    })
