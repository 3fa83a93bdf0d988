# Overview: Flask API routes for metal transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors, json_body
from ..errors import ValidationError
from ..services import metal_transaction_service
from ..services import registry_service
from ..time_utils import parse_iso_datetime


metal_transactions_bp = Blueprint("metal_transactions", __name__, url_prefix="/api/metal-transactions")


def _parse_date_arg(name: str):
    value = request.args.get(name)
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date", "INVALID_DATE") from None


@metal_transactions_bp.post("")
@with_actor
@ledger_errors
def create_metal_transaction():
    """
    Create a metal transaction.

    Returns:
        201: Transaction created with its registry postings
        400: Invalid payload
        404: Party or stock not found
        409: Duplicate voucher number
    """
    transaction = metal_transaction_service.create_metal_transaction(json_body(), g.actor_id)
    body = transaction.to_dict()
    body["registry_entries"] = [e.to_dict() for e in registry_service.get_entries_for_transaction(transaction.id)]
    return jsonify(body), 201


@metal_transactions_bp.post("/bulk")
@with_actor
@ledger_errors
def create_bulk_metal_transactions():
    data = request.get_json(silent=True)
    results = metal_transaction_service.create_bulk_metal_transactions(data, g.actor_id)
    status = 201 if all(r["success"] for r in results) else 207
    return jsonify({"results": results}), status


@metal_transactions_bp.get("")
@ledger_errors
def list_metal_transactions():
    party_id = request.args.get("party_id", type=int)
    transactions = metal_transaction_service.list_metal_transactions(
        transaction_type=request.args.get("transaction_type"),
        party_id=party_id,
        status=request.args.get("status"),
        from_date=_parse_date_arg("from_date"),
        to_date=_parse_date_arg("to_date"),
    )
    return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200


@metal_transactions_bp.get("/unfixed")
@ledger_errors
def list_unfixed_transactions():
    transactions = metal_transaction_service.get_unfixed_transactions(
        party_id=request.args.get("party_id", type=int),
        transaction_type=request.args.get("transaction_type"),
    )
    return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200


@metal_transactions_bp.get("/<int:transaction_id>")
@ledger_errors
def get_metal_transaction(transaction_id: int):
    transaction = metal_transaction_service.get_metal_transaction(transaction_id)
    return jsonify(transaction.to_dict()), 200


@metal_transactions_bp.get("/<int:transaction_id>/totals")
@ledger_errors
def get_transaction_totals(transaction_id: int):
    return jsonify(metal_transaction_service.get_transaction_totals(transaction_id)), 200


@metal_transactions_bp.put("/<int:transaction_id>")
@with_actor
@ledger_errors
def update_metal_transaction(transaction_id: int):
    transaction = metal_transaction_service.update_metal_transaction(transaction_id, json_body(), g.actor_id)
    return jsonify(transaction.to_dict()), 200


@metal_transactions_bp.delete("/<int:transaction_id>")
@with_actor
@ledger_errors
def delete_metal_transaction(transaction_id: int):
    soft = request.args.get("soft", "false").lower() in ("1", "true", "yes")
    result = metal_transaction_service.delete_metal_transaction(transaction_id, g.actor_id, soft=soft)
    return jsonify(result), 200


@metal_transactions_bp.post("/<int:transaction_id>/status")
@with_actor
@ledger_errors
def update_status(transaction_id: int):
    status = json_body().get("status")
    if not status:
        raise ValidationError("status is required", "MISSING_REQUIRED_FIELDS")
    transaction = metal_transaction_service.update_status(transaction_id, status, g.actor_id)
    return jsonify(transaction.to_dict()), 200


@metal_transactions_bp.post("/<int:transaction_id>/cancel")
@with_actor
@ledger_errors
def cancel_metal_transaction(transaction_id: int):
    transaction = metal_transaction_service.cancel_metal_transaction(transaction_id, g.actor_id)
    return jsonify(transaction.to_dict()), 200


@metal_transactions_bp.post("/<int:transaction_id>/stock-items")
@with_actor
@ledger_errors
def add_stock_item(transaction_id: int):
    transaction = metal_transaction_service.add_stock_item(transaction_id, json_body(), g.actor_id)
    return jsonify(transaction.to_dict()), 201


@metal_transactions_bp.put("/<int:transaction_id>/stock-items/<int:item_id>")
@with_actor
@ledger_errors
def update_stock_item(transaction_id: int, item_id: int):
    transaction = metal_transaction_service.update_stock_item(transaction_id, item_id, json_body(), g.actor_id)
    return jsonify(transaction.to_dict()), 200


@metal_transactions_bp.delete("/<int:transaction_id>/stock-items/<int:item_id>")
@with_actor
@ledger_errors
def remove_stock_item(transaction_id: int, item_id: int):
    transaction = metal_transaction_service.remove_stock_item(transaction_id, item_id, g.actor_id)
    return jsonify(transaction.to_dict()), 200
