# Overview: Read-only Flask API routes over registry postings.

from flask import Blueprint, request, jsonify

from ..decorators import ledger_errors
from ..errors import ValidationError
from ..services import registry_service


registry_bp = Blueprint("registry", __name__, url_prefix="/api/registry")


@registry_bp.get("/transactions/<int:transaction_id>")
@ledger_errors
def entries_for_transaction(transaction_id: int):
    entries = registry_service.get_entries_for_transaction(transaction_id)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@registry_bp.get("/parties/<int:party_id>")
@ledger_errors
def entries_for_party(party_id: int):
    entry_type = request.args.get("type")
    entries = registry_service.get_entries_by_party(party_id, entry_type)
    return jsonify({
        "entries": [e.to_dict() for e in entries],
        "summary": registry_service.get_registry_balance(party_id=party_id, entry_type=entry_type),
    }), 200


@registry_bp.get("/references/<path:reference>")
@ledger_errors
def entries_for_reference(reference: str):
    entries = registry_service.get_entries_by_reference(reference)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@registry_bp.get("/types/<entry_type>")
@ledger_errors
def entries_for_type(entry_type: str):
    entries = registry_service.get_entries_by_type(entry_type)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@registry_bp.get("/balance")
@ledger_errors
def registry_balance():
    party_id = request.args.get("party_id")
    if party_id is not None and not party_id.isdigit():
        raise ValidationError("party_id must be an integer", "INVALID_NUMBER")
    summary = registry_service.get_registry_balance(
        party_id=int(party_id) if party_id else None,
        entry_type=request.args.get("type"),
    )
    return jsonify(summary), 200
