# Overview: Flask API routes for cash and metal receipt/payment entries.

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors, json_body
from ..services import entry_service


entries_bp = Blueprint("entries", __name__, url_prefix="/api/entries")


@entries_bp.post("")
@with_actor
@ledger_errors
def create_entry():
    entry = entry_service.create_entry(json_body(), g.actor_id)
    return jsonify(entry.to_dict()), 201


@entries_bp.get("")
@ledger_errors
def list_entries():
    entries = entry_service.list_entries(
        party_id=request.args.get("party_id", type=int),
        entry_type=request.args.get("type"),
    )
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@entries_bp.get("/<int:entry_id>")
@ledger_errors
def get_entry(entry_id: int):
    return jsonify(entry_service.get_entry(entry_id).to_dict()), 200


@entries_bp.delete("/<int:entry_id>")
@with_actor
@ledger_errors
def delete_entry(entry_id: int):
    return jsonify(entry_service.delete_entry(entry_id, g.actor_id)), 200
