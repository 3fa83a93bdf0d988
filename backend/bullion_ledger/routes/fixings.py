# Overview: Flask API routes for price fixings.

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors, json_body
from ..services import fixing_service


fixings_bp = Blueprint("fixings", __name__, url_prefix="/api/fixings")


@fixings_bp.post("")
@with_actor
@ledger_errors
def create_fixing():
    fixing = fixing_service.create_fixing(json_body(), g.actor_id)
    return jsonify(fixing.to_dict()), 201


@fixings_bp.get("")
@ledger_errors
def list_fixings():
    fixings = fixing_service.list_fixings(
        party_id=request.args.get("party_id", type=int),
        fixing_type=request.args.get("type"),
        status=request.args.get("status"),
    )
    return jsonify({"fixings": [f.to_dict() for f in fixings]}), 200


@fixings_bp.get("/<int:fixing_id>")
@ledger_errors
def get_fixing(fixing_id: int):
    return jsonify(fixing_service.get_fixing(fixing_id).to_dict()), 200


@fixings_bp.delete("/<int:fixing_id>")
@with_actor
@ledger_errors
def delete_fixing(fixing_id: int):
    return jsonify(fixing_service.delete_fixing(fixing_id, g.actor_id)), 200


@fixings_bp.put("/<int:fixing_id>")
@with_actor
@ledger_errors
def update_fixing(fixing_id: int):
    fixing = fixing_service.update_fixing(fixing_id, json_body(), g.actor_id)
    return jsonify(fixing.to_dict()), 200


@fixings_bp.post("/<int:fixing_id>/cancel")
@with_actor
@ledger_errors
def cancel_fixing(fixing_id: int):
    return jsonify(fixing_service.cancel_fixing(fixing_id, g.actor_id).to_dict()), 200


@fixings_bp.post("/<int:fixing_id>/restore")
@with_actor
@ledger_errors
def restore_fixing(fixing_id: int):
    return jsonify(fixing_service.restore_fixing(fixing_id, g.actor_id).to_dict()), 200
