# Overview: Flask API routes for party accounts and their balance summaries.

from flask import Blueprint, jsonify

from ..decorators import with_actor, ledger_errors, json_body
from ..services import account_service, metal_transaction_service
from ..services.concurrency import run_atomic


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.post("")
@with_actor
@ledger_errors
def create_account():
    data = json_body()
    account = run_atomic(
        "CREATE_ACCOUNT",
        lambda: account_service.create_account(data.get("code"), data.get("name")),
    )
    return jsonify(account.to_dict()), 201


@accounts_bp.get("")
@ledger_errors
def list_accounts():
    return jsonify({"accounts": [a.to_dict() for a in account_service.list_accounts()]}), 200


@accounts_bp.get("/<int:account_id>")
@ledger_errors
def get_account(account_id: int):
    return jsonify(account_service.get_account(account_id).to_dict()), 200


@accounts_bp.get("/<int:account_id>/summary")
@ledger_errors
def get_balance_summary(account_id: int):
    return jsonify(metal_transaction_service.get_party_balance_summary(account_id)), 200


@accounts_bp.post("/<int:account_id>/deactivate")
@with_actor
@ledger_errors
def deactivate_account(account_id: int):
    account = run_atomic("DEACTIVATE_ACCOUNT", lambda: account_service.deactivate_account(account_id))
    return jsonify(account.to_dict()), 200
