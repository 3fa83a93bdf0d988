# Overview: Flask API routes for fund transfers and opening balances.

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors, json_body
from ..errors import ValidationError
from ..services import fund_transfer_service


fund_transfers_bp = Blueprint("fund_transfers", __name__, url_prefix="/api/fund-transfers")


def _voucher(data: dict) -> dict:
    return {
        "voucher_type": data.get("voucher_type"),
        "voucher_number": data.get("voucher_number"),
        "voucher_date": data.get("voucher_date"),
    }


@fund_transfers_bp.post("")
@with_actor
@ledger_errors
def create_transfer():
    """
    Request body:
    {
        "sender_id": int,
        "receiver_id": int,
        "value": number (negative reverses direction),
        "asset_type": "CASH" | "GOLD"
    }
    """
    data = json_body()
    missing = [key for key in ("sender_id", "receiver_id", "value", "asset_type") if data.get(key) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", "MISSING_REQUIRED_FIELDS")
    transfer = fund_transfer_service.account_to_account_transfer(
        data["sender_id"],
        data["receiver_id"],
        data["value"],
        data["asset_type"],
        g.actor_id,
        _voucher(data),
    )
    return jsonify(transfer.to_dict()), 201


@fund_transfers_bp.post("/opening-balance")
@with_actor
@ledger_errors
def create_opening_balance():
    data = json_body()
    missing = [key for key in ("receiver_id", "value", "asset_type") if data.get(key) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", "MISSING_REQUIRED_FIELDS")
    transfer = fund_transfer_service.opening_balance(
        data["receiver_id"],
        data["value"],
        data["asset_type"],
        g.actor_id,
        _voucher(data),
        confirm=bool(data.get("confirm", False)),
    )
    return jsonify(transfer.to_dict()), 201


@fund_transfers_bp.get("")
@ledger_errors
def list_transfers():
    transfers = fund_transfer_service.list_fund_transfers(
        party_id=request.args.get("party_id", type=int),
        asset_type=request.args.get("asset_type"),
    )
    return jsonify({"fund_transfers": [t.to_dict() for t in transfers]}), 200


@fund_transfers_bp.get("/<int:transfer_id>")
@ledger_errors
def get_transfer(transfer_id: int):
    return jsonify(fund_transfer_service.get_fund_transfer(transfer_id).to_dict()), 200


@fund_transfers_bp.delete("/<int:transfer_id>")
@with_actor
@ledger_errors
def delete_transfer(transfer_id: int):
    return jsonify(fund_transfer_service.delete_fund_transfer(transfer_id, g.actor_id)), 200
