# Overview: Party-to-party fund transfers and opening balances, posted to the registry.

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import ASSET_TYPES, Account, FundTransfer, RegistryEntry
from ..validation import coerce_number, parse_voucher_date
from . import account_service, registry_service
from .balance_service import BalanceChanges, apply_balance_changes
from .concurrency import lock_for_update, run_atomic
from .posting_rules import PARTY_CASH_BALANCE, PARTY_GOLD_BALANCE
from .sequence_service import next_base_id


OPENING_CASH_BALANCE = "OPENING_CASH_BALANCE"
OPENING_GOLD_BALANCE = "OPENING_GOLD_BALANCE"


def _parse_asset_type(asset_type) -> str:
    asset_type = str(asset_type or "").upper()
    if asset_type not in ASSET_TYPES:
        raise ValidationError("asset_type must be CASH or GOLD", "INVALID_ASSET_TYPE")
    return asset_type


def _parse_value(value, asset_type: str) -> float:
    """Cash values are rounded to the ledger cash precision so postings match the balance."""
    number = coerce_number(value, "value", code="INVALID_VALUE", default=None)
    if number is not None and asset_type == "CASH":
        number = round(number, current_app.config.get("LEDGER_CASH_PRECISION", 2))
    if not number:
        raise ValidationError("value must be a non-zero number", "INVALID_VALUE")
    return number


def _changes(asset_type: str, delta: float) -> BalanceChanges:
    if asset_type == "GOLD":
        return BalanceChanges(gold_balance=delta)
    return BalanceChanges(cash_balance=delta)


def _current_balance(account: Account, asset_type: str) -> float:
    return account.gold_total_grams if asset_type == "GOLD" else account.cash_amount


def _party_type(asset_type: str) -> str:
    return PARTY_GOLD_BALANCE if asset_type == "GOLD" else PARTY_CASH_BALANCE


def _locked_parties(*party_ids: int) -> dict[int, Account]:
    """Lock party rows in id order so two transfers never wait on each other crosswise."""
    parties = {}
    for party_id in sorted(set(party_ids)):
        parties[party_id] = account_service.get_active_party(party_id, lock=True)
    return parties


def account_to_account_transfer(
    sender_id: int,
    receiver_id: int,
    value,
    asset_type: str,
    actor_id: int | None,
    voucher: dict | None = None,
) -> FundTransfer:
    """
    Move cash or gold between two parties.

    A negative value reverses the direction: the receiver pays the sender.
    The paying party is debited |value|, the receiving party credited |value|.
    """
    asset_type = _parse_asset_type(asset_type)
    value = _parse_value(value, asset_type)
    if sender_id == receiver_id:
        raise ValidationError("Sender and receiver must be different parties", "INVALID_PARTY")
    voucher = voucher or {}
    voucher_date = parse_voucher_date(voucher.get("voucher_date"))

    payer_id, payee_id = (sender_id, receiver_id) if value > 0 else (receiver_id, sender_id)
    amount = abs(value)

    def _op():
        parties = _locked_parties(payer_id, payee_id)
        payer_before = _current_balance(parties[payer_id], asset_type)
        payee_before = _current_balance(parties[payee_id], asset_type)

        transfer = FundTransfer(
            sender_id=payer_id,
            receiver_id=payee_id,
            asset_type=asset_type,
            value=amount,
            is_opening_balance=False,
            voucher_type=voucher.get("voucher_type"),
            voucher_number=voucher.get("voucher_number"),
            voucher_date=voucher_date,
            created_by=actor_id,
        )
        db.session.add(transfer)
        db.session.flush()

        apply_balance_changes(payer_id, _changes(asset_type, -amount), reason=f"fund_transfer:{transfer.id}")
        apply_balance_changes(payee_id, _changes(asset_type, amount), reason=f"fund_transfer:{transfer.id}")

        base_id = next_base_id()
        entry_type = _party_type(asset_type)
        registry_service.insert_entries([
            RegistryEntry(
                transaction_id=f"{base_id}-001",
                fund_transfer_id=transfer.id,
                type=entry_type,
                description="Fund transfer out",
                party_id=payer_id,
                is_bullion=asset_type == "GOLD",
                value=amount,
                debit=amount,
                credit=0.0,
                previous_balance=payer_before,
                running_balance=payer_before - amount,
                reference=transfer.voucher_number,
                transaction_date=voucher_date,
                created_by=actor_id,
            ),
            RegistryEntry(
                transaction_id=f"{base_id}-002",
                fund_transfer_id=transfer.id,
                type=entry_type,
                description="Fund transfer in",
                party_id=payee_id,
                is_bullion=asset_type == "GOLD",
                value=amount,
                debit=0.0,
                credit=amount,
                previous_balance=payee_before,
                running_balance=payee_before + amount,
                reference=transfer.voucher_number,
                transaction_date=voucher_date,
                created_by=actor_id,
            ),
        ])

        current_app.logger.info(
            "[FUND_TRANSFER] id=%s asset=%s from=%s to=%s amount=%s",
            transfer.id,
            asset_type,
            payer_id,
            payee_id,
            amount,
        )
        return transfer

    return run_atomic("FUND_TRANSFER", _op)


def _existing_opening(receiver_id: int, asset_type: str) -> FundTransfer | None:
    return (
        db.session.query(FundTransfer)
        .filter(
            FundTransfer.receiver_id == receiver_id,
            FundTransfer.asset_type == asset_type,
            FundTransfer.is_opening_balance.is_(True),
        )
        .first()
    )


def _remove_transfer(transfer: FundTransfer) -> int:
    """Reverse a transfer's balance effect and delete it with its postings."""
    reason = f"reverse_fund_transfer:{transfer.id}"
    if transfer.is_opening_balance:
        apply_balance_changes(transfer.receiver_id, _changes(transfer.asset_type, -transfer.value), reason=reason)
    else:
        apply_balance_changes(transfer.sender_id, _changes(transfer.asset_type, transfer.value), reason=reason)
        apply_balance_changes(transfer.receiver_id, _changes(transfer.asset_type, -transfer.value), reason=reason)
    deleted = registry_service.delete_entries_for(fund_transfer_id=transfer.id)
    db.session.delete(transfer)
    db.session.flush()
    return deleted


def opening_balance(
    receiver_id: int,
    value,
    asset_type: str,
    actor_id: int | None,
    voucher: dict | None = None,
    *,
    confirm: bool = False,
) -> FundTransfer:
    """
    Post a party's opening cash or gold balance.

    value > 0 credits the party, value < 0 debits it. If an opening balance
    already exists for the party and asset, ``confirm`` must be set: the old
    one is reversed and its postings deleted before the new one is posted.
    """
    asset_type = _parse_asset_type(asset_type)
    value = _parse_value(value, asset_type)
    voucher = voucher or {}
    voucher_date = parse_voucher_date(voucher.get("voucher_date"))

    def _op():
        party = _locked_parties(receiver_id)[receiver_id]
        existing = _existing_opening(receiver_id, asset_type)
        if existing and not confirm:
            raise ConflictError(
                f"Opening {asset_type.lower()} balance already exists for party {receiver_id}",
                "OPENING_BALANCE_EXISTS",
                {"fund_transfer_id": existing.id, "value": existing.value},
            )
        if existing:
            _remove_transfer(existing)
            db.session.refresh(party)

        before = _current_balance(party, asset_type)
        transfer = FundTransfer(
            sender_id=None,
            receiver_id=receiver_id,
            asset_type=asset_type,
            value=value,
            is_opening_balance=True,
            voucher_type=voucher.get("voucher_type"),
            voucher_number=voucher.get("voucher_number"),
            voucher_date=voucher_date,
            created_by=actor_id,
        )
        db.session.add(transfer)
        db.session.flush()

        apply_balance_changes(receiver_id, _changes(asset_type, value), reason=f"opening_balance:{transfer.id}")

        amount = abs(value)
        party_side_credit = value > 0
        base_id = next_base_id()
        registry_service.insert_entries([
            RegistryEntry(
                transaction_id=f"{base_id}-001",
                fund_transfer_id=transfer.id,
                type=_party_type(asset_type),
                description="Opening balance",
                party_id=receiver_id,
                is_bullion=asset_type == "GOLD",
                value=amount,
                debit=0.0 if party_side_credit else amount,
                credit=amount if party_side_credit else 0.0,
                previous_balance=before,
                running_balance=before + value,
                reference=transfer.voucher_number,
                transaction_date=voucher_date,
                created_by=actor_id,
            ),
            RegistryEntry(
                transaction_id=f"{base_id}-002",
                fund_transfer_id=transfer.id,
                type=OPENING_GOLD_BALANCE if asset_type == "GOLD" else OPENING_CASH_BALANCE,
                description="Opening balance contra",
                party_id=None,
                is_bullion=asset_type == "GOLD",
                value=amount,
                debit=amount if party_side_credit else 0.0,
                credit=0.0 if party_side_credit else amount,
                reference=transfer.voucher_number,
                transaction_date=voucher_date,
                created_by=actor_id,
            ),
        ])

        current_app.logger.info(
            "[OPENING_BALANCE] id=%s party=%s asset=%s value=%s replaced=%s",
            transfer.id,
            receiver_id,
            asset_type,
            value,
            existing.id if existing else None,
        )
        return transfer

    return run_atomic("OPENING_BALANCE", _op)


def get_fund_transfer(transfer_id: int) -> FundTransfer:
    transfer = db.session.get(FundTransfer, transfer_id)
    if not transfer:
        raise NotFoundError(f"Fund transfer {transfer_id} not found", "FUND_TRANSFER_NOT_FOUND")
    return transfer


def delete_fund_transfer(transfer_id: int, actor_id: int | None) -> dict:

    def _op():
        transfer = lock_for_update(db.session.query(FundTransfer).filter_by(id=transfer_id)).first()
        if not transfer:
            raise NotFoundError(f"Fund transfer {transfer_id} not found", "FUND_TRANSFER_NOT_FOUND")
        deleted = _remove_transfer(transfer)
        current_app.logger.info(
            "[DELETE_FUND_TRANSFER] id=%s actor=%s registry_deleted=%s",
            transfer_id,
            actor_id,
            deleted,
        )
        return {"id": transfer_id, "deleted": True, "registry_entries_deleted": deleted}

    return run_atomic("DELETE_FUND_TRANSFER", _op)


def list_fund_transfers(*, party_id: int | None = None, asset_type: str | None = None) -> list[FundTransfer]:
    query = db.session.query(FundTransfer)
    if party_id:
        query = query.filter((FundTransfer.sender_id == party_id) | (FundTransfer.receiver_id == party_id))
    if asset_type:
        query = query.filter(FundTransfer.asset_type == asset_type.upper())
    return query.order_by(FundTransfer.id.desc()).all()
