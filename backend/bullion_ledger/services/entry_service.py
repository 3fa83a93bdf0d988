# Overview: Cash and metal receipt/payment vouchers and their registry postings.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import ENTRY_TYPES, Entry, EntryLine, MetalStock, RegistryEntry
from ..validation import coerce_number, parse_voucher_date
from . import account_service, registry_service
from .balance_service import BalanceChanges, apply_balance_changes, reverse_balance_changes
from .concurrency import lock_for_update, run_atomic
from .posting_rules import CREDIT, DEBIT, GOLD, PARTY_CASH_BALANCE
from .sequence_service import next_base_id


CASH = "CASH"
STOCK_BALANCE = "STOCK_BALANCE"

CASH_RECEIPT = "cash receipt"
CASH_PAYMENT = "cash payment"
METAL_RECEIPT = "metal-receipt"
METAL_PAYMENT = "metal-payment"

# (party-side type, party-side side, house-side type, house-side side)
ENTRY_POSTINGS = {
    CASH_RECEIPT: (PARTY_CASH_BALANCE, CREDIT, CASH, DEBIT),
    CASH_PAYMENT: (PARTY_CASH_BALANCE, DEBIT, CASH, CREDIT),
    METAL_RECEIPT: (STOCK_BALANCE, CREDIT, GOLD, DEBIT),
    METAL_PAYMENT: (STOCK_BALANCE, DEBIT, GOLD, CREDIT),
}


def _is_cash(entry_type: str) -> bool:
    return entry_type in (CASH_RECEIPT, CASH_PAYMENT)


def _parse_lines(entry_type: str, raw) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("lines must be a non-empty list", "MISSING_REQUIRED_FIELDS")
    lines = []
    for index, line in enumerate(raw):
        if not isinstance(line, dict):
            raise ValidationError(f"lines[{index}] must be an object", "INVALID_NUMBER")
        if _is_cash(entry_type):
            amount = abs(coerce_number(line.get("amount"), f"lines[{index}].amount"))
            amount = round(amount, current_app.config.get("LEDGER_CASH_PRECISION", 2))
            if not amount:
                raise ValidationError(f"lines[{index}].amount must be non-zero", "INVALID_VALUE")
            lines.append({"amount": amount, "remarks": line.get("remarks")})
        else:
            weight = coerce_number(line.get("purity_weight"), f"lines[{index}].purity_weight")
            if weight <= 0:
                raise ValidationError(f"lines[{index}].purity_weight must be positive", "INVALID_VALUE")
            if line.get("stock_id") in (None, ""):
                raise ValidationError(f"lines[{index}].stock_id is required", "MISSING_REQUIRED_FIELDS")
            try:
                stock_id = int(line["stock_id"])
            except (TypeError, ValueError):
                raise ValidationError(f"lines[{index}].stock_id must be a stock id", "INVALID_NUMBER") from None
            lines.append({
                "stock_id": stock_id,
                "purity_weight": weight,
                "remarks": line.get("remarks"),
            })
    return lines


def _cash_changes(entry: Entry) -> BalanceChanges:
    """Cash receipt raises the party's cash balance, cash payment lowers it."""
    if entry.type == CASH_RECEIPT:
        return BalanceChanges(cash_balance=entry.total_amount)
    if entry.type == CASH_PAYMENT:
        return BalanceChanges(cash_balance=-entry.total_amount)
    return BalanceChanges()


def _line_entries(entry: Entry, line: EntryLine, base_id: str, actor_id) -> list[RegistryEntry]:
    party_type, party_side, house_type, house_side = ENTRY_POSTINGS[entry.type]
    cash = _is_cash(entry.type)
    magnitude = line.amount if cash else line.purity_weight
    rows = []
    for suffix, entry_type, side, party_id in (
        ("001", party_type, party_side, entry.party_id),
        ("002", house_type, house_side, None),
    ):
        rows.append(RegistryEntry(
            transaction_id=f"{base_id}-{suffix}",
            entry_id=entry.id,
            type=entry_type,
            description=line.remarks or entry.remarks or entry.type,
            party_id=party_id,
            is_bullion=not cash,
            value=magnitude,
            debit=magnitude if side == DEBIT else 0.0,
            credit=magnitude if side == CREDIT else 0.0,
            pure_weight=None if cash else line.purity_weight,
            reference=entry.voucher_code,
            transaction_date=entry.voucher_date,
            created_by=actor_id,
        ))
    return rows


def create_entry(payload: dict, actor_id: int | None) -> Entry:
    """
    Post a cash or metal receipt/payment.

    Cash entries move the party's cash balance; metal entries only post
    stock movements to the registry.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", "MISSING_REQUIRED_FIELDS")
    entry_type = payload.get("type")
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"type must be one of {', '.join(ENTRY_TYPES)}", "INVALID_ENTRY_TYPE")
    if _is_cash(entry_type) and payload.get("party_id") in (None, ""):
        raise ValidationError("party_id is required for cash entries", "MISSING_REQUIRED_FIELDS")
    lines = _parse_lines(entry_type, payload.get("lines"))
    voucher_date = parse_voucher_date(payload.get("voucher_date"))

    def _op():
        party_id = None
        if payload.get("party_id") not in (None, ""):
            party_id = account_service.resolve_party_id(payload["party_id"])
            account_service.get_active_party(party_id, lock=True)
        for line in lines:
            if "stock_id" in line and not db.session.get(MetalStock, line["stock_id"]):
                raise NotFoundError(f"Stock {line['stock_id']} not found", "STOCK_NOT_FOUND")

        entry = Entry(
            type=entry_type,
            voucher_code=payload.get("voucher_code"),
            voucher_date=voucher_date,
            party_id=party_id,
            remarks=payload.get("remarks"),
            total_amount=sum(line.get("amount", 0.0) for line in lines),
            created_by=actor_id,
        )
        for position, values in enumerate(lines):
            entry.lines.append(EntryLine(position=position, **values))
        db.session.add(entry)
        db.session.flush()

        postings = []
        for line in entry.lines:
            postings.extend(_line_entries(entry, line, next_base_id(), actor_id))
        registry_service.insert_entries(postings)

        changes = _cash_changes(entry)
        if party_id is not None and changes.cash_balance:
            apply_balance_changes(party_id, changes, reason=f"entry:{entry.id}")

        current_app.logger.info(
            "[CREATE_ENTRY] id=%s type=%s party=%s lines=%s registry=%s",
            entry.id,
            entry_type,
            party_id,
            len(lines),
            len(postings),
        )
        return entry

    return run_atomic("CREATE_ENTRY", _op)


def get_entry(entry_id: int) -> Entry:
    entry = db.session.get(Entry, entry_id)
    if not entry:
        raise NotFoundError(f"Entry {entry_id} not found", "ENTRY_NOT_FOUND")
    return entry


def delete_entry(entry_id: int, actor_id: int | None) -> dict:

    def _op():
        entry = lock_for_update(db.session.query(Entry).filter_by(id=entry_id)).first()
        if not entry:
            raise NotFoundError(f"Entry {entry_id} not found", "ENTRY_NOT_FOUND")
        changes = _cash_changes(entry)
        if entry.party_id is not None and changes.cash_balance:
            reverse_balance_changes(entry.party_id, changes, reason=f"reverse_entry:{entry.id}")
        deleted = registry_service.delete_entries_for(entry_id=entry.id)
        db.session.delete(entry)
        db.session.flush()

        current_app.logger.info(
            "[DELETE_ENTRY] id=%s actor=%s registry_deleted=%s",
            entry_id,
            actor_id,
            deleted,
        )
        return {"id": entry_id, "deleted": True, "registry_entries_deleted": deleted}

    return run_atomic("DELETE_ENTRY", _op)


def list_entries(*, party_id: int | None = None, entry_type: str | None = None) -> list[Entry]:
    query = db.session.query(Entry)
    if party_id:
        query = query.filter(Entry.party_id == party_id)
    if entry_type:
        query = query.filter(Entry.type == entry_type)
    return query.order_by(Entry.id.desc()).all()
