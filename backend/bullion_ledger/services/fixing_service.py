# Overview: Price fixing of a party's floating gold into cash, with registry postings.

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import FIXING_ACTIVE, FIXING_CANCELLED, FIXING_TYPES, FixingOrder, RegistryEntry, TransactionFixing
from ..validation import coerce_number, parse_voucher_date
from . import account_service, registry_service
from .balance_service import BalanceChanges, apply_balance_changes, reverse_balance_changes
from .concurrency import lock_for_update, run_atomic
from .posting_rules import CREDIT, DEBIT, PARTY_CASH_BALANCE, PARTY_GOLD_BALANCE, PURCHASE_FIXING, SALES_FIXING
from .sequence_service import next_base_id


def _parse_orders(raw) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("orders must be a non-empty list", "INVALID_ORDERS")
    precision = current_app.config.get("LEDGER_CASH_PRECISION", 2)
    orders = []
    for index, order in enumerate(raw):
        if not isinstance(order, dict):
            raise ValidationError(f"orders[{index}] must be an object", "INVALID_ORDERS")
        quantity = coerce_number(order.get("quantity_gm"), f"orders[{index}].quantity_gm", code="INVALID_ORDERS")
        price = coerce_number(order.get("price"), f"orders[{index}].price", code="INVALID_ORDERS")
        bid = coerce_number(order.get("gold_bid_value"), f"orders[{index}].gold_bid_value", code="INVALID_ORDERS")
        if quantity <= 0 or price <= 0 or bid <= 0:
            raise ValidationError(
                f"orders[{index}] requires positive quantity_gm, price and gold_bid_value",
                "INVALID_ORDERS",
            )
        orders.append({
            "quantity_gm": quantity,
            "price": price,
            "gold_bid_value": bid,
            "total_amount": round(quantity * price, precision),
        })
    return orders


def _order_changes(fixing_type: str, order: FixingOrder) -> BalanceChanges:
    """PURCHASE: party gold -qty, cash +total. SELL: the opposite."""
    sign = 1 if fixing_type == "PURCHASE" else -1
    return BalanceChanges(gold_balance=-sign * order.quantity_gm, cash_balance=sign * order.total_amount)


def _order_entries(fixing: TransactionFixing, order: FixingOrder, number: int, actor_id) -> list[RegistryEntry]:
    base_id = next_base_id()
    purchase = fixing.type == "PURCHASE"
    common = {
        "fixing_id": fixing.id,
        "reference": fixing.voucher_number,
        "transaction_date": fixing.voucher_date,
        "created_by": actor_id,
        "gold_bid_value": order.gold_bid_value,
    }
    gold_side, cash_side = (DEBIT, CREDIT) if purchase else (CREDIT, DEBIT)
    quantity = order.quantity_gm
    total = order.total_amount
    return [
        RegistryEntry(
            transaction_id=f"{base_id}-PARTY-GOLD-{number}",
            type=PARTY_GOLD_BALANCE,
            description=f"Party gold balance - {fixing.type.lower()} fixing",
            party_id=fixing.party_id,
            is_bullion=True,
            value=quantity,
            debit=quantity if gold_side == DEBIT else 0.0,
            credit=quantity if gold_side == CREDIT else 0.0,
            pure_weight=quantity,
            **common,
        ),
        RegistryEntry(
            transaction_id=f"{base_id}-PARTY-GOLD-FIX-{number}",
            type=PURCHASE_FIXING if purchase else SALES_FIXING,
            description="Purchase fixing" if purchase else "Sales fixing",
            party_id=fixing.party_id,
            is_bullion=True,
            # sales-fixing rows carry the quantity on the debit side only
            value=quantity if purchase else 0.0,
            debit=0.0 if purchase else quantity,
            credit=quantity if purchase else 0.0,
            pure_weight=quantity,
            **common,
        ),
        RegistryEntry(
            transaction_id=f"{base_id}-PARTY-CASH-{number}",
            type=PARTY_CASH_BALANCE,
            description=f"Party cash balance - {fixing.type.lower()} fixing",
            party_id=fixing.party_id,
            is_bullion=False,
            value=total,
            debit=total if cash_side == DEBIT else 0.0,
            credit=total if cash_side == CREDIT else 0.0,
            **common,
        ),
    ]


def _ensure_voucher_available(voucher_number, *, exclude_id: int | None = None) -> None:
    if not voucher_number:
        return
    query = db.session.query(TransactionFixing.id).filter(TransactionFixing.voucher_number == voucher_number)
    if exclude_id is not None:
        query = query.filter(TransactionFixing.id != exclude_id)
    if query.first():
        raise ConflictError(f"Voucher number {voucher_number} already exists", "DUPLICATE_VOUCHER")


def _post_orders(fixing: TransactionFixing, actor_id) -> int:
    """Write registry rows and apply party balance changes for every order."""
    entries = []
    for number, order in enumerate(fixing.orders, start=1):
        entries.extend(_order_entries(fixing, order, number, actor_id))
        apply_balance_changes(fixing.party_id, _order_changes(fixing.type, order), reason=f"fixing:{fixing.id}")
    registry_service.insert_entries(entries)
    return len(entries)


def _unpost_orders(fixing: TransactionFixing) -> int:
    for order in fixing.orders:
        reverse_balance_changes(
            fixing.party_id,
            _order_changes(fixing.type, order),
            reason=f"reverse_fixing:{fixing.id}",
        )
    return registry_service.delete_entries_for(fixing_id=fixing.id)


def create_fixing(payload: dict, actor_id: int | None) -> TransactionFixing:
    """
    Fix the price of one or more gold orders for a party.

    Payload: {party_id, type: PURCHASE|SELL, voucher_number, voucher_date, orders: [...]}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", "MISSING_REQUIRED_FIELDS")
    if payload.get("party_id") in (None, ""):
        raise ValidationError("party_id is required", "MISSING_REQUIRED_FIELDS")
    fixing_type = str(payload.get("type") or "").upper()
    if fixing_type not in FIXING_TYPES:
        raise ValidationError("type must be PURCHASE or SELL", "INVALID_TRANSACTION_TYPE")
    orders = _parse_orders(payload.get("orders"))
    voucher_number = payload.get("voucher_number")
    voucher_date = parse_voucher_date(payload.get("voucher_date"))

    def _op():
        party_id = account_service.resolve_party_id(payload["party_id"])
        account_service.get_active_party(party_id, lock=True)
        _ensure_voucher_available(voucher_number)

        fixing = TransactionFixing(
            party_id=party_id,
            type=fixing_type,
            voucher_type=payload.get("voucher_type"),
            voucher_number=voucher_number,
            voucher_date=voucher_date,
            created_by=actor_id,
        )
        for position, values in enumerate(orders):
            fixing.orders.append(FixingOrder(position=position, **values))
        db.session.add(fixing)
        db.session.flush()

        posted = _post_orders(fixing, actor_id)

        current_app.logger.info(
            "[CREATE_FIXING] id=%s type=%s party=%s orders=%s registry=%s",
            fixing.id,
            fixing_type,
            party_id,
            len(orders),
            posted,
        )
        return fixing

    return run_atomic("CREATE_FIXING", _op)


def _get_active_fixing(fixing_id: int, *, lock: bool = False) -> TransactionFixing:
    query = db.session.query(TransactionFixing).filter(
        TransactionFixing.id == fixing_id,
        TransactionFixing.is_active.is_(True),
    )
    if lock:
        query = lock_for_update(query)
    fixing = query.first()
    if not fixing:
        raise NotFoundError(f"Fixing {fixing_id} not found", "FIXING_NOT_FOUND")
    return fixing


def delete_fixing(fixing_id: int, actor_id: int | None) -> dict:
    """Reverse the party balance effect of every order and drop the postings."""

    def _op():
        fixing = _get_active_fixing(fixing_id, lock=True)
        deleted = _unpost_orders(fixing)
        db.session.delete(fixing)
        db.session.flush()

        current_app.logger.info(
            "[DELETE_FIXING] id=%s actor=%s registry_deleted=%s",
            fixing_id,
            actor_id,
            deleted,
        )
        return {"id": fixing_id, "deleted": True, "registry_entries_deleted": deleted}

    return run_atomic("DELETE_FIXING", _op)


def update_fixing(fixing_id: int, payload: dict, actor_id: int | None) -> TransactionFixing:
    """
    Edit a fixing and repost it.

    Every field is optional. The stored orders are reversed and their postings
    dropped, then the fixing (with replaced orders when given) is posted again.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", "MISSING_REQUIRED_FIELDS")
    fixing_type = None
    if payload.get("type") is not None:
        fixing_type = str(payload["type"]).upper()
        if fixing_type not in FIXING_TYPES:
            raise ValidationError("type must be PURCHASE or SELL", "INVALID_TRANSACTION_TYPE")
    orders = _parse_orders(payload["orders"]) if "orders" in payload else None
    voucher_date = parse_voucher_date(payload["voucher_date"]) if payload.get("voucher_date") else None

    def _op():
        fixing = _get_active_fixing(fixing_id, lock=True)
        if fixing.status == FIXING_CANCELLED:
            raise ConflictError(f"Fixing {fixing_id} is cancelled", "FIXING_CANCELLED")

        party_id = fixing.party_id
        if payload.get("party_id") not in (None, ""):
            party_id = account_service.resolve_party_id(payload["party_id"])
            account_service.get_active_party(party_id, lock=True)
        if "voucher_number" in payload:
            _ensure_voucher_available(payload["voucher_number"], exclude_id=fixing.id)

        removed = _unpost_orders(fixing)

        fixing.party_id = party_id
        if fixing_type:
            fixing.type = fixing_type
        if "voucher_number" in payload:
            fixing.voucher_number = payload["voucher_number"]
        if "voucher_type" in payload:
            fixing.voucher_type = payload["voucher_type"]
        if voucher_date is not None:
            fixing.voucher_date = voucher_date
        if orders is not None:
            fixing.orders.clear()
            for position, values in enumerate(orders):
                fixing.orders.append(FixingOrder(position=position, **values))
        fixing.updated_by = actor_id
        db.session.flush()

        posted = _post_orders(fixing, actor_id)

        current_app.logger.info(
            "[UPDATE_FIXING] id=%s type=%s party=%s orders=%s registry_deleted=%s registry=%s",
            fixing.id,
            fixing.type,
            fixing.party_id,
            len(fixing.orders),
            removed,
            posted,
        )
        return fixing

    return run_atomic("UPDATE_FIXING", _op)


def _set_fixing_status(fixing_id: int, status: str, actor_id: int | None) -> TransactionFixing:
    """Status flip only; orders, postings and balances stay as they are."""

    def _op():
        fixing = _get_active_fixing(fixing_id, lock=True)
        if fixing.status == status:
            raise ValidationError(
                f"Fixing {fixing_id} is already {status}",
                "INVALID_STATUS_TRANSITION",
                {"from": fixing.status, "to": status},
            )
        previous = fixing.status
        fixing.status = status
        fixing.updated_by = actor_id
        db.session.flush()
        current_app.logger.info(
            "[STATUS_FIXING] id=%s %s->%s actor=%s",
            fixing.id,
            previous,
            status,
            actor_id,
        )
        return fixing

    return run_atomic("STATUS_FIXING", _op)


def cancel_fixing(fixing_id: int, actor_id: int | None) -> TransactionFixing:
    return _set_fixing_status(fixing_id, FIXING_CANCELLED, actor_id)


def restore_fixing(fixing_id: int, actor_id: int | None) -> TransactionFixing:
    return _set_fixing_status(fixing_id, FIXING_ACTIVE, actor_id)


def get_fixing(fixing_id: int) -> TransactionFixing:
    return _get_active_fixing(fixing_id)


def list_fixings(
    *,
    party_id: int | None = None,
    fixing_type: str | None = None,
    status: str | None = None,
) -> list[TransactionFixing]:
    query = db.session.query(TransactionFixing).filter(TransactionFixing.is_active.is_(True))
    if party_id:
        query = query.filter(TransactionFixing.party_id == party_id)
    if fixing_type:
        query = query.filter(TransactionFixing.type == fixing_type.upper())
    if status:
        query = query.filter(TransactionFixing.status == status.lower())
    return query.order_by(TransactionFixing.id.desc()).all()
