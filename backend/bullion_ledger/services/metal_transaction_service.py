# backend/bullion_ledger/services/metal_transaction_service.py
"""
Metal transaction lifecycle: create, update, delete and status changes.

Every public write is one atomic unit (transaction row + registry postings
+ party balances + inventory). Update and delete first reverse what the
transaction previously posted, using a snapshot of its stored state, and
only then apply the new state.

LIFECYCLE:
1. draft: created
2. confirmed: accepted by the counterparty
3. completed: settled (terminal)
4. cancelled: status only, postings and balances stay (terminal)
"""
from __future__ import annotations

from dataclasses import dataclass, fields

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, InvariantViolationError, LedgerError, NotFoundError, ValidationError
from ..extensions import db
from ..models import MetalStock, MetalTransaction, StockItem
from ..validation import parse_stock_item, validate_create_payload, validate_update_payload
from . import account_service, inventory_service, registry_service
from .balance_service import apply_balance_changes, calculate_balance_changes, reverse_balance_changes
from .concurrency import lock_for_update, run_atomic
from .posting_rules import build_registry_entries
from .sequence_service import next_base_id
from .totals_service import (
    LineItem,
    calculate_session_totals,
    calculate_totals,
    get_premium_discount_breakdown,
    get_transaction_mode,
)


STATUS_DRAFT = "draft"
STATUS_CONFIRMED = "confirmed"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

STATUS_TRANSITIONS = {
    STATUS_DRAFT: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: set(),
    STATUS_CANCELLED: set(),
}

ITEM_COLUMNS = (
    "stock_id",
    "description",
    "pieces",
    "gross_weight",
    "purity",
    "pure_weight",
    "weight_in_oz",
    "metal_rate",
    "metal_rate_amount",
    "making_charges_amount",
    "making_charges_rate",
    "vat_percentage",
    "vat_amount",
    "other_charges_amount",
    "other_charges_rate",
    "other_charges_description",
    "premium_amount",
    "premium_rate",
    "base_amount",
    "making_charges_total",
    "premium_total",
    "sub_total",
    "item_vat_amount",
    "item_total_amount",
)


LINE_ITEM_FIELDS = tuple(field.name for field in fields(LineItem))


@dataclass(frozen=True)
class PostedState:
    """What a transaction posted last time; everything reversal needs."""
    transaction_type: str
    mode: str
    party_id: int
    voucher_number: str | None
    voucher_date: object
    total_amount: float
    items: tuple[LineItem, ...]

    @classmethod
    def of(cls, transaction: MetalTransaction) -> "PostedState":
        return cls(
            transaction_type=transaction.transaction_type,
            mode=get_transaction_mode(transaction.fixed, transaction.unfix),
            party_id=transaction.party_id,
            voucher_number=transaction.voucher_number,
            voucher_date=transaction.voucher_date,
            total_amount=transaction.total_amount or 0.0,
            items=tuple(LineItem.from_stock_item(item) for item in transaction.stock_items),
        )

    def balance_changes(self):
        totals = calculate_totals(self.items, self.total_amount)
        return calculate_balance_changes(self.transaction_type, self.mode, totals)


# =============================================================================
# Internal steps (run inside an open unit of work)
# =============================================================================

def _get_active_transaction(transaction_id: int, *, lock: bool = False) -> MetalTransaction:
    query = db.session.query(MetalTransaction).filter(
        MetalTransaction.id == transaction_id,
        MetalTransaction.is_active.is_(True),
    )
    if lock:
        query = lock_for_update(query)
    transaction = query.first()
    if not transaction:
        raise NotFoundError(f"Metal transaction {transaction_id} not found", "TRANSACTION_NOT_FOUND")
    return transaction


def _ensure_voucher_available(voucher_number: str | None, *, exclude_id: int | None = None) -> None:
    if not voucher_number:
        return
    query = db.session.query(MetalTransaction.id).filter(MetalTransaction.voucher_number == voucher_number)
    if exclude_id is not None:
        query = query.filter(MetalTransaction.id != exclude_id)
    if query.first():
        raise ConflictError(f"Voucher number {voucher_number} already exists", "DUPLICATE_VOUCHER")


def _resolve_stocks(items: list[dict]) -> None:
    """Turn stockCode references into stock ids, then check every id exists."""
    codes = {item["stock_code"] for item in items if item.get("stock_code") is not None}
    if codes:
        by_code = {
            row.code: row.id
            for row in db.session.query(MetalStock.id, MetalStock.code).filter(MetalStock.code.in_(codes)).all()
        }
        unknown = sorted(codes - set(by_code))
        if unknown:
            raise NotFoundError(
                f"Stock code(s) not found: {', '.join(unknown)}",
                "STOCK_NOT_FOUND",
                {"stock_codes": unknown},
            )
        for item in items:
            code = item.pop("stock_code", None)
            if code is not None:
                item["stock_id"] = by_code[code]

    stock_ids = {item["stock_id"] for item in items}
    found = {
        row.id
        for row in db.session.query(MetalStock.id).filter(MetalStock.id.in_(stock_ids)).all()
    }
    missing = sorted(stock_ids - found)
    if missing:
        raise NotFoundError(
            f"Stock item(s) not found: {', '.join(str(m) for m in missing)}",
            "STOCK_NOT_FOUND",
            {"stock_ids": missing},
        )


def _resolve_active_party(party_ref) -> int:
    party_id = account_service.resolve_party_code(party_ref)
    account_service.get_active_party(party_id, lock=True)
    return party_id


def _item_columns(item: StockItem) -> dict:
    return {column: getattr(item, column) for column in ITEM_COLUMNS}


def _replace_items(transaction: MetalTransaction, items: list[dict]) -> None:
    transaction.stock_items.clear()
    db.session.flush()
    for position, values in enumerate(items):
        transaction.stock_items.append(StockItem(position=position, **values))


def _apply_session_totals(transaction: MetalTransaction, session: dict | None, items: list[dict]) -> None:
    if session is None or session.get("totalAmountAED") is None:
        vat_percentage = (session or {}).get("vatPercentage", transaction.vat_percentage or 0.0)
        session = calculate_session_totals([_line_item(item) for item in items], vat_percentage)
    transaction.total_amount = session["totalAmountAED"]
    transaction.net_amount = session.get("netAmountAED", 0.0)
    transaction.vat_amount = session.get("vatAmount", 0.0)
    transaction.vat_percentage = session.get("vatPercentage", 0.0)


def _line_item(values: dict) -> LineItem:
    return LineItem(**{name: values[name] for name in LINE_ITEM_FIELDS if name in values})


def _post(transaction: MetalTransaction, actor_id: int | None) -> dict:
    """Postings, balances and inventory for the transaction's current state."""
    db.session.flush()
    entries = build_registry_entries(transaction, actor_id, next_base_id=next_base_id)
    registry_service.insert_entries(entries)

    state = PostedState.of(transaction)
    changes = state.balance_changes()
    apply_balance_changes(transaction.party_id, changes, reason=f"metal_transaction:{transaction.id}")

    inventory_service.update_inventory_for_transaction(transaction, actor_id)
    return {"entries": len(entries), "balance_changes": changes.to_dict()}


def _unpost(transaction: MetalTransaction, state: PostedState) -> int:
    """Undo everything ``state`` posted: registry rows, inventory, balances."""
    deleted = registry_service.delete_entries_for(metal_transaction_id=transaction.id)

    inventory_service.update_inventory_for_items(
        state.items,
        transaction_type=state.transaction_type,
        voucher_code=state.voucher_number,
        voucher_date=state.voucher_date,
        reverse=True,
    )
    inventory_service.delete_inventory_logs(state.voucher_number)

    reverse_balance_changes(state.party_id, state.balance_changes(), reason=f"reverse:{transaction.id}")
    return deleted


def _update_in_unit(transaction_id: int, changes: dict, actor_id: int | None) -> MetalTransaction:
    transaction = _get_active_transaction(transaction_id, lock=True)

    new_party_id = transaction.party_id
    if "party_ref" in changes:
        new_party_id = _resolve_active_party(changes["party_ref"])
    if "voucher_number" in changes:
        _ensure_voucher_available(changes["voucher_number"], exclude_id=transaction.id)
    if "items" in changes:
        _resolve_stocks(changes["items"])

    state = PostedState.of(transaction)
    deleted = _unpost(transaction, state)

    transaction.party_id = new_party_id
    for field in ("transaction_type", "fixed", "unfix", "voucher_number", "voucher_date"):
        if field in changes:
            setattr(transaction, field, changes[field])
    if "items" in changes:
        _replace_items(transaction, changes["items"])
        _apply_session_totals(transaction, changes.get("session"), changes["items"])
    elif "session" in changes:
        _apply_session_totals(
            transaction,
            changes["session"],
            [_item_columns(item) for item in transaction.stock_items],
        )
    transaction.updated_by = actor_id

    result = _post(transaction, actor_id)
    current_app.logger.info(
        "[UPDATE_TRANSACTION] id=%s voucher=%s party=%s->%s registry_deleted=%s registry_created=%s",
        transaction.id,
        transaction.voucher_number,
        state.party_id,
        transaction.party_id,
        deleted,
        result["entries"],
    )
    return transaction


# =============================================================================
# Public operations
# =============================================================================

def create_metal_transaction(payload: dict, actor_id: int | None) -> MetalTransaction:
    """
    Create a metal transaction with its postings, balance and inventory effects.

    Raises:
        ValidationError: bad payload (nothing written)
        NotFoundError: party or stock absent
        ConflictError: duplicate voucher number
    """
    data = validate_create_payload(payload)

    def _op():
        party_id = _resolve_active_party(data["party_ref"])
        _ensure_voucher_available(data["voucher_number"])
        _resolve_stocks(data["items"])

        transaction = MetalTransaction(
            transaction_type=data["transaction_type"],
            fixed=data["fixed"],
            unfix=data["unfix"],
            voucher_type=data["voucher_type"],
            voucher_number=data["voucher_number"],
            voucher_date=data["voucher_date"],
            party_id=party_id,
            status=STATUS_DRAFT,
            is_active=True,
            notes=data["notes"],
            created_by=actor_id,
            updated_by=actor_id,
        )
        for position, values in enumerate(data["items"]):
            transaction.stock_items.append(StockItem(position=position, **values))
        _apply_session_totals(transaction, data["session"], data["items"])

        db.session.add(transaction)
        result = _post(transaction, actor_id)

        current_app.logger.info(
            "[CREATE_TRANSACTION] id=%s type=%s mode=%s voucher=%s party=%s items=%s registry=%s",
            transaction.id,
            transaction.transaction_type,
            get_transaction_mode(transaction.fixed, transaction.unfix),
            transaction.voucher_number,
            party_id,
            len(transaction.stock_items),
            result["entries"],
        )
        return transaction

    return run_atomic("CREATE_TRANSACTION", _op)


def update_metal_transaction(transaction_id: int, payload: dict, actor_id: int | None) -> MetalTransaction:
    """
    Update allow-listed fields. Prior postings, inventory and balance effects
    are reversed from the stored state, then the new state is posted.
    """
    changes = validate_update_payload(payload)
    return run_atomic("UPDATE_TRANSACTION", lambda: _update_in_unit(transaction_id, changes, actor_id))


def delete_metal_transaction(transaction_id: int, actor_id: int | None, *, soft: bool = False) -> dict:
    """
    Reverse all financial effects and remove the transaction.

    soft=True keeps the row with is_active=False; postings are deleted and
    balances reversed in both cases.
    """

    def _op():
        transaction = _get_active_transaction(transaction_id, lock=True)
        state = PostedState.of(transaction)
        deleted = _unpost(transaction, state)

        if soft:
            transaction.is_active = False
            transaction.updated_by = actor_id
        else:
            db.session.delete(transaction)
        db.session.flush()

        current_app.logger.info(
            "[DELETE_TRANSACTION] id=%s voucher=%s soft=%s registry_deleted=%s",
            transaction_id,
            state.voucher_number,
            soft,
            deleted,
        )
        return {
            "id": transaction_id,
            "deleted": True,
            "soft": soft,
            "registry_entries_deleted": deleted,
        }

    return run_atomic("DELETE_TRANSACTION", _op)


def update_status(transaction_id: int, status: str, actor_id: int | None) -> MetalTransaction:
    """Status transition only; postings and balances are untouched."""

    def _op():
        transaction = _get_active_transaction(transaction_id, lock=True)
        allowed = STATUS_TRANSITIONS.get(transaction.status, set())
        if status not in allowed:
            raise ValidationError(
                f"Cannot change status from {transaction.status} to {status}",
                "INVALID_STATUS_TRANSITION",
                {"from": transaction.status, "to": status},
            )
        previous = transaction.status
        transaction.status = status
        transaction.updated_by = actor_id
        db.session.flush()
        current_app.logger.info(
            "[STATUS_TRANSACTION] id=%s %s->%s",
            transaction.id,
            previous,
            status,
        )
        return transaction

    return run_atomic("STATUS_TRANSACTION", _op)


def cancel_metal_transaction(transaction_id: int, actor_id: int | None) -> MetalTransaction:
    """Logical cancel. Unlike delete, nothing financial is reversed."""
    return update_status(transaction_id, STATUS_CANCELLED, actor_id)


def add_stock_item(transaction_id: int, item: dict, actor_id: int | None) -> MetalTransaction:

    def _op():
        transaction = _get_active_transaction(transaction_id, lock=True)
        items = [_item_columns(existing) for existing in transaction.stock_items]
        items.append(parse_stock_item(item, len(items)))
        return _update_in_unit(
            transaction_id,
            {"items": items, "session": {"vatPercentage": transaction.vat_percentage}},
            actor_id,
        )

    return run_atomic("UPDATE_TRANSACTION", _op)


def update_stock_item(transaction_id: int, item_id: int, changes: dict, actor_id: int | None) -> MetalTransaction:

    def _op():
        transaction = _get_active_transaction(transaction_id, lock=True)
        items = []
        found = False
        for index, existing in enumerate(transaction.stock_items):
            columns = _item_columns(existing)
            if existing.id == item_id:
                columns = parse_stock_item(changes, index, base=columns)
                found = True
            items.append(columns)
        if not found:
            raise NotFoundError(f"Stock item {item_id} not found", "STOCK_ITEM_NOT_FOUND")
        return _update_in_unit(
            transaction_id,
            {"items": items, "session": {"vatPercentage": transaction.vat_percentage}},
            actor_id,
        )

    return run_atomic("UPDATE_TRANSACTION", _op)


def remove_stock_item(transaction_id: int, item_id: int, actor_id: int | None) -> MetalTransaction:
    """Remove one item; a transaction can never drop to zero items."""

    def _op():
        transaction = _get_active_transaction(transaction_id, lock=True)
        remaining = [item for item in transaction.stock_items if item.id != item_id]
        if len(remaining) == len(transaction.stock_items):
            raise NotFoundError(f"Stock item {item_id} not found", "STOCK_ITEM_NOT_FOUND")
        if not remaining:
            raise InvariantViolationError(
                "Transaction must contain at least one stock item",
                "MINIMUM_STOCK_ITEMS_REQUIRED",
            )
        return _update_in_unit(
            transaction_id,
            {
                "items": [_item_columns(item) for item in remaining],
                "session": {"vatPercentage": transaction.vat_percentage},
            },
            actor_id,
        )

    return run_atomic("UPDATE_TRANSACTION", _op)


def create_bulk_metal_transactions(payloads: list, actor_id: int | None) -> list[dict]:
    """Each payload is its own unit; one failure does not affect the others."""
    if not isinstance(payloads, list) or not payloads:
        raise ValidationError("Expected a non-empty list of transactions", "MISSING_REQUIRED_FIELDS")

    results = []
    for index, payload in enumerate(payloads):
        try:
            transaction = create_metal_transaction(payload, actor_id)
        except LedgerError as exc:
            results.append({"index": index, "success": False, "error": exc.to_dict()})
            continue
        results.append({"index": index, "success": True, "id": transaction.id})
    return results


# =============================================================================
# Reads
# =============================================================================

def get_metal_transaction(transaction_id: int) -> MetalTransaction:
    return _get_active_transaction(transaction_id)


def list_metal_transactions(
    *,
    transaction_type: str | None = None,
    party_id: int | None = None,
    status: str | None = None,
    from_date=None,
    to_date=None,
) -> list[MetalTransaction]:
    query = db.session.query(MetalTransaction).filter(MetalTransaction.is_active.is_(True))
    if transaction_type:
        query = query.filter(MetalTransaction.transaction_type == transaction_type)
    if party_id:
        query = query.filter(MetalTransaction.party_id == party_id)
    if status:
        query = query.filter(MetalTransaction.status == status)
    if from_date:
        query = query.filter(MetalTransaction.voucher_date >= from_date)
    if to_date:
        query = query.filter(MetalTransaction.voucher_date <= to_date)
    return query.order_by(MetalTransaction.voucher_date.desc(), MetalTransaction.id.desc()).all()


def get_unfixed_transactions(*, party_id: int | None = None, transaction_type: str | None = None) -> list[MetalTransaction]:
    """Active transactions whose mode resolves to unfix."""
    query = db.session.query(MetalTransaction).filter(
        MetalTransaction.is_active.is_(True),
        or_(MetalTransaction.fixed.is_(False), MetalTransaction.unfix.is_(True)),
    )
    if party_id:
        query = query.filter(MetalTransaction.party_id == party_id)
    if transaction_type:
        query = query.filter(MetalTransaction.transaction_type == transaction_type)
    return query.order_by(MetalTransaction.voucher_date.desc(), MetalTransaction.id.desc()).all()


def get_transaction_totals(transaction_id: int) -> dict:
    transaction = _get_active_transaction(transaction_id)
    state = PostedState.of(transaction)
    totals = calculate_totals(state.items, state.total_amount)
    return {
        "mode": state.mode,
        "totals": totals.to_dict(),
        "balanceChanges": state.balance_changes().to_dict(),
        "premiumDiscount": get_premium_discount_breakdown(state.items),
    }


def get_party_balance_summary(party_id: int) -> dict:
    party = account_service.get_account(party_id)
    open_unfixed = (
        db.session.query(MetalTransaction.id)
        .filter(
            MetalTransaction.party_id == party_id,
            MetalTransaction.is_active.is_(True),
            or_(MetalTransaction.fixed.is_(False), MetalTransaction.unfix.is_(True)),
        )
        .count()
    )
    return {
        "party": {"id": party.id, "code": party.code, "name": party.name, "is_active": party.is_active},
        "balances": party.balances_dict(),
        "registry": registry_service.get_party_totals_by_type(party_id),
        "unfixedTransactions": open_unfixed,
    }
