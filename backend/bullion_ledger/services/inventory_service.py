# Overview: Inventory adjustment interface for stock-moving transactions; signed deltas plus audit log.

from __future__ import annotations

from typing import Iterable

from sqlalchemy import update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Inventory, InventoryLog, MetalStock
from .totals_service import LineItem


SALE_LIKE_TYPES = ("sale", "purchaseReturn")


def is_sale_type(transaction_type: str) -> bool:
    return transaction_type in SALE_LIKE_TYPES


def create_metal_stock(code: str, description: str | None = None, purity: float = 1.0) -> MetalStock:
    """Create a stock master row and its empty inventory row."""
    code = (code or "").strip()
    if not code:
        raise ValidationError("Stock code is required", "MISSING_REQUIRED_FIELDS")
    if not 0 < purity <= 1:
        raise ValidationError("Purity must be between 0 and 1", "INVALID_PURITY")
    if db.session.query(MetalStock.id).filter_by(code=code).first():
        raise ConflictError(f"Stock code {code} already exists", "DUPLICATE_STOCK")

    stock = MetalStock(code=code, description=description)
    db.session.add(stock)
    db.session.flush()
    db.session.add(Inventory(stock_id=stock.id, purity=purity))
    db.session.flush()
    return stock


def get_inventory(stock_id: int) -> Inventory:
    inventory = db.session.query(Inventory).filter_by(stock_id=stock_id).first()
    if not inventory:
        raise NotFoundError(f"Inventory for stock {stock_id} not found", "INVENTORY_NOT_FOUND")
    return inventory


def adjust_inventory(
    stock_id: int,
    piece_delta: int,
    weight_delta: float,
    *,
    voucher_code: str | None,
    voucher_date=None,
    actor_id: int | None = None,
    transaction_type: str | None = None,
    note: str | None = None,
    write_log: bool = True,
) -> Inventory:
    """
    Apply signed piece/weight deltas to a stock's inventory.

    gross_weight and pcs_count are incremented in one UPDATE; pure_weight
    is recomputed in the same statement as new gross * purity.
    """
    stmt = (
        update(Inventory)
        .where(Inventory.stock_id == stock_id)
        .values(
            pcs_count=Inventory.pcs_count + piece_delta,
            gross_weight=Inventory.gross_weight + weight_delta,
            pure_weight=(Inventory.gross_weight + weight_delta) * Inventory.purity,
        )
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError(f"Inventory for stock {stock_id} not found", "INVENTORY_NOT_FOUND")

    if write_log:
        stock = db.session.get(MetalStock, stock_id)
        db.session.add(InventoryLog(
            stock_id=stock_id,
            code=stock.code if stock else str(stock_id),
            voucher_code=voucher_code or "",
            voucher_date=voucher_date,
            gross_weight=abs(weight_delta),
            pcs=bool(piece_delta),
            action="remove" if weight_delta < 0 or piece_delta < 0 else "add",
            transaction_type=transaction_type,
            created_by=actor_id,
            note=note,
        ))
        db.session.flush()

    return get_inventory(stock_id)


def update_inventory_for_items(
    items: Iterable[LineItem],
    *,
    transaction_type: str,
    voucher_code: str | None,
    voucher_date=None,
    actor_id: int | None = None,
    reverse: bool = False,
) -> list[Inventory]:
    """
    Adjust inventory once per item: sale-like kinds decrement, purchase-like
    kinds increment. ``reverse`` undoes a prior adjustment without logging.
    """
    is_sale = is_sale_type(transaction_type)
    factor = -1 if is_sale else 1
    if reverse:
        factor = -factor
    note = (
        "Inventory reduced due to sale transaction"
        if is_sale
        else "Inventory increased due to purchase transaction"
    )

    updated = []
    for item in items:
        updated.append(adjust_inventory(
            item.stock_id,
            factor * (item.pieces or 0),
            factor * (item.gross_weight or 0.0),
            voucher_code=voucher_code,
            voucher_date=voucher_date,
            actor_id=actor_id,
            transaction_type=transaction_type,
            note=note,
            write_log=not reverse,
        ))
    return updated


def update_inventory_for_transaction(transaction, actor_id: int | None, *, reverse: bool = False) -> list[Inventory]:
    return update_inventory_for_items(
        [LineItem.from_stock_item(item) for item in transaction.stock_items],
        transaction_type=transaction.transaction_type,
        voucher_code=transaction.voucher_number,
        voucher_date=transaction.voucher_date,
        actor_id=actor_id,
        reverse=reverse,
    )


def delete_inventory_logs(voucher_code: str | None) -> int:
    """Delete inventory logs for a voucher; no-op without a voucher code."""
    if not voucher_code:
        return 0
    return (
        db.session.query(InventoryLog)
        .filter(InventoryLog.voucher_code == voucher_code)
        .delete(synchronize_session=False)
    )


def list_inventory_logs(voucher_code: str) -> list[InventoryLog]:
    return (
        db.session.query(InventoryLog)
        .filter(InventoryLog.voucher_code == voucher_code)
        .order_by(InventoryLog.id.asc())
        .all()
    )
