# Overview: Registry posting templates for metal transactions, one explicit table per (kind, mode).

"""
Each template row answers, for one component of the per-item totals:
- which registry ``type`` tag the posting carries
- whether it is a party posting or a house-side posting (party NULL)
- which of debit / credit receives the magnitude ("none" keeps value only)
- which leg suffix is appended to the item's base id

A row is emitted only when its magnitude is > 0. The tables are literal
and intentionally asymmetric; do not try to derive them from a formula.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models import RegistryEntry
from .totals_service import MODE_FIX, MODE_UNFIX, LineItem, calculate_totals, get_transaction_mode


DEBIT = "debit"
CREDIT = "credit"
NONE = "none"

# registry type tags
PARTY_GOLD_BALANCE = "PARTY_GOLD_BALANCE"
PARTY_CASH_BALANCE = "PARTY_CASH_BALANCE"
MAKING_CHARGES = "MAKING_CHARGES"
OTHER_CHARGES = "OTHER_CHARGES"
VAT_AMOUNT = "VAT_AMOUNT"
PREMIUM = "PREMIUM"
DISCOUNT = "DISCOUNT"
GOLD = "GOLD"
GOLD_STOCK = "GOLD_STOCK"
PURCHASE_FIXING = "purchase-fixing"
SALES_FIXING = "sales-fixing"
SALE_FIXING = "sale-fixing"


@dataclass(frozen=True)
class Leg:
    suffix: str
    type: str
    component: str  # Totals field that gives the magnitude
    side: str
    description: str
    house: bool = False
    bullion: bool = False


def _fix_legs(fixing_type, fixing_side, cash_component, side, inventory_side, other_side=None, label=""):
    """
    Common fix-mode row order. ``side`` is the side of the party-facing
    charge legs (cash, making, VAT, premium); discount and the inventory
    legs take the sides given explicitly.
    """
    discount_side = CREDIT if side == DEBIT else DEBIT
    return (
        Leg("PARTY-GOLD", fixing_type, "pure_weight", fixing_side, f"{label} fixing", bullion=True),
        Leg("001", PARTY_CASH_BALANCE, cash_component, side, f"{label} party cash balance"),
        Leg("002", MAKING_CHARGES, "making_charges", side, f"{label} making charges"),
        Leg("008", OTHER_CHARGES, "other_charges_amount", other_side or side, f"{label} other charges"),
        Leg("009", VAT_AMOUNT, "vat_amount", side, f"{label} VAT"),
        Leg("003", PREMIUM, "premium", side, f"{label} premium"),
        Leg("007", DISCOUNT, "discount", discount_side, f"{label} discount"),
        Leg("004", GOLD, "pure_weight", inventory_side, f"{label} gold", house=True, bullion=True),
        Leg("005", GOLD_STOCK, "gross_weight", inventory_side, f"{label} gold stock", house=True, bullion=True),
    )


def _unfix_legs(side, inventory_side, other_side=None, vat_side=None, label=""):
    discount_side = CREDIT if side == DEBIT else DEBIT
    return (
        Leg("001", PARTY_GOLD_BALANCE, "pure_weight", side, f"{label} party gold balance", bullion=True),
        Leg("003", MAKING_CHARGES, "making_charges", side, f"{label} making charges"),
        Leg("008", OTHER_CHARGES, "other_charges_amount", other_side or side, f"{label} other charges"),
        Leg("009", VAT_AMOUNT, "vat_amount", vat_side or side, f"{label} VAT"),
        Leg("004", PREMIUM, "premium", side, f"{label} premium"),
        Leg("007", DISCOUNT, "discount", discount_side, f"{label} discount"),
        Leg("005", GOLD, "pure_weight", inventory_side, f"{label} gold", house=True, bullion=True),
        Leg("006", GOLD_STOCK, "gross_weight", inventory_side, f"{label} gold stock", house=True, bullion=True),
    )


POSTING_TABLES: dict[tuple[str, str], tuple[Leg, ...]] = {
    # purchase: party is credited, house inventory debited
    ("purchase", MODE_FIX): _fix_legs(
        PURCHASE_FIXING, CREDIT, "gold_value", CREDIT, DEBIT, label="Purchase",
    ),
    ("purchase", MODE_UNFIX): _unfix_legs(CREDIT, DEBIT, label="Purchase"),
    # purchase return: other charges stay on the credit side in fix mode
    ("purchaseReturn", MODE_FIX): _fix_legs(
        PURCHASE_FIXING, DEBIT, "total_amount", DEBIT, CREDIT, other_side=CREDIT, label="Purchase return",
    ),
    # purchase return unfix: other charges carry value only, VAT is credited
    ("purchaseReturn", MODE_UNFIX): _unfix_legs(
        DEBIT, CREDIT, other_side=NONE, vat_side=CREDIT, label="Purchase return",
    ),
    # sale: party is debited, house inventory credited
    ("sale", MODE_FIX): _fix_legs(
        SALES_FIXING, DEBIT, "total_amount", DEBIT, CREDIT, label="Sale",
    ),
    ("sale", MODE_UNFIX): _unfix_legs(DEBIT, CREDIT, label="Sale"),
    ("saleReturn", MODE_FIX): _fix_legs(
        SALE_FIXING, CREDIT, "total_amount", CREDIT, DEBIT, label="Sale return",
    ),
    ("saleReturn", MODE_UNFIX): _unfix_legs(CREDIT, DEBIT, label="Sale return"),
}


def get_posting_table(kind: str, mode: str) -> tuple[Leg, ...]:
    try:
        return POSTING_TABLES[(kind, mode)]
    except KeyError:
        raise ValueError(f"No posting table for {kind}/{mode}") from None


def build_item_entries(
    *,
    base_id: str,
    kind: str,
    mode: str,
    item: LineItem,
    total_amount: float,
    party_id: int,
    reference: str | None,
    transaction_date,
    actor_id: int | None,
    metal_transaction_id: int | None = None,
) -> list[RegistryEntry]:
    """Postings for a single stock item; totals are scoped to that item."""
    totals = calculate_totals([item], total_amount)
    entries = []
    for leg in get_posting_table(kind, mode):
        magnitude = getattr(totals, leg.component)
        if not magnitude or magnitude <= 0:
            continue
        description = leg.description
        if leg.type == OTHER_CHARGES and item.other_charges_description:
            description = f"{item.other_charges_description} charges - {leg.description}"
        entry = RegistryEntry(
            transaction_id=f"{base_id}-{leg.suffix}",
            metal_transaction_id=metal_transaction_id,
            type=leg.type,
            description=description,
            party_id=None if leg.house else party_id,
            is_bullion=leg.bullion,
            value=magnitude,
            debit=magnitude if leg.side == DEBIT else 0.0,
            credit=magnitude if leg.side == CREDIT else 0.0,
            reference=reference,
            transaction_date=transaction_date,
            created_by=actor_id,
        )
        if leg.bullion:
            entry.gross_weight = totals.gross_weight
            entry.pure_weight = totals.pure_weight
            entry.purity = totals.purity
            entry.gold_bid_value = totals.gold_bid_value
        entries.append(entry)
    return entries


def build_registry_entries(transaction, actor_id: int | None, *, next_base_id) -> list[RegistryEntry]:
    """
    Postings for every stock item of ``transaction``.

    ``next_base_id`` is called once per item so leg ids stay unique across
    items of the same transaction.
    """
    kind = transaction.transaction_type
    mode = get_transaction_mode(transaction.fixed, transaction.unfix)
    entries = []
    for stock_item in transaction.stock_items:
        entries.extend(build_item_entries(
            base_id=next_base_id(),
            kind=kind,
            mode=mode,
            item=LineItem.from_stock_item(stock_item),
            total_amount=transaction.total_amount,
            party_id=transaction.party_id,
            reference=transaction.voucher_number,
            transaction_date=transaction.voucher_date,
            actor_id=actor_id,
            metal_transaction_id=transaction.id,
        ))
    return entries
