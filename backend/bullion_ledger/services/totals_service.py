# Overview: Pure reducers over metal transaction line items: totals, mode, session totals.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Sequence


MODE_FIX = "fix"
MODE_UNFIX = "unfix"


@dataclass(frozen=True)
class LineItem:
    """
    Fixed-shape view of one stock item, detached from the ORM row.

    Used for the current state of a transaction and for the snapshot of
    its previously posted state during update/delete reversal.
    """
    stock_id: int | None = None
    pieces: int = 0
    gross_weight: float = 0.0
    purity: float = 0.0
    pure_weight: float = 0.0
    metal_rate: float = 0.0
    making_charges_amount: float = 0.0
    making_charges_total: float = 0.0
    premium_amount: float = 0.0
    premium_total: float = 0.0
    vat_amount: float = 0.0
    other_charges_amount: float = 0.0
    other_charges_description: str | None = None
    base_amount: float = 0.0
    sub_total: float = 0.0
    item_vat_amount: float = 0.0

    @classmethod
    def from_stock_item(cls, item) -> "LineItem":
        return cls(
            stock_id=item.stock_id,
            pieces=item.pieces or 0,
            gross_weight=item.gross_weight or 0.0,
            purity=item.purity or 0.0,
            pure_weight=item.pure_weight or 0.0,
            metal_rate=item.metal_rate or 0.0,
            making_charges_amount=item.making_charges_amount or 0.0,
            making_charges_total=item.making_charges_total or 0.0,
            premium_amount=item.premium_amount or 0.0,
            premium_total=item.premium_total or 0.0,
            vat_amount=item.vat_amount or 0.0,
            other_charges_amount=item.other_charges_amount or 0.0,
            other_charges_description=item.other_charges_description,
            base_amount=item.base_amount or 0.0,
            sub_total=item.sub_total or 0.0,
            item_vat_amount=item.item_vat_amount or 0.0,
        )

    @property
    def making_charges(self) -> float:
        # itemTotal wins; flat amount is the fallback when the total is zero
        return self.making_charges_total or self.making_charges_amount or 0.0

    @property
    def premium_discount(self) -> float:
        return self.premium_total or self.premium_amount or 0.0


@dataclass(frozen=True)
class Totals:
    pure_weight: float = 0.0
    gross_weight: float = 0.0
    purity: float = 0.0
    making_charges: float = 0.0
    premium: float = 0.0
    discount: float = 0.0
    vat_amount: float = 0.0
    other_charges_amount: float = 0.0
    gold_value: float = 0.0
    gold_bid_value: float = 0.0
    total_amount: float = 0.0

    def to_dict(self) -> dict:
        return {
            "pureWeight": self.pure_weight,
            "grossWeight": self.gross_weight,
            "purity": self.purity,
            "makingCharges": self.making_charges,
            "premium": self.premium,
            "discount": self.discount,
            "vatAmount": self.vat_amount,
            "otherChargesAmount": self.other_charges_amount,
            "goldValue": self.gold_value,
            "goldBidValue": self.gold_bid_value,
            "totalAmount": self.total_amount,
        }


def calculate_totals(items: Iterable[LineItem], total_amount: float | None = 0.0) -> Totals:
    """
    Reduce line items into aggregate totals.

    - purity is summed across items, not averaged
    - gold_bid_value is the first non-zero item rate
    - total_amount is taken as given (totalAmountSession.totalAmountAED)

    Pure: the posting builder and the balance mutator both call this and
    must see identical numbers for the same input.
    """
    totals = Totals(total_amount=total_amount or 0.0)
    for item in items:
        premium_discount = item.premium_discount
        totals = replace(
            totals,
            pure_weight=totals.pure_weight + item.pure_weight,
            gross_weight=totals.gross_weight + item.gross_weight,
            purity=totals.purity + item.purity,
            making_charges=totals.making_charges + item.making_charges,
            premium=totals.premium + (premium_discount if premium_discount > 0 else 0.0),
            discount=totals.discount + (abs(premium_discount) if premium_discount < 0 else 0.0),
            vat_amount=totals.vat_amount + item.vat_amount,
            other_charges_amount=totals.other_charges_amount + item.other_charges_amount,
            gold_value=totals.gold_value + item.base_amount,
            gold_bid_value=totals.gold_bid_value or item.metal_rate or 0.0,
        )
    return totals


def get_transaction_mode(fixed: bool, unfix: bool) -> str:
    """"fix" only when fixed and not unfix; every other combination is "unfix"."""
    if fixed and not unfix:
        return MODE_FIX
    return MODE_UNFIX


def calculate_session_totals(items: Sequence[LineItem], vat_percentage: float = 0.0) -> dict:
    """
    Derive totalAmountSession from the items when the caller did not send one.

    VAT is the sum of item VAT; if no item carries VAT it falls back to
    net * vat_percentage / 100.
    """
    net = sum(item.sub_total or item.base_amount + item.making_charges for item in items)
    vat = sum(item.item_vat_amount or item.vat_amount for item in items)
    if not vat and vat_percentage:
        vat = net * vat_percentage / 100
    return {
        "totalAmountAED": round(net + vat, 2),
        "netAmountAED": round(net, 2),
        "vatAmount": round(vat, 2),
        "vatPercentage": vat_percentage or 0.0,
    }


def get_premium_discount_breakdown(items: Sequence[LineItem]) -> dict:
    rows = []
    for index, item in enumerate(items):
        amount = item.premium_discount
        rows.append({
            "index": index,
            "stock_id": item.stock_id,
            "premium": amount if amount > 0 else 0.0,
            "discount": abs(amount) if amount < 0 else 0.0,
        })
    totals = calculate_totals(items)
    return {
        "items": rows,
        "totalPremium": totals.premium,
        "totalDiscount": totals.discount,
        "net": totals.premium - totals.discount,
    }
