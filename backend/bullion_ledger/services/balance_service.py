# Overview: The single entry point that mutates party balances (gold grams/value, cash).

"""
Balance deltas per (kind, mode), and their application as atomic SQL increments.

Sign convention (see Account): positive means the house owes the party.
A purchase in unfix mode therefore adds the delivered pure gold to the
party's gold balance; a sale subtracts it.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update

from ..errors import NotFoundError
from ..extensions import db
from ..models import Account
from ..time_utils import utcnow
from .totals_service import MODE_FIX, MODE_UNFIX, Totals


@dataclass(frozen=True)
class BalanceChanges:
    """
    Signed deltas for one party.

    discount_balance carries the discount with the sign it has against cash:
    net cash = cash_balance + premium_balance - discount_balance.
    other_charges is reported but does not move the cash balance.
    """
    gold_balance: float = 0.0
    gold_value: float = 0.0
    cash_balance: float = 0.0
    premium_balance: float = 0.0
    discount_balance: float = 0.0
    other_charges: float = 0.0

    def negated(self) -> "BalanceChanges":
        return BalanceChanges(
            gold_balance=-self.gold_balance,
            gold_value=-self.gold_value,
            cash_balance=-self.cash_balance,
            premium_balance=-self.premium_balance,
            discount_balance=-self.discount_balance,
            other_charges=-self.other_charges,
        )

    def net_cash(self, precision: int = 2) -> float:
        net = round(self.cash_balance + self.premium_balance - self.discount_balance, precision)
        return net + 0.0  # normalizes -0.0

    def to_dict(self) -> dict:
        return {
            "goldBalance": self.gold_balance,
            "goldValue": self.gold_value,
            "cashBalance": self.cash_balance,
            "premiumBalance": self.premium_balance,
            "discountBalance": self.discount_balance,
            "otherCharges": self.other_charges,
        }


# (sign, Totals field) per BalanceChanges field; fields left out are zero.
_UNFIX_INFLOW = {
    "gold_balance": (1, "pure_weight"),
    "gold_value": (1, "gold_value"),
    "cash_balance": (1, "making_charges"),
    "premium_balance": (1, "premium"),
    "discount_balance": (1, "discount"),
    "other_charges": (1, "other_charges_amount"),
}
_UNFIX_OUTFLOW = {
    "gold_balance": (-1, "pure_weight"),
    "gold_value": (-1, "gold_value"),
    "cash_balance": (-1, "making_charges"),
    "premium_balance": (-1, "premium"),
    "discount_balance": (-1, "discount"),
    "other_charges": (-1, "other_charges_amount"),
}
_FIX_INFLOW = {"cash_balance": (1, "total_amount")}
_FIX_OUTFLOW = {"cash_balance": (-1, "total_amount")}

BALANCE_MATRIX: dict[tuple[str, str], dict[str, tuple[int, str]]] = {
    ("purchase", MODE_UNFIX): _UNFIX_INFLOW,
    ("saleReturn", MODE_UNFIX): _UNFIX_INFLOW,
    ("sale", MODE_UNFIX): _UNFIX_OUTFLOW,
    ("purchaseReturn", MODE_UNFIX): _UNFIX_OUTFLOW,
    ("purchase", MODE_FIX): _FIX_INFLOW,
    ("saleReturn", MODE_FIX): _FIX_INFLOW,
    ("sale", MODE_FIX): _FIX_OUTFLOW,
    ("purchaseReturn", MODE_FIX): _FIX_OUTFLOW,
}


def calculate_balance_changes(kind: str, mode: str, totals: Totals) -> BalanceChanges:
    try:
        row = BALANCE_MATRIX[(kind, mode)]
    except KeyError:
        raise ValueError(f"No balance rule for {kind}/{mode}") from None
    values = {}
    for field, (sign, source) in row.items():
        values[field] = sign * getattr(totals, source)
    return BalanceChanges(**values)


def build_update_operations(changes: BalanceChanges, *, now=None, precision: int | None = None) -> dict:
    """
    Convert a change record into column increments and timestamp sets.

    Gold columns are touched only when the gold delta is non-zero; cash only
    when the rounded net cash delta is non-zero. last_balance_update is
    always set.
    """
    if precision is None:
        precision = current_app.config.get("LEDGER_CASH_PRECISION", 2)
    now = now or utcnow()
    inc: dict[str, float] = {}
    sets: dict[str, object] = {"last_balance_update": now}

    if changes.gold_balance != 0:
        inc["gold_total_grams"] = changes.gold_balance
        inc["gold_total_value"] = changes.gold_value
        sets["gold_last_updated"] = now

    net_cash = changes.net_cash(precision)
    if net_cash != 0:
        inc["cash_amount"] = net_cash
        sets["cash_last_updated"] = now

    return {"inc": inc, "set": sets}


def apply_balance_changes(party_id: int, changes: BalanceChanges, *, reason: str = "", now=None) -> dict:
    """
    Apply ``changes`` to one account as a single UPDATE with column
    increments, so concurrent units on the same party never lose updates.
    """
    ops = build_update_operations(changes, now=now)
    values = {name: getattr(Account, name) + delta for name, delta in ops["inc"].items()}
    values.update(ops["set"])

    stmt = (
        update(Account)
        .where(Account.id == party_id)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NotFoundError(f"Party {party_id} not found", "PARTY_NOT_FOUND")

    current_app.logger.info(
        "[BALANCE_UPDATE] party=%s reason=%s gold=%s cash=%s",
        party_id,
        reason,
        ops["inc"].get("gold_total_grams", 0.0),
        ops["inc"].get("cash_amount", 0.0),
    )
    return ops


def reverse_balance_changes(party_id: int, changes: BalanceChanges, *, reason: str = "", now=None) -> dict:
    return apply_balance_changes(party_id, changes.negated(), reason=reason, now=now)
