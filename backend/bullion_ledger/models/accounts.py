from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Account(db.Model):
    """
    Party account (customer or supplier) with running gold and cash balances.

    SIGN CONVENTION:
    - gold_total_grams > 0: the house owes the party gold
    - gold_total_grams < 0: the party owes the house gold
    - cash_amount follows the same rule for cash in the house currency

    Balance columns are written only by balance_service through atomic
    increments. Accounts are never hard-deleted while postings reference them.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_accounts_code"),
        db.Index("ix_accounts_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    gold_total_grams = db.Column(db.Float, nullable=False, default=0.0)
    gold_total_value = db.Column(db.Float, nullable=False, default=0.0)
    gold_last_updated = db.Column(db.DateTime(timezone=True), nullable=True)

    cash_amount = db.Column(db.Float, nullable=False, default=0.0)
    cash_last_updated = db.Column(db.DateTime(timezone=True), nullable=True)

    last_balance_update = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id} code={self.code!r} gold={self.gold_total_grams} cash={self.cash_amount}>"

    def balances_dict(self) -> dict:
        return {
            "goldBalance": {
                "totalGrams": self.gold_total_grams,
                "totalValue": self.gold_total_value,
                "lastUpdated": to_utc_z(self.gold_last_updated),
            },
            "cashBalance": {
                "amount": self.cash_amount,
                "lastUpdated": to_utc_z(self.cash_last_updated),
            },
            "lastBalanceUpdate": to_utc_z(self.last_balance_update),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "is_active": self.is_active,
            "balances": self.balances_dict(),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
