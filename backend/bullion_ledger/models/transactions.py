from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


TRANSACTION_TYPES = ("purchase", "sale", "purchaseReturn", "saleReturn")
TRANSACTION_STATUSES = ("draft", "confirmed", "completed", "cancelled")


class MetalTransaction(db.Model):
    """
    One commercial metal event (purchase, sale or a return of either).

    LIFECYCLE:
    - status: draft -> confirmed -> completed, cancelled from any non-terminal state
    - is_active: soft-delete flag; inactive transactions are invisible to services
    - Must hold at least one stock item at all times

    total_amount is totalAmountSession.totalAmountAED; fix-mode postings and
    balance deltas read it directly, independent of the per-item sums.
    """
    __tablename__ = "metal_transactions"
    __table_args__ = (
        db.UniqueConstraint("voucher_number", name="uq_metal_transactions_voucher"),
        db.Index("ix_metal_tx_type_party_date", "transaction_type", "party_id", "voucher_date"),
        db.Index("ix_metal_tx_party_active_status", "party_id", "is_active", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    fixed = db.Column(db.Boolean, nullable=False, default=False)
    unfix = db.Column(db.Boolean, nullable=False, default=False)

    voucher_type = db.Column(db.String(50), nullable=True)
    voucher_number = db.Column(db.String(50), nullable=True)
    voucher_date = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    party_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    # totalAmountSession
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    net_amount = db.Column(db.Float, nullable=False, default=0.0)
    vat_amount = db.Column(db.Float, nullable=False, default=0.0)
    vat_percentage = db.Column(db.Float, nullable=False, default=0.0)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    updated_by = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    party = db.relationship("Account", backref=db.backref("metal_transactions", lazy=True))
    stock_items = db.relationship(
        "StockItem",
        backref="transaction",
        cascade="all, delete-orphan",
        order_by="StockItem.position",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<MetalTransaction id={self.id} type={self.transaction_type} "
            f"voucher={self.voucher_number!r} status={self.status}>"
        )

    def session_totals_dict(self) -> dict:
        return {
            "totalAmountAED": self.total_amount,
            "netAmountAED": self.net_amount,
            "vatAmount": self.vat_amount,
            "vatPercentage": self.vat_percentage,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_type": self.transaction_type,
            "fixed": self.fixed,
            "unfix": self.unfix,
            "voucher_type": self.voucher_type,
            "voucher_number": self.voucher_number,
            "voucher_date": to_utc_z(self.voucher_date),
            "party_id": self.party_id,
            "stock_items": [item.to_dict() for item in self.stock_items],
            "total_amount_session": self.session_totals_dict(),
            "status": self.status,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class StockItem(db.Model):
    """
    One line of a metal transaction.

    purity is a fraction in (0, 1]. premium_amount / premium_total are signed:
    positive is a premium, negative a discount. All other amounts are >= 0.
    """
    __tablename__ = "metal_transaction_items"
    __table_args__ = (
        db.Index("ix_metal_tx_items_tx_position", "transaction_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("metal_transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    stock_id = db.Column(db.Integer, db.ForeignKey("metal_stocks.id"), nullable=False, index=True)
    description = db.Column(db.String(200), nullable=True)

    pieces = db.Column(db.Integer, nullable=False, default=0)
    gross_weight = db.Column(db.Float, nullable=False, default=0.0)
    purity = db.Column(db.Float, nullable=False)
    pure_weight = db.Column(db.Float, nullable=False, default=0.0)
    weight_in_oz = db.Column(db.Float, nullable=False, default=0.0)

    # metalRateRequirements
    metal_rate = db.Column(db.Float, nullable=False, default=0.0)
    metal_rate_amount = db.Column(db.Float, nullable=False, default=0.0)

    making_charges_amount = db.Column(db.Float, nullable=False, default=0.0)
    making_charges_rate = db.Column(db.Float, nullable=False, default=0.0)

    vat_percentage = db.Column(db.Float, nullable=False, default=0.0)
    vat_amount = db.Column(db.Float, nullable=False, default=0.0)

    other_charges_amount = db.Column(db.Float, nullable=False, default=0.0)
    other_charges_rate = db.Column(db.Float, nullable=False, default=0.0)
    other_charges_description = db.Column(db.String(255), nullable=True)

    premium_amount = db.Column(db.Float, nullable=False, default=0.0)
    premium_rate = db.Column(db.Float, nullable=False, default=0.0)

    # itemTotal
    base_amount = db.Column(db.Float, nullable=False, default=0.0)
    making_charges_total = db.Column(db.Float, nullable=False, default=0.0)
    premium_total = db.Column(db.Float, nullable=False, default=0.0)
    sub_total = db.Column(db.Float, nullable=False, default=0.0)
    item_vat_amount = db.Column(db.Float, nullable=False, default=0.0)
    item_total_amount = db.Column(db.Float, nullable=False, default=0.0)

    stock = db.relationship("MetalStock")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "stock_id": self.stock_id,
            "description": self.description,
            "pieces": self.pieces,
            "gross_weight": self.gross_weight,
            "purity": self.purity,
            "pure_weight": self.pure_weight,
            "weight_in_oz": self.weight_in_oz,
            "metal_rate_requirements": {"rate": self.metal_rate, "amount": self.metal_rate_amount},
            "making_charges": {"amount": self.making_charges_amount, "rate": self.making_charges_rate},
            "vat": {"percentage": self.vat_percentage, "amount": self.vat_amount},
            "other_charges": {
                "amount": self.other_charges_amount,
                "rate": self.other_charges_rate,
                "description": self.other_charges_description,
            },
            "premium": {"amount": self.premium_amount, "rate": self.premium_rate},
            "item_total": {
                "base_amount": self.base_amount,
                "making_charges_total": self.making_charges_total,
                "premium_total": self.premium_total,
                "sub_total": self.sub_total,
                "vat_amount": self.item_vat_amount,
                "item_total_amount": self.item_total_amount,
            },
        }
