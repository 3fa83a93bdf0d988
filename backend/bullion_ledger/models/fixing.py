from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


FIXING_TYPES = ("PURCHASE", "SELL")
FIXING_ACTIVE = "active"
FIXING_CANCELLED = "cancelled"
FIXING_STATUSES = (FIXING_ACTIVE, FIXING_CANCELLED)


class TransactionFixing(db.Model):
    """Price fixing of floating gold against a party, one or more orders."""
    __tablename__ = "transaction_fixings"
    __table_args__ = (
        db.UniqueConstraint("voucher_number", name="uq_transaction_fixings_voucher"),
        db.Index("ix_transaction_fixings_party_active", "party_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    party_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)  # PURCHASE | SELL

    voucher_type = db.Column(db.String(50), nullable=True)
    voucher_number = db.Column(db.String(50), nullable=True)
    voucher_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=FIXING_ACTIVE)  # active | cancelled
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer, nullable=True)
    updated_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    party = db.relationship("Account")
    orders = db.relationship(
        "FixingOrder",
        backref="fixing",
        cascade="all, delete-orphan",
        order_by="FixingOrder.position",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "party_id": self.party_id,
            "type": self.type,
            "voucher_type": self.voucher_type,
            "voucher_number": self.voucher_number,
            "voucher_date": to_utc_z(self.voucher_date),
            "status": self.status,
            "is_active": self.is_active,
            "orders": [order.to_dict() for order in self.orders],
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
        }


class FixingOrder(db.Model):
    __tablename__ = "fixing_orders"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    fixing_id = db.Column(db.Integer, db.ForeignKey("transaction_fixings.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity_gm = db.Column(db.Float, nullable=False)
    price = db.Column(db.Float, nullable=False)
    gold_bid_value = db.Column(db.Float, nullable=False)
    total_amount = db.Column(db.Float, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "quantity_gm": self.quantity_gm,
            "price": self.price,
            "gold_bid_value": self.gold_bid_value,
            "total_amount": self.total_amount,
        }
