from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ENTRY_TYPES = ("cash receipt", "cash payment", "metal-receipt", "metal-payment")


class Entry(db.Model):
    """Cash or metal receipt/payment voucher."""
    __tablename__ = "entries"
    __table_args__ = (
        db.Index("ix_entries_party_type", "party_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False)
    voucher_code = db.Column(db.String(50), nullable=True, index=True)
    voucher_date = db.Column(db.DateTime(timezone=True), nullable=True)
    party_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)
    remarks = db.Column(db.String(255), nullable=True)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "EntryLine",
        backref="entry",
        cascade="all, delete-orphan",
        order_by="EntryLine.position",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "voucher_code": self.voucher_code,
            "voucher_date": to_utc_z(self.voucher_date),
            "party_id": self.party_id,
            "remarks": self.remarks,
            "total_amount": self.total_amount,
            "lines": [line.to_dict() for line in self.lines],
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class EntryLine(db.Model):
    __tablename__ = "entry_lines"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(db.Integer, db.ForeignKey("entries.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    amount = db.Column(db.Float, nullable=False, default=0.0)
    stock_id = db.Column(db.Integer, db.ForeignKey("metal_stocks.id"), nullable=True)
    purity_weight = db.Column(db.Float, nullable=False, default=0.0)
    remarks = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "amount": self.amount,
            "stock_id": self.stock_id,
            "purity_weight": self.purity_weight,
            "remarks": self.remarks,
        }
