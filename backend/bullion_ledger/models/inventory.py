from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class MetalStock(db.Model):
    """Stock master: one row per tradable metal item code."""
    __tablename__ = "metal_stocks"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_metal_stocks_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<MetalStock id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Inventory(db.Model):
    """
    On-hand quantity for a metal stock.

    pure_weight is derived: gross_weight * purity (purity is a fraction 0-1).
    """
    __tablename__ = "inventories"
    __table_args__ = (
        db.UniqueConstraint("stock_id", name="uq_inventories_stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("metal_stocks.id"), nullable=False, index=True)

    pcs_count = db.Column(db.Integer, nullable=False, default=0)
    gross_weight = db.Column(db.Float, nullable=False, default=0.0)
    purity = db.Column(db.Float, nullable=False, default=1.0)
    pure_weight = db.Column(db.Float, nullable=False, default=0.0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    stock = db.relationship("MetalStock", backref=db.backref("inventory", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_id": self.stock_id,
            "pcs_count": self.pcs_count,
            "gross_weight": self.gross_weight,
            "purity": self.purity,
            "pure_weight": self.pure_weight,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryLog(db.Model):
    """Audit row for every inventory adjustment; deleted by voucher on edit/delete."""
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_inventory_logs_voucher", "voucher_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("metal_stocks.id"), nullable=False, index=True)
    code = db.Column(db.String(64), nullable=False)
    voucher_code = db.Column(db.String(50), nullable=False, default="")
    voucher_date = db.Column(db.DateTime(timezone=True), nullable=True)
    gross_weight = db.Column(db.Float, nullable=False, default=0.0)
    pcs = db.Column(db.Boolean, nullable=False, default=False)
    action = db.Column(db.String(16), nullable=False)  # add | remove
    transaction_type = db.Column(db.String(32), nullable=True)
    created_by = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_id": self.stock_id,
            "code": self.code,
            "voucher_code": self.voucher_code,
            "voucher_date": to_utc_z(self.voucher_date),
            "gross_weight": self.gross_weight,
            "pcs": self.pcs,
            "action": self.action,
            "transaction_type": self.transaction_type,
            "created_by": self.created_by,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
