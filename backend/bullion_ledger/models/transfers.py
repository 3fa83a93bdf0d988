from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ASSET_TYPES = ("CASH", "GOLD")


class FundTransfer(db.Model):
    """
    Party-to-party transfer of cash or gold, or an opening balance.

    sender_id is NULL for opening balances. For transfers value is the
    positive amount moved from sender to receiver; for opening balances it
    is the signed opening amount (negative: the party owes the house).
    """
    __tablename__ = "fund_transfers"
    __table_args__ = (
        db.Index("ix_fund_transfers_receiver_asset", "receiver_id", "asset_type", "is_opening_balance"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    asset_type = db.Column(db.String(8), nullable=False)  # CASH | GOLD
    value = db.Column(db.Float, nullable=False)
    is_opening_balance = db.Column(db.Boolean, nullable=False, default=False)

    voucher_type = db.Column(db.String(50), nullable=True)
    voucher_number = db.Column(db.String(50), nullable=True)
    voucher_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "asset_type": self.asset_type,
            "value": self.value,
            "is_opening_balance": self.is_opening_balance,
            "voucher_type": self.voucher_type,
            "voucher_number": self.voucher_number,
            "voucher_date": to_utc_z(self.voucher_date),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
