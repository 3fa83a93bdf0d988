from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..errors import InvariantViolationError
from ..time_utils import to_utc_z


class RegistryEntry(db.Model):
    """
    One immutable debit/credit posting.

    IMMUTABILITY:
    - Rows are inserted in batches and deleted in batches by owning document
    - Any UPDATE through the ORM raises InvariantViolationError(REGISTRY_IMMUTABLE)

    Exactly one owning-document link is set per row. party_id is NULL for
    house-side postings (inventory, cash drawer, opening contra legs).
    """
    __tablename__ = "registry_entries"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_registry_entries_transaction_id"),
        db.Index("ix_registry_party_type", "party_id", "type"),
        db.Index("ix_registry_reference", "reference"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(80), nullable=False)

    metal_transaction_id = db.Column(db.Integer, db.ForeignKey("metal_transactions.id"), nullable=True, index=True)
    fixing_id = db.Column(db.Integer, db.ForeignKey("transaction_fixings.id"), nullable=True, index=True)
    entry_id = db.Column(db.Integer, db.ForeignKey("entries.id"), nullable=True, index=True)
    fund_transfer_id = db.Column(db.Integer, db.ForeignKey("fund_transfers.id"), nullable=True, index=True)

    type = db.Column(db.String(40), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=True)
    party_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)
    is_bullion = db.Column(db.Boolean, nullable=False, default=False)

    value = db.Column(db.Float, nullable=False, default=0.0)
    debit = db.Column(db.Float, nullable=False, default=0.0)
    credit = db.Column(db.Float, nullable=False, default=0.0)
    running_balance = db.Column(db.Float, nullable=True)
    previous_balance = db.Column(db.Float, nullable=True)

    gross_weight = db.Column(db.Float, nullable=True)
    pure_weight = db.Column(db.Float, nullable=True)
    purity = db.Column(db.Float, nullable=True)
    gold_bid_value = db.Column(db.Float, nullable=True)

    reference = db.Column(db.String(50), nullable=True)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=True)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<RegistryEntry {self.transaction_id} type={self.type} dr={self.debit} cr={self.credit}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "metal_transaction_id": self.metal_transaction_id,
            "fixing_id": self.fixing_id,
            "entry_id": self.entry_id,
            "fund_transfer_id": self.fund_transfer_id,
            "type": self.type,
            "description": self.description,
            "party": self.party_id,
            "isBullion": self.is_bullion,
            "value": self.value,
            "debit": self.debit,
            "credit": self.credit,
            "runningBalance": self.running_balance,
            "previousBalance": self.previous_balance,
            "grossWeight": self.gross_weight,
            "pureWeight": self.pure_weight,
            "purity": self.purity,
            "goldBidValue": self.gold_bid_value,
            "reference": self.reference,
            "transactionDate": to_utc_z(self.transaction_date),
            "createdBy": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(RegistryEntry, "before_update")
def _reject_registry_update(mapper, connection, target):
    raise InvariantViolationError(
        f"Registry entry {target.transaction_id} is immutable",
        "REGISTRY_IMMUTABLE",
    )


class LedgerSequence(db.Model):
    """Per-scope, per-year counter used to allocate registry base ids."""
    __tablename__ = "ledger_sequences"
    __table_args__ = (
        db.UniqueConstraint("scope", "year", name="uq_ledger_sequences_scope_year"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(32), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scope": self.scope,
            "year": self.year,
            "next_number": self.next_number,
        }
