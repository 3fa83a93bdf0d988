# Overview: Registry (ledger posting) persistence and read queries.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import RegistryEntry


def insert_entries(entries: list[RegistryEntry]) -> list[RegistryEntry]:
    """
    Persist a posting batch within the caller's unit of work.

    Rows are independent of each other, but a failure to write any of them
    fails the flush and therefore the whole unit.
    """
    if entries:
        db.session.add_all(entries)
        db.session.flush()
    return entries


def delete_entries_for(
    *,
    metal_transaction_id: int | None = None,
    fixing_id: int | None = None,
    entry_id: int | None = None,
    fund_transfer_id: int | None = None,
    reference: str | None = None,
) -> int:
    """
    Batch delete by owning document or voucher reference.

    Idempotent: rows already gone are not an error, the count is just lower.
    This is the only delete path for registry rows.
    """
    owner = {
        "metal_transaction_id": metal_transaction_id,
        "fixing_id": fixing_id,
        "entry_id": entry_id,
        "fund_transfer_id": fund_transfer_id,
        "reference": reference,
    }
    owner = {key: value for key, value in owner.items() if value is not None}
    if not owner:
        raise ValidationError("An owner or reference is required to delete registry entries")

    deleted = (
        db.session.query(RegistryEntry)
        .filter_by(**owner)
        .delete(synchronize_session="fetch")
    )
    current_app.logger.info("[DELETE_REGISTRY] owner=%s deleted=%s", owner, deleted)
    return deleted


def get_entries_for_transaction(metal_transaction_id: int) -> list[RegistryEntry]:
    return (
        db.session.query(RegistryEntry)
        .filter(RegistryEntry.metal_transaction_id == metal_transaction_id)
        .order_by(RegistryEntry.id.asc())
        .all()
    )


def get_entries_by_reference(reference: str) -> list[RegistryEntry]:
    return (
        db.session.query(RegistryEntry)
        .filter(RegistryEntry.reference == reference)
        .order_by(RegistryEntry.id.asc())
        .all()
    )


def get_entries_by_party(party_id: int, entry_type: str | None = None) -> list[RegistryEntry]:
    query = db.session.query(RegistryEntry).filter(RegistryEntry.party_id == party_id)
    if entry_type:
        query = query.filter(RegistryEntry.type == entry_type)
    return query.order_by(RegistryEntry.id.asc()).all()


def get_entries_by_type(entry_type: str) -> list[RegistryEntry]:
    return (
        db.session.query(RegistryEntry)
        .filter(RegistryEntry.type == entry_type)
        .order_by(RegistryEntry.id.asc())
        .all()
    )


def get_entry_by_transaction_id(transaction_id: str) -> RegistryEntry | None:
    return db.session.query(RegistryEntry).filter_by(transaction_id=transaction_id).first()


def get_registry_balance(party_id: int | None = None, entry_type: str | None = None) -> dict:
    """Sum of debit and credit, balance = credit - debit."""
    query = db.session.query(
        func.coalesce(func.sum(RegistryEntry.debit), 0.0),
        func.coalesce(func.sum(RegistryEntry.credit), 0.0),
    )
    if party_id is not None:
        query = query.filter(RegistryEntry.party_id == party_id)
    if entry_type:
        query = query.filter(RegistryEntry.type == entry_type)
    debit, credit = query.one()
    return {"debit": float(debit), "credit": float(credit), "balance": float(credit) - float(debit)}


def get_party_totals_by_type(party_id: int) -> dict[str, dict]:
    rows = (
        db.session.query(
            RegistryEntry.type,
            func.coalesce(func.sum(RegistryEntry.debit), 0.0),
            func.coalesce(func.sum(RegistryEntry.credit), 0.0),
            func.count(RegistryEntry.id),
        )
        .filter(RegistryEntry.party_id == party_id)
        .group_by(RegistryEntry.type)
        .all()
    )
    return {
        entry_type: {
            "debit": float(debit),
            "credit": float(credit),
            "balance": float(credit) - float(debit),
            "count": count,
        }
        for entry_type, debit, credit, count in rows
    }
