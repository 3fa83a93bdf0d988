# Overview: Allocation of house-wide unique registry base ids.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import LedgerSequence
from ..time_utils import current_year


REGISTRY_SCOPE = "registry"


def next_sequence_number(*, scope: str, year: int) -> int:
    """
    Atomically allocate the next number for (scope, year).

    Runs inside the caller's unit of work: the counter increment commits or
    rolls back together with the postings that use it. A concurrent first
    allocation for the same year surfaces as an IntegrityError on insert and
    fails the whole unit, which the caller may retry.
    """
    stmt = (
        update(LedgerSequence)
        .where(LedgerSequence.scope == scope, LedgerSequence.year == year)
        .values(next_number=LedgerSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(LedgerSequence.next_number)
            .filter_by(scope=scope, year=year)
            .scalar()
        )
        return current - 1

    db.session.add(LedgerSequence(scope=scope, year=year, next_number=2))
    db.session.flush()
    return 1


def next_base_id(*, scope: str = REGISTRY_SCOPE, year: int | None = None) -> str:
    """Return "<prefix>-<year>-<NNN>", e.g. TXN-2026-007."""
    year = year or current_year()
    prefix = current_app.config.get("LEDGER_TRANSACTION_ID_PREFIX", "TXN")
    number = next_sequence_number(scope=scope, year=year)
    return f"{prefix}-{year}-{number:03d}"
